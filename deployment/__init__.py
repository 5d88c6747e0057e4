"""Deployment methods"""

from .method import DeploymentMethod, DeployContext, CommandDeployment
from .git import GitDeployment, GitDeploymentConfig, GitRepository

__all__ = [
    "DeploymentMethod",
    "DeployContext",
    "CommandDeployment",
    "GitDeployment",
    "GitDeploymentConfig",
    "GitRepository",
]
