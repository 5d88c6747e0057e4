"""Pipeline module"""

from .orchestrator import PublishingPipeline, PipelineState, PipelineStatus, RunMode, StepState
from .context import PublishingContext
from .site import Site
from .site_config import SiteConfig, load_site_config
from .step import (
    Plugin,
    PublishingStep,
    StepKind,
    step,
    install_plugin,
    deploy,
    copy_resources,
)

__all__ = [
    "PublishingPipeline",
    "PipelineState",
    "PipelineStatus",
    "RunMode",
    "StepState",
    "PublishingContext",
    "Site",
    "SiteConfig",
    "load_site_config",
    "Plugin",
    "PublishingStep",
    "StepKind",
    "step",
    "install_plugin",
    "deploy",
    "copy_resources",
]
