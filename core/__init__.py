"""sitepub core"""

from .config import Settings, load_settings
from .exceptions import (
    PublishError,
    ShellExecutionError,
    RepositoryStateError,
    ConfigError,
    MissingConfigError,
    SiteConfigError,
    PublishingError,
    FailureKind,
    classify_failure,
)
from .logging_config import setup_logging, LogContext
from .shell import ShellExecutor

__all__ = [
    "Settings",
    "load_settings",
    "PublishError",
    "ShellExecutionError",
    "RepositoryStateError",
    "ConfigError",
    "MissingConfigError",
    "SiteConfigError",
    "PublishingError",
    "FailureKind",
    "classify_failure",
    "setup_logging",
    "LogContext",
    "ShellExecutor",
]
