"""
Custom exceptions for sitepub
"""

from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Union


class PublishError(Exception):
    """Base exception for all sitepub errors"""
    pass


# Shell exceptions
class ShellExecutionError(PublishError):
    """External command exited with a nonzero status (or could not run at all)"""

    def __init__(
        self,
        command: str,
        arguments: Sequence[str] = (),
        exit_code: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        working_directory: Optional[Union[str, Path]] = None
    ):
        self.command = command
        self.arguments = list(arguments)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.working_directory = working_directory
        super().__init__(self.message)

    @property
    def message(self) -> str:
        """Raw diagnostic text: stderr, or stdout when stderr is empty"""
        return self.stderr if self.stderr.strip() else self.stdout

    @property
    def output(self) -> str:
        """stderr and stdout together, untouched"""
        return "\n".join(part for part in (self.stderr, self.stdout) if part)

    @property
    def command_line(self) -> str:
        return " ".join([self.command, *self.arguments])


# Git / repository exceptions
class RepositoryStateError(PublishError):
    """Scratch checkout is missing, corrupt or diverged and can't be reconciled"""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = path


# Config exceptions
class ConfigError(PublishError):
    """Configuration error"""
    pass


class MissingConfigError(ConfigError):
    """Required configuration is missing"""
    pass


class SiteConfigError(ConfigError):
    """Invalid site configuration file"""
    pass


class FailureKind(str, Enum):
    """Категория ошибки для диагностики"""
    PUSH_REJECTED = "PUSH_REJECTED"
    AUTHENTICATION = "AUTHENTICATION"
    REMOTE_UNAVAILABLE = "REMOTE_UNAVAILABLE"
    CONFLICT = "CONFLICT"
    REPOSITORY_STATE = "REPOSITORY_STATE"
    CONFIGURATION = "CONFIGURATION"
    FILESYSTEM = "FILESYSTEM"
    SHELL = "SHELL"
    UNKNOWN = "UNKNOWN"


# Checked in order, first match wins
_FAILURE_MARKERS = (
    (FailureKind.PUSH_REJECTED, (
        "[remote rejected]",
        "[rejected]",
        "receive.denycurrentbranch",
        "non-fast-forward",
        "protected branch",
        "pre-receive hook declined",
    )),
    (FailureKind.AUTHENTICATION, (
        "authentication failed",
        "permission denied",
        "could not read username",
        "access denied",
    )),
    (FailureKind.REMOTE_UNAVAILABLE, (
        "does not appear to be a git repository",
        "could not read from remote repository",
        "repository not found",
        "could not resolve host",
        "connection refused",
        "connection timed out",
    )),
    (FailureKind.CONFLICT, (
        "conflict (",
        "merge conflict",
        "not possible to fast-forward",
        "diverged",
    )),
    (FailureKind.REPOSITORY_STATE, (
        "not a git repository",
        "unknown revision",
        "bad revision",
        "index.lock",
    )),
)


def classify_failure(text: str) -> FailureKind:
    """Определить категорию ошибки по сырому выводу команды

    Only looks at the text; the text itself is never changed.
    """
    if not text:
        return FailureKind.UNKNOWN
    lowered = text.lower()
    for kind, markers in _FAILURE_MARKERS:
        if any(marker in lowered for marker in markers):
            return kind
    return FailureKind.SHELL


class PublishingError(PublishError):
    """Top-level error surfaced to the caller of a pipeline run

    ``info_message`` carries the underlying diagnostic text exactly as the
    failing tool produced it.
    """

    def __init__(
        self,
        info_message: Optional[str] = None,
        step_name: Optional[str] = None,
        path: Optional[Union[str, Path]] = None,
        kind: FailureKind = FailureKind.UNKNOWN,
        underlying_error: Optional[BaseException] = None
    ):
        self.info_message = info_message
        self.step_name = step_name
        self.path = path
        self.kind = kind
        self.underlying_error = underlying_error
        super().__init__(info_message or "")

    @classmethod
    def from_error(
        cls,
        error: BaseException,
        step_name: Optional[str] = None,
        path: Optional[Union[str, Path]] = None
    ) -> "PublishingError":
        """Wrap any exception, keeping its diagnostic text as-is"""
        if isinstance(error, PublishingError):
            return error
        if isinstance(error, ShellExecutionError):
            return cls(
                info_message=error.message,
                step_name=step_name,
                path=path or error.working_directory,
                kind=classify_failure(error.output),
                underlying_error=error
            )
        if isinstance(error, RepositoryStateError):
            return cls(
                info_message=str(error),
                step_name=step_name,
                path=path or error.path,
                kind=FailureKind.REPOSITORY_STATE,
                underlying_error=error
            )
        if isinstance(error, ConfigError):
            kind = FailureKind.CONFIGURATION
        elif isinstance(error, OSError):
            kind = FailureKind.FILESYSTEM
        else:
            kind = FailureKind.UNKNOWN
        return cls(
            info_message=str(error) or type(error).__name__,
            step_name=step_name,
            path=path,
            kind=kind,
            underlying_error=error
        )

    def __str__(self) -> str:
        lines = ["Publishing failed"]
        if self.step_name:
            lines.append(f"[step] {self.step_name}")
        if self.path:
            lines.append(f"[path] {self.path}")
        lines.append(f"[kind] {self.kind.value}")
        if self.info_message:
            lines.append(f"[info] {self.info_message}")
        return "\n".join(lines)
