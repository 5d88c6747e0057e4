"""
Shell Executor - запуск внешних команд

Blocking, no retries. A nonzero exit is raised as ShellExecutionError with
the captured output left exactly as the tool wrote it.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

from .exceptions import ShellExecutionError


logger = logging.getLogger(__name__)


class ShellExecutor:
    """Выполняет команды в рабочей директории"""

    def __init__(
        self,
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None
    ):
        self.timeout = timeout
        self.env = dict(env or {})

    def _environment(self, extra_env: Optional[Dict[str, str]]) -> Dict[str, str]:
        environment = dict(os.environ)
        environment.update(self.env)
        if extra_env:
            environment.update(extra_env)
        return environment

    def run(
        self,
        command: str,
        arguments: Sequence[str] = (),
        working_directory: Optional[Union[str, Path]] = None,
        env: Optional[Dict[str, str]] = None
    ) -> str:
        """Выполнить команду

        Returns:
            Captured stdout

        Raises:
            ShellExecutionError: nonzero exit, timeout or missing executable
        """
        args = [str(a) for a in arguments]
        cwd = str(working_directory) if working_directory is not None else None
        logger.debug(f"$ {command} {' '.join(args)} (cwd={cwd})")

        try:
            result = subprocess.run(
                [command, *args],
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=self._environment(env)
            )
        except subprocess.TimeoutExpired as e:
            partial = _decode(e.stderr)
            if partial and not partial.endswith("\n"):
                partial += "\n"
            raise ShellExecutionError(
                command,
                args,
                exit_code=None,
                stdout=_decode(e.stdout),
                stderr=partial + f"Command timed out after {self.timeout}s",
                working_directory=working_directory
            ) from e
        except OSError as e:
            raise ShellExecutionError(
                command,
                args,
                exit_code=None,
                stderr=str(e),
                working_directory=working_directory
            ) from e

        if result.returncode != 0:
            logger.debug(f"{command} exited with {result.returncode}: {result.stderr.strip()}")
            raise ShellExecutionError(
                command,
                args,
                exit_code=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
                working_directory=working_directory
            )

        return result.stdout

    def succeeds(
        self,
        command: str,
        arguments: Sequence[str] = (),
        working_directory: Optional[Union[str, Path]] = None,
        env: Optional[Dict[str, str]] = None
    ) -> bool:
        """Проверить что команда завершилась с кодом 0"""
        try:
            self.run(command, arguments, working_directory, env=env)
        except ShellExecutionError as e:
            if e.exit_code is None:
                raise
            return False
        return True


def _decode(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
