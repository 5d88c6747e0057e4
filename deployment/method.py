"""
Deployment methods - взаимозаменяемые способы публикации output папки
"""

import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence, Union, TYPE_CHECKING

from core.config import Settings
from core.shell import ShellExecutor

if TYPE_CHECKING:
    from pipeline.site import Site


logger = logging.getLogger(__name__)


@dataclass
class DeployContext:
    """Всё, что нужно методу деплоя в рамках одного запуска"""
    site: "Site"
    root_folder: Path
    output_folder: Path
    internal_folder: Path
    settings: Settings = field(default_factory=Settings)
    shell: ShellExecutor = field(default_factory=ShellExecutor)


@dataclass(frozen=True)
class DeploymentMethod:
    """Named deployment strategy

    ``body`` receives the DeployContext and performs the publish. Anything
    callable works, which is how custom methods are plugged in.
    """
    name: str
    body: Callable[[DeployContext], None]

    def deploy(self, context: DeployContext) -> None:
        self.body(context)

    @classmethod
    def git(
        cls,
        remote: str,
        branch: Optional[str] = None,
        target_folder_path: Optional[str] = None
    ) -> "DeploymentMethod":
        """Push the output folder into a git repository"""
        from .git import GitDeployment, GitDeploymentConfig

        config = GitDeploymentConfig(
            remote=remote,
            branch=branch,
            target_folder_path=target_folder_path
        )
        return cls(name=f"Git ({remote})", body=GitDeployment(config))

    @classmethod
    def command(
        cls,
        argv: Union[str, Sequence[str]],
        name: Optional[str] = None
    ) -> "DeploymentMethod":
        """Run an external command from the site root

        Placeholders ``{output}``, ``{root}`` and ``{site}`` are substituted in
        every argument.
        """
        arguments = shlex.split(argv) if isinstance(argv, str) else list(argv)
        if not arguments:
            raise ValueError("Command deployment needs at least one argument")
        return cls(
            name=name or f"Command ({arguments[0]})",
            body=CommandDeployment(arguments)
        )


class CommandDeployment:
    """Деплой внешней командой (rsync, aws s3 sync, ...)"""

    def __init__(self, arguments: Sequence[str]):
        self.arguments = list(arguments)

    def render(self, context: DeployContext) -> list:
        values = {
            "output": str(context.output_folder),
            "root": str(context.root_folder),
            "site": context.site.name,
        }
        rendered = []
        for arg in self.arguments:
            for key, value in values.items():
                arg = arg.replace(f"{{{key}}}", value)
            rendered.append(arg)
        return rendered

    def __call__(self, context: DeployContext) -> None:
        command, *arguments = self.render(context)
        logger.info(f"Running {command} {' '.join(arguments)}")
        output = context.shell.run(command, arguments, working_directory=context.root_folder)
        if output.strip():
            logger.debug(output.strip())
