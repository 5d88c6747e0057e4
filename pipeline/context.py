"""
Publishing context - что видят шаги генерации и плагины
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from core.config import Settings
from core.shell import ShellExecutor
from deployment.method import DeployContext
from .site import Site


@dataclass
class PublishingContext:
    """Контекст одного запуска pipeline"""
    site: Site
    root_folder: Path
    output_folder: Path
    internal_folder: Path
    settings: Settings = field(default_factory=Settings)
    shell: ShellExecutor = field(default_factory=ShellExecutor)

    def output_path(self, relative: Union[str, Path]) -> Path:
        """Путь внутри output папки (выход за её пределы запрещён)"""
        path = (self.output_folder / relative).resolve()
        if path != self.output_folder.resolve() and self.output_folder.resolve() not in path.parents:
            raise ValueError(f"Path escapes the output folder: {relative}")
        return path

    def write_output(self, relative: Union[str, Path], content: str) -> Path:
        path = self.output_path(relative)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def deploy_context(self) -> DeployContext:
        return DeployContext(
            site=self.site,
            root_folder=self.root_folder,
            output_folder=self.output_folder,
            internal_folder=self.internal_folder,
            settings=self.settings,
            shell=self.shell
        )
