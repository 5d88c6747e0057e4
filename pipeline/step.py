"""
Step Definition - шаги pipeline: генерация, плагины, деплой
"""

import logging
import shutil
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from deployment.method import DeploymentMethod
from .context import PublishingContext


logger = logging.getLogger(__name__)


class StepKind(str, Enum):
    """Тип шага - определяет, в каком режиме он выполняется"""
    GENERATION = "GENERATION"
    PLUGIN = "PLUGIN"
    DEPLOYMENT = "DEPLOYMENT"


@dataclass(frozen=True)
class Plugin:
    """Плагин: имя + hook, который вызывается при установке"""
    name: str
    install: Callable[[PublishingContext], None]


@dataclass(frozen=True)
class PublishingStep:
    """Один шаг pipeline"""
    name: str
    kind: StepKind
    body: Callable[[PublishingContext], None]

    def run(self, context: PublishingContext) -> None:
        self.body(context)


def step(name: str, body: Callable[[PublishingContext], None]) -> PublishingStep:
    """Произвольный шаг генерации"""
    return PublishingStep(name=name, kind=StepKind.GENERATION, body=body)


def install_plugin(plugin: Plugin) -> PublishingStep:
    return PublishingStep(
        name=f"Install plugin '{plugin.name}'",
        kind=StepKind.PLUGIN,
        body=plugin.install
    )


def deploy(method: DeploymentMethod) -> PublishingStep:
    """Шаг деплоя - выполняется только в deploy режиме"""

    def run_method(context: PublishingContext):
        method.deploy(context.deploy_context())

    return PublishingStep(
        name=f"Deploy using {method.name}",
        kind=StepKind.DEPLOYMENT,
        body=run_method
    )


def copy_resources(at: str = "Resources", into: Optional[str] = None) -> PublishingStep:
    """Copy a static folder from the site root into the output folder

    A missing folder is skipped with a warning.
    """

    def copy(context: PublishingContext):
        source = context.root_folder / at
        if not source.is_dir():
            logger.warning(f"Resources folder not found, skipping: {source}")
            return
        destination = context.output_path(into) if into else context.output_folder
        shutil.copytree(source, destination, dirs_exist_ok=True)
        logger.info(f"Copied resources from {at}")

    return step(f"Copy '{at}' files", copy)
