"""
Pipeline Orchestrator - координатор публикации

Два режима, выбираются один раз при запуске:
- GENERATE: шаги генерации и плагины, деплой пропускается
- DEPLOY: только методы деплоя, по порядку, поверх уже сгенерированной папки

Первая ошибка останавливает весь запуск.
"""

import logging
import shutil
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Any, List, Optional, Sequence, Union

from core.config import Settings
from core.exceptions import FailureKind, PublishingError
from core.logging_config import LogContext
from core.shell import ShellExecutor
from .context import PublishingContext
from .site import Site
from .step import PublishingStep, StepKind


logger = logging.getLogger(__name__)


class RunMode(str, Enum):
    """Режим запуска"""
    GENERATE = "GENERATE"
    DEPLOY = "DEPLOY"

    @classmethod
    def from_flag(cls, deploying: bool) -> "RunMode":
        return cls.DEPLOY if deploying else cls.GENERATE

    @property
    def step_kinds(self) -> frozenset:
        if self is RunMode.DEPLOY:
            return frozenset({StepKind.DEPLOYMENT})
        return frozenset({StepKind.GENERATION, StepKind.PLUGIN})


class PipelineStatus(str, Enum):
    """Статус pipeline"""
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass
class StepState:
    """Состояние шага"""
    name: str
    kind: StepKind
    executed: bool = False
    skipped: bool = False
    duration_ms: Optional[int] = None


@dataclass
class PipelineState:
    """Состояние всего pipeline"""
    mode: RunMode
    status: PipelineStatus = PipelineStatus.IDLE
    steps: List[StepState] = field(default_factory=list)
    error: Optional[PublishingError] = None

    @property
    def executed_steps(self) -> List[str]:
        return [s.name for s in self.steps if s.executed]

    @property
    def skipped_steps(self) -> List[str]:
        return [s.name for s in self.steps if s.skipped]


class PublishingPipeline:
    """Оркестратор публикации сайта"""

    def __init__(
        self,
        site: Site,
        steps: Sequence[PublishingStep],
        root_folder: Union[str, Path],
        mode: RunMode = RunMode.GENERATE,
        settings: Optional[Settings] = None,
        shell: Optional[ShellExecutor] = None
    ):
        self.site = site
        self.steps = list(steps)
        self.root_folder = Path(root_folder).resolve()
        self.mode = mode
        self.settings = settings or Settings()
        self.shell = shell or ShellExecutor(timeout=self.settings.shell_timeout)

        self.state = PipelineState(mode=mode)

        # Callbacks
        self._on_step_start: Optional[Callable[[PublishingStep], None]] = None
        self._on_step_complete: Optional[Callable[[PublishingStep, StepState], None]] = None
        self._on_progress: Optional[Callable[[str], None]] = None

    @property
    def output_folder(self) -> Path:
        return self.root_folder / self.settings.output_folder

    @property
    def internal_folder(self) -> Path:
        return self.root_folder / self.settings.internal_folder

    def set_callbacks(
        self,
        on_step_start: Callable[[PublishingStep], None] = None,
        on_step_complete: Callable[[PublishingStep, StepState], None] = None,
        on_progress: Callable[[str], None] = None
    ):
        """Установить callbacks"""
        self._on_step_start = on_step_start
        self._on_step_complete = on_step_complete
        self._on_progress = on_progress

    def run(self) -> PipelineState:
        """Запустить pipeline

        Raises:
            PublishingError: first failing step aborts the run
        """
        self.state = PipelineState(mode=self.mode, status=PipelineStatus.RUNNING)
        self._log_progress(f"Publishing {self.site.name} ({self.mode.value.lower()} mode)")

        try:
            context = self._set_up_context()
            runnable = self.mode.step_kinds

            for publishing_step in self.steps:
                step_state = StepState(name=publishing_step.name, kind=publishing_step.kind)
                self.state.steps.append(step_state)

                if publishing_step.kind not in runnable:
                    step_state.skipped = True
                    logger.debug(f"Skipping '{publishing_step.name}' in {self.mode.value} mode")
                    continue

                self._run_step(publishing_step, step_state, context)

        except PublishingError as e:
            self.state.status = PipelineStatus.FAILED
            self.state.error = e
            logger.error(f"Pipeline failed: {e.step_name or self.site.name}")
            raise

        self.state.status = PipelineStatus.COMPLETED
        self._log_progress(f"Successfully published {self.site.name}")
        return self.state

    def _set_up_context(self) -> PublishingContext:
        """Подготовить папки и контекст"""
        output = self.output_folder

        if self.mode is RunMode.DEPLOY:
            if not output.is_dir():
                raise PublishingError(
                    info_message=(
                        f"Output folder not found: {output}. "
                        f"Generate the site before deploying."
                    ),
                    path=output,
                    kind=FailureKind.FILESYSTEM
                )
        else:
            try:
                if output.exists():
                    shutil.rmtree(output)
                output.mkdir(parents=True)
            except OSError as e:
                raise PublishingError.from_error(e, path=output) from e

        return PublishingContext(
            site=self.site,
            root_folder=self.root_folder,
            output_folder=output,
            internal_folder=self.internal_folder,
            settings=self.settings,
            shell=self.shell
        )

    def _run_step(self, publishing_step: PublishingStep, step_state: StepState, context: PublishingContext):
        """Выполнить один шаг"""
        self._log_progress(publishing_step.name)
        if self._on_step_start:
            self._on_step_start(publishing_step)

        started = time.monotonic()
        with LogContext(logger, step_name=publishing_step.name, mode=self.mode.value):
            try:
                publishing_step.run(context)
            except PublishingError as e:
                if e.step_name is None:
                    e.step_name = publishing_step.name
                raise
            except Exception as e:
                raise PublishingError.from_error(e, step_name=publishing_step.name) from e

            step_state.executed = True
            step_state.duration_ms = int((time.monotonic() - started) * 1000)
            logger.debug(f"'{publishing_step.name}' done in {step_state.duration_ms}ms")

        if self._on_step_complete:
            self._on_step_complete(publishing_step, step_state)

    def _log_progress(self, message: str):
        """Логировать прогресс"""
        logger.info(message)
        if self._on_progress:
            self._on_progress(message)

    def get_stats(self) -> Dict[str, Any]:
        """Получить статистику"""
        return {
            "mode": self.mode.value,
            "status": self.state.status.value,
            "total_steps": len(self.steps),
            "executed": len(self.state.executed_steps),
            "skipped": len(self.state.skipped_steps),
        }
