"""
Git deployment - публикация output папки в git репозиторий

Scratch checkout живёт в <root>/.publish/deploy/ и переиспользуется между
запусками. Перезаписывается только target папка, всё остальное в
репозитории остаётся как было.
"""

import hashlib
import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Optional, Tuple

from core.config import Settings
from core.exceptions import (
    ConfigError,
    PublishingError,
    RepositoryStateError,
    ShellExecutionError,
)
from core.logging_config import LogContext
from core.shell import ShellExecutor
from state.checkouts import CheckoutCache
from .method import DeployContext


logger = logging.getLogger(__name__)


# English messages for classify_failure, never prompt for credentials
GIT_ENV = {
    "LC_ALL": "C",
    "GIT_TERMINAL_PROMPT": "0",
}

CHECKOUTS_FOLDER = "deploy"


@dataclass(frozen=True)
class GitDeploymentConfig:
    """Куда и как пушить"""
    remote: str
    branch: Optional[str] = None
    target_folder_path: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.remote, str) or not self.remote.strip():
            raise ConfigError("Git deployment needs a remote")
        if self.branch is not None and not isinstance(self.branch, str):
            raise ConfigError(f"Branch name must be a string: {self.branch!r}")
        if self.target_folder_path is not None and not isinstance(self.target_folder_path, str):
            raise ConfigError(f"target_folder_path must be a string: {self.target_folder_path!r}")
        if self.branch is not None and (not self.branch.strip() or self.branch.startswith('-')):
            raise ConfigError(f"Invalid branch name: {self.branch!r}")
        # triggers validation
        self.target_parts

    @property
    def target_parts(self) -> Tuple[str, ...]:
        """Target folder as path components, empty for the repository root"""
        if self.target_folder_path is None:
            return ()
        raw = self.target_folder_path.replace("\\", "/").strip()
        path = PurePosixPath(raw)
        if path.is_absolute():
            raise ConfigError(f"target_folder_path must be relative: {self.target_folder_path}")
        parts = tuple(p for p in path.parts if p not in ("", "."))
        if ".." in parts:
            raise ConfigError(f"target_folder_path must stay inside the repository: {self.target_folder_path}")
        if ".git" in parts:
            raise ConfigError(f"target_folder_path can't point into .git: {self.target_folder_path}")
        return parts


class GitRepository:
    """Тонкая обёртка над git CLI для одного рабочего дерева"""

    def __init__(self, path: Path, shell: ShellExecutor, git_binary: str = "git"):
        self.path = Path(path)
        self.shell = shell
        self.git_binary = git_binary

    def git(self, *args: str) -> str:
        return self.shell.run(self.git_binary, args, working_directory=self.path, env=GIT_ENV)

    def probe(self, *args: str) -> bool:
        return self.shell.succeeds(self.git_binary, args, working_directory=self.path, env=GIT_ENV)

    def has_ref(self, ref: str) -> bool:
        return self.probe("rev-parse", "--verify", "--quiet", ref)

    def rev(self, ref: str) -> str:
        return self.git("rev-parse", "--verify", ref).strip()

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return self.probe("merge-base", "--is-ancestor", ancestor, descendant)

    def remote_url(self, name: str = "origin") -> Optional[str]:
        try:
            return self.git("remote", "get-url", name).strip()
        except ShellExecutionError:
            return None

    def is_valid_checkout(self, remote: str) -> bool:
        """Чекаут на месте, не битый и смотрит на тот же remote"""
        if not (self.path / ".git").is_dir():
            return False
        try:
            toplevel = self.git("rev-parse", "--show-toplevel").strip()
        except ShellExecutionError:
            return False
        if Path(toplevel).resolve() != self.path.resolve():
            return False
        return self.remote_url() == remote


class GitDeployment:
    """Деплой output папки в git remote (ветка + подпапка)"""

    def __init__(self, config: GitDeploymentConfig):
        self.config = config

    def __repr__(self) -> str:
        return f"GitDeployment({self.config!r})"

    def checkout_path(self, context: DeployContext) -> Path:
        digest = hashlib.sha1(self.config.remote.encode("utf-8")).hexdigest()[:12]
        return context.internal_folder / CHECKOUTS_FOLDER / f"git-{digest}"

    def resolve_remote(self, context: DeployContext) -> str:
        """Relative local paths are taken relative to the site root"""
        remote = self.config.remote
        if "://" in remote or ":" in remote.split("/")[0]:
            return remote
        path = Path(remote).expanduser()
        if not path.is_absolute():
            path = context.root_folder / path
        return str(path.resolve())

    def __call__(self, context: DeployContext) -> None:
        settings = context.settings
        branch = self.config.branch or settings.default_branch
        remote = self.resolve_remote(context)
        cache = CheckoutCache(context.internal_folder)
        checkout = self.checkout_path(context)
        failure_path: Path = checkout

        with LogContext(logger, method="git", remote=remote, branch=branch):
            try:
                repo = self._prepare_checkout(context, cache, checkout, remote)
                self._checkout_branch(repo, branch)
                target = checkout.joinpath(*self.config.target_parts)
                failure_path = target
                target.mkdir(parents=True, exist_ok=True)
                self._replace_contents(target, checkout, context.output_folder)
                self._commit_and_push(repo, branch, settings)
            except (ShellExecutionError, RepositoryStateError, OSError) as e:
                logger.error(f"Git deployment to {remote} failed")
                raise PublishingError.from_error(e, path=failure_path) from e

            cache.put(context.root_folder, self.config.remote, checkout, branch)

    def _prepare_checkout(
        self,
        context: DeployContext,
        cache: CheckoutCache,
        checkout: Path,
        remote: str
    ) -> GitRepository:
        """Переиспользовать scratch checkout или создать заново"""
        repo = GitRepository(checkout, context.shell, context.settings.git_binary)
        record = cache.get(context.root_folder, self.config.remote)

        if record is not None and Path(record.path) == checkout and repo.is_valid_checkout(remote):
            logger.info(f"Reusing scratch checkout {checkout}")
        else:
            if record is not None or checkout.exists():
                logger.info(f"Scratch checkout {checkout} is stale, recreating")
                cache.invalidate(context.root_folder, self.config.remote, remove=False)
            if checkout.exists():
                shutil.rmtree(checkout)
            checkout.mkdir(parents=True)
            repo.git("init", "--quiet")
            repo.git("remote", "add", "origin", remote)

        repo.git("fetch", "--quiet", "--prune", "origin")
        return repo

    def _checkout_branch(self, repo: GitRepository, branch: str):
        """Переключиться на ветку, создать если её ещё нет"""
        has_head = repo.has_ref("HEAD")
        if has_head:
            repo.git("reset", "--hard", "--quiet")
        else:
            repo.git("read-tree", "--empty")
        repo.git("clean", "-ffdxq")

        remote_branch = f"refs/remotes/origin/{branch}"
        local_branch = f"refs/heads/{branch}"

        if repo.has_ref(remote_branch):
            if repo.has_ref(local_branch):
                repo.git("checkout", "--quiet", branch)
                self._reconcile(repo, branch)
            else:
                repo.git("checkout", "--quiet", "-b", branch, "--track", f"origin/{branch}")
        elif repo.has_ref(local_branch):
            repo.git("checkout", "--quiet", branch)
        elif has_head:
            logger.info(f"Branch '{branch}' doesn't exist on the remote yet, creating it")
            repo.git("checkout", "--quiet", "-b", branch)
        else:
            logger.info(f"Remote is empty, starting branch '{branch}'")
            repo.git("symbolic-ref", "HEAD", local_branch)

        try:
            current = repo.git("symbolic-ref", "--quiet", "--short", "HEAD").strip()
        except ShellExecutionError:
            current = "(detached HEAD)"
        if current != branch:
            raise RepositoryStateError(
                f"Scratch checkout is on '{current}', expected '{branch}'",
                path=repo.path
            )

    def _reconcile(self, repo: GitRepository, branch: str):
        """Fast-forward к origin; разошедшиеся ветки - ошибка, без force push"""
        upstream = f"origin/{branch}"
        local_rev = repo.rev(f"refs/heads/{branch}")
        upstream_rev = repo.rev(upstream)
        if local_rev == upstream_rev:
            return

        if repo.is_ancestor(local_rev, upstream_rev):
            repo.git("merge", "--ff-only", "--quiet", upstream)
            return

        if repo.is_ancestor(upstream_rev, local_rev):
            logger.info(f"Local '{branch}' is ahead of {upstream}, unpushed commits will be pushed")
            return

        raise RepositoryStateError(
            f"Branch '{branch}' in scratch checkout {repo.path} has diverged from {upstream}. "
            f"Run 'sitepub clean' to drop the checkout, or reconcile it manually.",
            path=repo.path
        )

    def _replace_contents(self, target: Path, checkout: Path, output_folder: Path):
        """Очистить target и скопировать туда output"""
        if not output_folder.is_dir():
            raise FileNotFoundError(f"Output folder not found: {output_folder}")

        at_root = target.resolve() == checkout.resolve()
        for entry in target.iterdir():
            if at_root and entry.name == ".git":
                continue
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()

        shutil.copytree(
            output_folder,
            target,
            symlinks=True,
            dirs_exist_ok=True,
            ignore=shutil.ignore_patterns(".git")
        )

    def _commit_and_push(self, repo: GitRepository, branch: str, settings: Settings) -> bool:
        """Закоммитить и запушить

        Returns:
            True if something was pushed
        """
        repo.git("add", "-A")
        has_changes = bool(repo.git("status", "--porcelain").strip())
        has_head = repo.has_ref("HEAD")

        committed = False
        if has_changes or not has_head:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            message = settings.commit_message.replace("{timestamp}", timestamp)
            repo.git(
                "-c", f"user.name={settings.commit_author_name}",
                "-c", f"user.email={settings.commit_author_email}",
                "-c", "commit.gpgsign=false",
                "commit", "--quiet", "--allow-empty", "-m", message
            )
            committed = True
            logger.info(f"Committed: {message}")

        remote_branch = f"refs/remotes/origin/{branch}"
        needs_push = (
            committed
            or not repo.has_ref(remote_branch)
            or repo.rev(f"refs/heads/{branch}") != repo.rev(remote_branch)
        )
        if not needs_push:
            logger.info(f"Nothing to deploy, origin/{branch} is up to date")
            return False

        repo.git("push", "origin", f"refs/heads/{branch}:refs/heads/{branch}")
        logger.info(f"Pushed {branch} to {self.config.remote}")
        return True
