"""
Unit tests for core module
"""

import json
import logging
import sys

import pytest
from pydantic import ValidationError

from core.config import Settings, load_settings
from core.exceptions import (
    PublishError,
    ShellExecutionError,
    RepositoryStateError,
    ConfigError,
    SiteConfigError,
    PublishingError,
    FailureKind,
    classify_failure,
)
from core.logging_config import JSONFormatter, LogContext
from core.shell import ShellExecutor


class TestSettings:
    """Tests for Settings class"""

    def test_settings_defaults(self, tmp_path, monkeypatch):
        """Should have sensible defaults"""
        monkeypatch.chdir(tmp_path)
        settings = Settings()
        assert settings.output_folder == "Output"
        assert settings.internal_folder == ".publish"
        assert settings.default_branch == "master"
        assert settings.shell_timeout is None
        assert "{timestamp}" in settings.commit_message

    def test_settings_from_env(self, tmp_path, monkeypatch):
        """Should load settings from SITEPUB_ environment variables"""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("SITEPUB_OUTPUT_FOLDER", "public")
        monkeypatch.setenv("SITEPUB_DEFAULT_BRANCH", "gh-pages")
        monkeypatch.setenv("SITEPUB_SHELL_TIMEOUT", "30")
        settings = Settings()
        assert settings.output_folder == "public"
        assert settings.default_branch == "gh-pages"
        assert settings.shell_timeout == 30

    def test_load_settings_from_env_file(self, tmp_path, monkeypatch):
        """Should read an explicit .env file"""
        monkeypatch.chdir(tmp_path)
        env_file = tmp_path / "custom.env"
        env_file.write_text("SITEPUB_COMMIT_AUTHOR_NAME=Deploy Bot\n")
        settings = load_settings(str(env_file))
        assert settings.commit_author_name == "Deploy Bot"

    @pytest.mark.parametrize("folder", ["/var/www", "../outside", "."])
    def test_invalid_output_folder_rejected(self, folder, tmp_path, monkeypatch):
        """Output folder must be a subfolder of the site root"""
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ValidationError):
            Settings(output_folder=folder)

    def test_non_positive_timeout_rejected(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ValidationError):
            Settings(shell_timeout=0)

    def test_invalid_branch_rejected(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ValidationError):
            Settings(default_branch="--force")


class TestExceptions:
    """Tests for custom exceptions"""

    def test_hierarchy(self):
        """All errors share the same base"""
        assert issubclass(ShellExecutionError, PublishError)
        assert issubclass(RepositoryStateError, PublishError)
        assert issubclass(SiteConfigError, ConfigError)
        assert issubclass(PublishingError, PublishError)

    def test_shell_error_message_prefers_stderr(self):
        """Should expose stderr verbatim"""
        error = ShellExecutionError("git", ["push"], exit_code=1, stdout="out", stderr="  err\n")
        assert error.message == "  err\n"
        assert error.output == "  err\n\nout"
        assert error.command_line == "git push"

    def test_shell_error_message_falls_back_to_stdout(self):
        error = ShellExecutionError("tool", exit_code=2, stdout="only stdout", stderr="")
        assert error.message == "only stdout"

    def test_publishing_error_wraps_shell_error_verbatim(self):
        """Info message must be the raw tool text"""
        raw = (
            "remote: error: refusing to update checked out branch: refs/heads/master\n"
            "remote: error: ... receive.denyCurrentBranch configuration variable ...\n"
            " ! [remote rejected] master -> master (branch is currently checked out)\n"
        )
        shell_error = ShellExecutionError("git", ["push"], exit_code=1, stderr=raw, working_directory="/tmp/x")
        error = PublishingError.from_error(shell_error, step_name="Deploy")
        assert error.info_message == raw
        assert error.kind == FailureKind.PUSH_REJECTED
        assert error.underlying_error is shell_error
        assert error.step_name == "Deploy"
        assert error.path == "/tmp/x"

    def test_publishing_error_from_repository_state_error(self):
        error = PublishingError.from_error(RepositoryStateError("diverged", path="/co"))
        assert error.kind == FailureKind.REPOSITORY_STATE
        assert error.info_message == "diverged"
        assert error.path == "/co"

    def test_publishing_error_from_error_returns_same_instance(self):
        original = PublishingError("boom")
        assert PublishingError.from_error(original, step_name="x") is original

    def test_publishing_error_from_generic_errors(self):
        assert PublishingError.from_error(OSError("disk")).kind == FailureKind.FILESYSTEM
        assert PublishingError.from_error(ConfigError("bad")).kind == FailureKind.CONFIGURATION
        error = PublishingError.from_error(RuntimeError())
        assert error.kind == FailureKind.UNKNOWN
        assert error.info_message == "RuntimeError"

    def test_publishing_error_str_contains_context(self):
        error = PublishingError(
            info_message="fatal: nope",
            step_name="Deploy using Git (x)",
            path="/site/.publish",
            kind=FailureKind.SHELL
        )
        text = str(error)
        assert "[step] Deploy using Git (x)" in text
        assert "[path] /site/.publish" in text
        assert "[info] fatal: nope" in text


class TestClassifyFailure:
    """Tests for failure classification"""

    @pytest.mark.parametrize("text, kind", [
        (" ! [remote rejected] master -> master (pre-receive hook declined)", FailureKind.PUSH_REJECTED),
        (" ! [rejected]        master -> master (non-fast-forward)", FailureKind.PUSH_REJECTED),
        ("fatal: Authentication failed for 'https://example.com/repo.git/'", FailureKind.AUTHENTICATION),
        ("git@github.com: Permission denied (publickey).", FailureKind.AUTHENTICATION),
        ("fatal: '/nope' does not appear to be a git repository", FailureKind.REMOTE_UNAVAILABLE),
        ("fatal: Not possible to fast-forward, aborting.", FailureKind.CONFLICT),
        ("CONFLICT (content): Merge conflict in index.html", FailureKind.CONFLICT),
        ("error: file conflicts.md is not readable", FailureKind.SHELL),
        ("fatal: not a git repository (or any of the parent directories): .git", FailureKind.REPOSITORY_STATE),
        ("something else entirely", FailureKind.SHELL),
        ("", FailureKind.UNKNOWN),
    ])
    def test_classify(self, text, kind):
        assert classify_failure(text) == kind


class TestShellExecutor:
    """Tests for ShellExecutor"""

    def test_run_returns_stdout(self, tmp_path):
        """Should return captured stdout"""
        shell = ShellExecutor()
        output = shell.run(sys.executable, ["-c", "import os; print(os.getcwd())"], working_directory=tmp_path)
        assert output.strip() == str(tmp_path.resolve()) or output.strip() == str(tmp_path)

    def test_run_nonzero_exit_raises_with_raw_output(self, tmp_path):
        """Should raise ShellExecutionError keeping stderr untouched"""
        shell = ShellExecutor()
        script = "import sys; sys.stderr.write('  raw: [remote rejected]\\n'); sys.exit(3)"
        with pytest.raises(ShellExecutionError) as exc_info:
            shell.run(sys.executable, ["-c", script], working_directory=tmp_path)
        assert exc_info.value.exit_code == 3
        assert exc_info.value.stderr == "  raw: [remote rejected]\n"

    def test_run_missing_binary_raises(self, tmp_path):
        shell = ShellExecutor()
        with pytest.raises(ShellExecutionError) as exc_info:
            shell.run("definitely-not-a-real-binary-sitepub", working_directory=tmp_path)
        assert exc_info.value.exit_code is None

    def test_run_passes_extra_env(self, tmp_path):
        shell = ShellExecutor(env={"SITEPUB_TEST_A": "a"})
        output = shell.run(
            sys.executable,
            ["-c", "import os; print(os.environ['SITEPUB_TEST_A'] + os.environ['SITEPUB_TEST_B'])"],
            working_directory=tmp_path,
            env={"SITEPUB_TEST_B": "b"}
        )
        assert output.strip() == "ab"

    def test_succeeds(self, tmp_path):
        shell = ShellExecutor()
        assert shell.succeeds(sys.executable, ["-c", "pass"], working_directory=tmp_path)
        assert not shell.succeeds(sys.executable, ["-c", "raise SystemExit(1)"], working_directory=tmp_path)

    def test_timeout_raises(self, tmp_path):
        shell = ShellExecutor(timeout=0.5)
        with pytest.raises(ShellExecutionError) as exc_info:
            shell.run(sys.executable, ["-c", "import time; time.sleep(5)"], working_directory=tmp_path)
        assert exc_info.value.exit_code is None
        assert "timed out" in exc_info.value.message

    def test_timeout_keeps_partial_stderr(self, tmp_path):
        """Diagnostics written before the timeout should survive"""
        shell = ShellExecutor(timeout=2)
        script = "import sys, time; sys.stderr.write('warming up'); sys.stderr.flush(); time.sleep(10)"
        with pytest.raises(ShellExecutionError) as exc_info:
            shell.run(sys.executable, ["-c", script], working_directory=tmp_path)
        assert exc_info.value.stderr == "warming up\nCommand timed out after 2s"


class TestLogging:
    """Tests for structured logging"""

    def test_json_formatter_includes_extras(self):
        record = logging.LogRecord("sitepub", logging.INFO, __file__, 1, "deployed %s", ("site",), None)
        record.step_name = "Deploy using Git (x)"
        record.branch = "gh-pages"
        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "deployed site"
        assert data["step_name"] == "Deploy using Git (x)"
        assert data["branch"] == "gh-pages"
        assert data["timestamp"].endswith("Z")

    def test_log_context_adds_and_removes_fields(self):
        logger = logging.getLogger("sitepub.test")
        with LogContext(logger, remote="/tmp/remote"):
            record = logging.getLogRecordFactory()("x", logging.INFO, __file__, 1, "m", (), None)
            assert record.remote == "/tmp/remote"
        record = logging.getLogRecordFactory()("x", logging.INFO, __file__, 1, "m", (), None)
        assert not hasattr(record, "remote")
