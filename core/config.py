"""
Configuration System - Pydantic Settings с .env поддержкой
"""

from pathlib import PurePosixPath, PureWindowsPath
from typing import Optional, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


def _validate_relative_folder(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{field_name} must not be empty")
    path = PurePosixPath(value.replace("\\", "/"))
    if path.is_absolute() or PureWindowsPath(value).is_absolute():
        raise ValueError(f"{field_name} must be relative to the site root: {value}")
    if not path.parts:
        raise ValueError(f"{field_name} can't be the site root itself")
    if ".." in path.parts:
        raise ValueError(f"{field_name} must stay inside the site root: {value}")
    return value


class Settings(BaseSettings):
    """Конфигурация sitepub"""

    model_config = SettingsConfigDict(
        env_prefix='SITEPUB_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore'
    )

    # Папки внутри корня сайта
    output_folder: str = "Output"
    internal_folder: str = ".publish"
    site_config_file: str = "site.yaml"

    # Git
    git_binary: str = "git"
    default_branch: str = "master"
    commit_author_name: str = "sitepub"
    commit_author_email: str = "sitepub@localhost"
    commit_message: str = "Publish deploy {timestamp}"

    # Shell - по умолчанию без таймаута
    shell_timeout: Optional[float] = None

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_dir: Optional[str] = None
    json_logs: bool = False

    @field_validator('output_folder')
    @classmethod
    def validate_output_folder(cls, v: str) -> str:
        return _validate_relative_folder(v, 'output_folder')

    @field_validator('internal_folder')
    @classmethod
    def validate_internal_folder(cls, v: str) -> str:
        return _validate_relative_folder(v, 'internal_folder')

    @field_validator('default_branch')
    @classmethod
    def validate_default_branch(cls, v: str) -> str:
        """Branch name must be usable as a refname component"""
        if not v or not v.strip() or v.startswith('-') or ' ' in v:
            raise ValueError(f"Invalid branch name: {v!r}")
        return v

    @field_validator('shell_timeout')
    @classmethod
    def validate_shell_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("shell_timeout must be positive")
        return v


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Загрузить конфигурацию"""
    if env_file:
        return Settings(_env_file=env_file)
    return Settings()
