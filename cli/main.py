"""
CLI Interface - команды sitepub

Команды:
- sitepub run <root> - сгенерировать сайт
- sitepub run <root> --deploy - задеплоить уже сгенерированный сайт
- sitepub checkouts <root> - показать scratch-чекауты деплоя
- sitepub clean <root> - удалить scratch-чекауты
"""

import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from core.config import Settings, load_settings
from core.logging_config import setup_logging
from core.exceptions import ConfigError, PublishingError
from pipeline.orchestrator import PublishingPipeline, RunMode
from pipeline.site_config import SiteConfig
from state.checkouts import CheckoutCache
from cli.display import Display, DisplayMode


@click.group()
@click.option('--env-file', '-e', type=click.Path(exists=True, dir_okay=False), help='Path to .env config file')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx, env_file: Optional[str], verbose: bool):
    """sitepub - генерация и деплой статического сайта"""
    ctx.ensure_object(dict)

    try:
        settings = load_settings(env_file)
    except ValidationError as e:
        click.echo(f"Error loading config: {e}", err=True)
        settings = None

    if settings is not None:
        setup_logging(
            level="DEBUG" if verbose else settings.log_level,
            log_dir=settings.log_dir,
            json_format=settings.json_logs
        )
    else:
        setup_logging(level="DEBUG" if verbose else "INFO")

    ctx.obj['settings'] = settings
    ctx.obj['verbose'] = verbose


def _require_settings(ctx) -> Settings:
    settings: Settings = ctx.obj.get('settings')
    if settings is None:
        click.echo("Error: invalid configuration, check SITEPUB_* variables or --env-file", err=True)
        sys.exit(1)
    return settings


@cli.command()
@click.argument('root', type=click.Path(exists=True, file_okay=False), default='.')
@click.option('--deploy', 'deploying', is_flag=True, help='Skip generation and run deployment methods only')
@click.option('--config', '-c', 'config_file', type=click.Path(dir_okay=False), help='Site config (default: <root>/site.yaml)')
@click.option('--silent', '-s', is_flag=True, help='Silent mode (only progress)')
@click.pass_context
def run(ctx, root: str, deploying: bool, config_file: Optional[str], silent: bool):
    """Сгенерировать сайт или задеплоить его (--deploy)"""
    settings = _require_settings(ctx)
    root_path = Path(root).resolve()
    display = Display(mode=DisplayMode.SILENT if silent else DisplayMode.VISIBLE)

    config_path = Path(config_file) if config_file else root_path / settings.site_config_file
    try:
        site_config = SiteConfig.from_yaml(str(config_path))
    except (FileNotFoundError, ConfigError) as e:
        display.error(str(e))
        sys.exit(1)

    mode = RunMode.from_flag(deploying)
    display.header(f"sitepub - {site_config.site.name}")
    display.info(f"Root: {root_path}")
    display.info(f"Mode: {mode.value.lower()}")
    display.separator()

    pipeline = PublishingPipeline(
        site=site_config.site,
        steps=site_config.build_steps(),
        root_folder=root_path,
        mode=mode,
        settings=settings
    )
    pipeline.set_callbacks(on_progress=display.progress)

    try:
        pipeline.run()
    except PublishingError as e:
        display.error(f"Publishing failed ({e.kind.value})")
        if e.step_name:
            display.error(f"Step: {e.step_name}")
        if e.path:
            display.error(f"Path: {e.path}")
        if e.info_message:
            display.raw_output(e.info_message)
        sys.exit(1)

    display.final_report(pipeline.get_stats())
    display.success("Done")


@cli.command()
@click.argument('root', type=click.Path(exists=True, file_okay=False), default='.')
@click.pass_context
def checkouts(ctx, root: str):
    """Показать scratch-чекауты деплоя"""
    settings = _require_settings(ctx)
    root_path = Path(root).resolve()
    cache = CheckoutCache(root_path / settings.internal_folder)

    display = Display()
    records = cache.list()
    if not records:
        display.warning("No scratch checkouts")
        return

    display.header(f"Scratch checkouts: {root_path.name}")
    for record in records:
        display.info(f"{record.remote} [{record.branch or '-'}]")
        display.info(f"    {record.path} (updated {record.updated_at})")


@cli.command()
@click.argument('root', type=click.Path(exists=True, file_okay=False), default='.')
@click.pass_context
def clean(ctx, root: str):
    """Удалить scratch-чекауты деплоя"""
    settings = _require_settings(ctx)
    root_path = Path(root).resolve()
    cache = CheckoutCache(root_path / settings.internal_folder)

    removed = cache.clear()
    Display().success(f"Removed {removed} scratch checkout(s)")


def main():
    """Entry point"""
    cli(obj={})


if __name__ == '__main__':
    main()
