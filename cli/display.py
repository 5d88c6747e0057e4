"""
Display - вывод прогресса публикации в терминал
"""

import sys
from enum import Enum
from typing import Dict, Any

import click


class DisplayMode(str, Enum):
    VISIBLE = "visible"
    SILENT = "silent"


class Colors:
    """ANSI цвета для терминала"""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"


class Display:
    """Класс для вывода информации в терминал"""

    def __init__(self, mode: DisplayMode = DisplayMode.VISIBLE, use_colors: bool = True):
        self.mode = mode
        self.use_colors = use_colors and sys.stdout.isatty()

    def _color(self, text: str, color: str) -> str:
        """Добавить цвет к тексту"""
        if not self.use_colors:
            return text
        return f"{color}{text}{Colors.RESET}"

    def _echo(self, text: str, err: bool = False):
        click.echo(text, err=err)

    def header(self, text: str):
        """Заголовок"""
        line = "=" * 60
        self._echo(self._color(line, Colors.CYAN))
        self._echo(self._color(f"  {text}", Colors.BOLD + Colors.CYAN))
        self._echo(self._color(line, Colors.CYAN))

    def separator(self):
        self._echo(self._color("-" * 60, Colors.DIM))

    def info(self, text: str):
        if self.mode == DisplayMode.VISIBLE:
            self._echo(self._color(f"  {text}", Colors.WHITE))

    def success(self, text: str):
        self._echo(self._color(f"  ✓ {text}", Colors.GREEN))

    def warning(self, text: str):
        self._echo(self._color(f"  ⚠ {text}", Colors.YELLOW))

    def error(self, text: str):
        self._echo(self._color(f"  ✗ {text}", Colors.RED), err=True)

    def progress(self, text: str):
        """Прогресс (показывается в обоих режимах)"""
        if self.mode == DisplayMode.SILENT:
            self._echo(self._color(f"→ {text}", Colors.DIM))
        else:
            self._echo(self._color(f"  → {text}", Colors.BLUE))

    def raw_output(self, output: str):
        """Сырой вывод инструмента, без изменений"""
        for line in output.rstrip().splitlines():
            self._echo(self._color(f"    │ {line}", Colors.DIM), err=True)

    def final_report(self, stats: Dict[str, Any]):
        """Финальный отчет"""
        if self.mode != DisplayMode.VISIBLE:
            return
        self.separator()
        for key, value in stats.items():
            self._echo(self._color(f"  {key}: {value}", Colors.WHITE))
        self.separator()
