"""Site metadata"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Site:
    """Метаданные сайта"""
    name: str
    url: str = ""
    description: str = ""
    language: str = "en"
