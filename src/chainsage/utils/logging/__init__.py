"""logging package: stdlib logging setup plus a json/sqlite call log"""

from .types import LogCategory, LogEntry
from .core import CallLogger, configure_logging

__all__ = [
    "LogCategory",
    "LogEntry",
    "CallLogger",
    "configure_logging",
]
