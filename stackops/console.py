"""Colored status lines for interactive runs."""
from __future__ import annotations

import sys
from typing import Sequence

from .settings import settings

RED = "\033[0;31m"
GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
BLUE = "\033[0;34m"
NC = "\033[0m"


def _use_color() -> bool:
    return not settings.no_color and sys.stdout.isatty()


def _emit(color: str, tag: str, msg: str) -> None:
    if _use_color():
        print(f"{color}[{tag}]{NC} {msg}")
    else:
        print(f"[{tag}] {msg}")


def info(msg: str) -> None:
    _emit(BLUE, "INFO", msg)


def success(msg: str) -> None:
    _emit(GREEN, "SUCCESS", msg)


def warning(msg: str) -> None:
    _emit(YELLOW, "WARNING", msg)


def error(msg: str) -> None:
    _emit(RED, "ERROR", msg)


def blank() -> None:
    print()


def table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> list[str]:
    """Left-aligned plain-text table, one string per line."""
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))
    fmt = "  ".join(f"{{:<{w}}}" for w in widths)
    lines = [fmt.format(*headers).rstrip()]
    lines.extend(fmt.format(*row).rstrip() for row in rows)
    return lines
