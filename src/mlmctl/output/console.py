"""Rich Console factory and theme for mlmctl output.

Consoles render to a StringIO buffer, preserving the
``format_result() -> str`` contract. In non-TTY environments (tests,
pipes) Rich disables color codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

MLM_THEME = Theme(
    {
        "mlm.ok": "bold green",
        "mlm.error": "bold red",
        "mlm.warning": "bold yellow",
        "mlm.op": "bold cyan",
        "mlm.key": "dim",
        "mlm.id": "bold blue",
        "mlm.user": "bold",
        "mlm.admin": "bold magenta",
        "mlm.orphan": "italic yellow",
        "mlm.package.silver": "white",
        "mlm.package.gold": "yellow",
        "mlm.package.diamond": "cyan",
        "mlm.free": "green",
    }
)

_PACKAGE_STYLES: dict[str, str] = {
    "Silver": "mlm.package.silver",
    "Gold": "mlm.package.gold",
    "Diamond": "mlm.package.diamond",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=MLM_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_package(package: str | None) -> str:
    """Return the Rich style name for a package tier."""
    return _PACKAGE_STYLES.get(package or "", "")
