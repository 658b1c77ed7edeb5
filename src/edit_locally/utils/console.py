"""Console utility functions for formatting and output."""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text


# Status symbols for consistent iconography
STATUS_SYMBOLS = {
    'success': '✨',
    'running': '🚀',
    'info': '💡',
    'warning': '⚠️',
    'error': '❌',
    'check': '✅',
    'search': '🔍',
    'list': '📋',
}

_settings = {
    'verbose': 0,
    'quiet': False,
    'color': 'auto',
}
_consoles = {}


def configure_console(verbose: int = 0, quiet: bool = False, color: str = "auto") -> None:
    """Apply the global verbosity and color settings.

    Args:
        verbose: Verbosity level; debug output is shown when greater than zero
        quiet: Suppress info and success output (warnings and errors still show)
        color: One of ``auto``, ``always`` or ``never``
    """
    if color not in ('auto', 'always', 'never'):
        raise ValueError(f"argument for --color must be auto, always, or never, but found `{color}`")
    _settings.update(verbose=verbose, quiet=quiet, color=color)
    _consoles.clear()


def is_verbose() -> bool:
    return _settings['verbose'] > 0


def is_quiet() -> bool:
    return _settings['quiet']


def _get_console(stderr: bool = False) -> Console:
    """Get the Rich console for stdout or stderr under the current settings."""
    if stderr not in _consoles:
        color = _settings['color']
        _consoles[stderr] = Console(
            stderr=stderr,
            no_color=color == 'never',
            force_terminal=True if color == 'always' else None,
            highlight=False,
            soft_wrap=True,
        )
    return _consoles[stderr]


def _rich_echo(message: str, color: str = "white", bold: bool = False,
               symbol: Optional[str] = None, stderr: bool = False):
    """Echo message with Rich formatting."""
    if symbol and symbol in STATUS_SYMBOLS:
        message = f"{STATUS_SYMBOLS[symbol]} {message}"

    style = f"bold {color}" if bold else color
    _get_console(stderr).print(message, style=style, markup=False)


def _rich_success(message: str, symbol: Optional[str] = None):
    """Display success message with green color and bold styling."""
    if is_quiet():
        return
    _rich_echo(message, color="green", symbol=symbol, bold=True)


def _rich_error(message: str, symbol: Optional[str] = None):
    """Display error message with red color on stderr."""
    _rich_echo(message, color="red", symbol=symbol, stderr=True)


def _rich_warning(message: str, symbol: Optional[str] = None):
    """Display warning message with yellow color on stderr."""
    _rich_echo(message, color="yellow", symbol=symbol, stderr=True)


def _rich_info(message: str, symbol: Optional[str] = None):
    """Display info message with blue color."""
    if is_quiet():
        return
    _rich_echo(message, color="blue", symbol=symbol)


def _rich_status(action: str, message: str):
    """Display a right-aligned status line on stderr, the way Cargo does."""
    if is_quiet():
        return
    console = _get_console(stderr=True)
    console.print(f"[bold green]{action:>12}[/bold green] ", end="")
    console.print(message, markup=False, highlight=False)


def _rich_debug(message: str):
    """Display a dimmed diagnostic line on stderr when verbose output is on."""
    if not is_verbose():
        return
    _rich_echo(message, color="dim", stderr=True)


def _rich_panel(content: str, title: Optional[str] = None, style: str = "cyan"):
    """Display content in a Rich panel."""
    if is_quiet():
        return
    _get_console().print(Panel(Text(content), title=title, border_style=style))
