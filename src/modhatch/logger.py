"""Rich-backed logging shared by all modhatch modules."""

import logging

from rich.console import Console
from rich.logging import RichHandler


console = Console()

_ROOT = "modhatch"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``modhatch`` namespace.

    The Rich console handler is attached once, to the package root logger,
    so module loggers only propagate to it.

    Args:
        name: Logger name (typically ``__name__``)

    Returns:
        Logger instance
    """
    root = logging.getLogger(_ROOT)
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(console=console, show_path=False, show_time=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
        root.setLevel(logging.WARNING)

    return logging.getLogger(name)


def set_verbose(verbose: bool) -> None:
    """Switch the package logger between WARNING and DEBUG."""
    get_logger(_ROOT).setLevel(logging.DEBUG if verbose else logging.WARNING)
