"""Console logging for the CLI.

Library modules only create module loggers; handlers are installed here,
by the command line entry point.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(console: Console, *, verbose: bool = False) -> None:
    """Route `evmstream` loggers to the rich console."""
    handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root = logging.getLogger("evmstream")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False
