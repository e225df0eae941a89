"""
Logging setup for the command line.

Library modules only create loggers with ``logging.getLogger(__name__)``;
handlers are installed here, by the CLI, and nowhere else.
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)


def configure_logging(verbose: bool = False, quiet: bool = False, target: Optional[Console] = None) -> None:
	root_logger = logging.getLogger()
	for handler in list(root_logger.handlers):
		if isinstance(handler, RichHandler):
			root_logger.removeHandler(handler)

	rich_handler = RichHandler(
		console=target or console,
		show_time=False,
		omit_repeated_times=False,
		show_path=False,
		rich_tracebacks=True,
	)
	if verbose:
		level = logging.DEBUG
	elif quiet:
		level = logging.ERROR
	else:
		level = logging.INFO
	root_logger.setLevel(level)
	root_logger.addHandler(rich_handler)
