"""Logging setup for the CLI and web entry points."""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(verbose: bool = False, format_string: str | None = None) -> None:
    """Configure the root logger on stderr.

    Verbose mode drops to DEBUG, which also surfaces the full tool commands
    and their stderr.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=format_string or LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    # Flask's request log is noise at INFO.
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
