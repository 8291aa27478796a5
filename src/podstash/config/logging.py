"""Logging setup for the Podstash CLI."""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(
    verbose: bool = False,
    log_file: Path | None = None,
    level: str | None = None,
) -> None:
    """Configure root logging for a CLI invocation.

    Console output goes through rich on stderr. An optional log file receives
    plain, timestamped lines.

    Args:
        verbose: Enable DEBUG output
        log_file: Optional file to also write logs to
        level: Explicit level name, overridden by ``verbose``
    """
    if verbose:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, (level or "INFO").upper(), logging.INFO)

    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=verbose,
        )
    ]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def apply_log_level(level: str) -> None:
    """Apply an archive's configured log level once its settings are loaded.

    ``--verbose`` always wins over the configured level.
    """
    root = logging.getLogger()
    if root.level == logging.DEBUG:
        return
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
