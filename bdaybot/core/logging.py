"""Logging configuration"""

import logging

from rich.console import Console
from rich.logging import RichHandler

_DATE_FORMAT = "[%Y-%m-%d %H:%M:%S]"

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("discord", "discord.http", "discord.gateway", "aiohttp", "asyncio")


def _rich_handler() -> logging.Handler:
    handler = RichHandler(
        console=Console(stderr=True, width=120),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_width=120,
    )
    handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt=_DATE_FORMAT))
    return handler


def setup_logging(level_name: str = "INFO") -> None:
    """Route the root logger through Rich at ``level_name``.

    Falls back to a plain stream handler when the console cannot be set up
    (no TTY encoding, broken terminal, etc.).
    """
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO

    try:
        handlers = [_rich_handler()]
        logging.basicConfig(level=level, handlers=handlers, force=True)
    except Exception as e:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt=_DATE_FORMAT,
            force=True,
        )
        logging.getLogger(__name__).warning(f"Rich logging unavailable ({e}), using plain output")

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
