from __future__ import annotations

import logging
import logging.handlers
import os

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at INFO.
_QUIET = ("sqlalchemy.engine", "aiohttp.access", "passlib")


def configure_logging(*, log_dir: str | None, level: str = "INFO") -> None:
    """Attach console and rotating file handlers to the root logger.

    Safe to call more than once: handlers are only installed on the first call.
    An empty ``log_dir`` keeps logging on the console only.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)

    if root.handlers:
        return

    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=os.path.join(log_dir, "dovi.log"),
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
