from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from core.config import BACKEND_DIR


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"

# Per-logger levels applied on top of the root level. `None` means "follow the root".
_LOGGER_LEVELS: dict[str, int | None] = {
    "uvicorn": None,
    "uvicorn.error": None,
    "uvicorn.access": None,
    # SQL echo is far too chatty for DEBUG consoles.
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
}


def _file_handler(log_dir: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_dir / "campus.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(*, environment: str, log_dir: Path | None = None) -> None:
    """Configure root logging once per process.

    Development and test runs log DEBUG to the console. Production logs INFO to
    the console and to a rotating `logs/campus.log` next to the backend code.
    Calling it again is a no-op.
    """

    root = logging.getLogger()
    if root.handlers:
        return

    production = (environment or "development").strip().lower() == "production"
    level = logging.INFO if production else logging.DEBUG
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    handlers: list[logging.Handler] = [console]

    if production:
        handlers.append(_file_handler(log_dir or Path(BACKEND_DIR) / "logs", level, formatter))

    logging.basicConfig(level=level, handlers=handlers)

    for name, override in _LOGGER_LEVELS.items():
        logging.getLogger(name).setLevel(level if override is None else override)
