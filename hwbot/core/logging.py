from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

APP_LOGGER = "hwbot"
LOG_FILE = "app.log"

# Runtime, Flask and hotkey callbacks log from different threads.
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"

# Third-party loggers that flood the console at INFO (werkzeug logs every overlay poll).
NOISY = ("werkzeug", "asyncio")


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    return value if isinstance(value, int) else logging.INFO


def init_logging(log_dir: str | None = None, level: str | int = "INFO") -> logging.Logger:
    """Set up the ``hwbot`` logger once: console plus ``<log_dir>/app.log``.

    The file rotates at 5 MB keeping five backups; the runtime also rolls it
    over at every browser launch so each session starts a fresh file.
    ``log_dir`` defaults to ``$LOG_DIR`` or ``./logs``. Later calls return
    the configured logger untouched. Components log through children such as
    ``hwbot.dungeon`` or ``hwbot.network``.
    """
    app = logging.getLogger(APP_LOGGER)
    if app.handlers:
        return app

    resolved = _resolve_level(level)
    directory = log_dir or os.environ.get("LOG_DIR", "logs")
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, LOG_FILE)

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers = [
        RotatingFileHandler(path, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"),
        logging.StreamHandler(),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(resolved)
        app.addHandler(handler)
    app.setLevel(resolved)
    app.propagate = False

    if resolved > logging.DEBUG:
        for name in NOISY:
            logging.getLogger(name).setLevel(logging.WARNING)

    app.debug("logging ready | level=%s file=%s", logging.getLevelName(resolved), path)
    return app
