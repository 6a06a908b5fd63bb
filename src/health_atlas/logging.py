from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_LEVEL_ENV = "HEALTH_ATLAS_LOG_LEVEL"

# requests logs every connection at DEBUG through urllib3.
_NOISY_LOGGERS = ("urllib3",)


def resolve_log_level(level: str | None = None) -> str:
    return (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()


def configure_logging(level: str | None = None) -> None:
    resolved = resolve_log_level(level)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
