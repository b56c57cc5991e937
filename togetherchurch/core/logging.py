from __future__ import annotations

import logging

from togetherchurch.core.config import get_settings


_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_QUIET_LOGGERS = ("sqlalchemy.engine", "asyncio", "httpx", "httpcore")


def configure_logging(level: str | None = None) -> None:
    # Configure the root logger once; repeated calls only adjust the level.
    resolved = (level or get_settings().log_level).upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=resolved, format=_LOG_FORMAT)
    root.setLevel(resolved)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
