from __future__ import annotations

import logging

PACKAGE_LOGGER = "auth_sdk"


def configure_logging(level: str | int = "INFO") -> int:
    """
    Apply ``level`` to every ``auth_sdk.*`` logger and return it as an int.

    Handlers and formatting stay with the host application. Called by
    ``TokenValidationConfig.from_environ`` with ``AUTH_SDK_LOG_LEVEL``.
    Raises ValueError for an unknown level name.
    """
    if isinstance(level, str):
        level = level.strip().upper()
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    return logger.level
