from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Set the level of the ``groupware_authz`` logger tree.

    Handlers are left to the host (uvicorn configures its own). Use
    ``AUTHZ_LOG_LEVEL=DEBUG`` to trace the individual fetch/scan iterations
    of the permission resolution.
    """

    logger = logging.getLogger("groupware_authz")
    logger.setLevel(level.upper())
    logger.propagate = True
