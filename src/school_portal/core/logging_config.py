"""Logging configuration.

Configures the root logger once for the whole service. Module code only ever
calls ``logging.getLogger(__name__)``.
"""

import logging
from typing import Optional

from school_portal.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

_configured = False


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging for the service.

    Args:
        level: Optional level name overriding ``LOG_LEVEL``.
    """
    global _configured
    if _configured:
        return

    logging.basicConfig(level=level or LOG_LEVEL, format=LOG_FORMAT)
    # Keep SQL echo and connection pool chatter out of the service log
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    _configured = True
