# salesdesk/core/logging_config.py
from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Root logging setup, called once from create_application().
    Modules log through logging.getLogger(__name__).
    """
    resolved = logging.getLevelName((level or "INFO").strip().upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger("salesdesk").setLevel(resolved)
    # SQL echo stays off unless explicitly asked for.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
