"""Centralized logging setup for the API process."""

import logging

from hazard_hub.core.settings import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(module)s:%(lineno)d | %(message)s"


def configure_logging(settings: Settings) -> logging.Logger:
    level = getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")

    root = logging.getLogger("hazard_hub")
    root.setLevel(level)
    # Idempotent: create_app may run more than once per process (tests)
    if not any(getattr(h, "_hazard_hub", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler._hazard_hub = True
        root.addHandler(handler)

    root.debug("Logging initialized at %s", logging.getLevelName(level))
    return root
