"""Central logging configuration for the service.

Applies a root stdout handler so all module loggers emit at the configured
level without per-module setup. Keeps uvicorn loggers visible and avoids
duplicate handlers on reloads.
"""
from __future__ import annotations
import copy
import logging
from logging.config import dictConfig

_DICT_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s:%(name)s:%(message)s",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "INFO",
            "formatter": "default",
            "stream": "ext://sys.stdout",
        }
    },
    "root": {"level": "INFO", "handlers": ["console"]},
    "loggers": {
        "formflow": {"level": "INFO"},
        "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
        "uvicorn.error": {"level": "INFO", "handlers": ["console"], "propagate": False},
        "uvicorn.access": {"level": "INFO", "handlers": ["console"], "propagate": False},
    },
}


def configure_logging(level: str = "INFO") -> None:
    """Configure service-wide logging once.

    If the root logger already has handlers, only the package level is
    adjusted to prevent duplicate output under reloaders and test runners.
    """
    root = logging.getLogger()
    if root.handlers:
        logging.getLogger("formflow").setLevel(level)
        return
    config = copy.deepcopy(_DICT_CONFIG)
    config["handlers"]["console"]["level"] = level
    config["loggers"]["formflow"]["level"] = level
    dictConfig(config)
