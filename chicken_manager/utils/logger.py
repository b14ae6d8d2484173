"""
Logging configuration
"""
import logging
import sys
from chicken_manager.config import get_settings

settings = get_settings()

ROOT_LOGGER = "chicken_manager"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))
        root.addHandler(handler)
        root.propagate = False
    root.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    return root


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the application namespace, configuring output once"""
    _configure_root()
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
