"""
Logger setup for hydrostreamer.

Library modules log through ``logging.getLogger(__name__)``; applications call
:func:`setup_logger` once to get console output, optionally at the level named
by ``LOG_LEVEL`` in a routing configuration.
"""

import logging
from typing import Optional, Union

from .config import RoutingConfig

LOG_FORMAT = '[%(asctime)s] [%(levelname)s] [%(name)s] - %(message)s'


def setup_logger(
    name: str = 'hydrostreamer',
    level: Union[None, int, str] = None,
    config: Optional[RoutingConfig] = None,
) -> logging.Logger:
    """
    Configure and return a console logger.

    Calling this repeatedly only updates the level; a second handler is never
    attached.

    Args:
        name: Logger name (default: package root logger)
        level: Level name or number; overrides ``config.log_level``
        config: Routing configuration supplying ``LOG_LEVEL`` when level is None

    Returns:
        The configured logger

    Example:
        >>> config = load_config('routing.yaml')
        >>> logger = setup_logger(config=config)
    """
    if level is None:
        level = config.log_level if config is not None else 'INFO'
    logger = logging.getLogger(name)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
