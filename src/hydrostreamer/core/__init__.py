"""Core utilities: configuration, exceptions, constants, logging and timing."""

from .config import RoutingConfig, ensure_typed_config, load_config
from .exceptions import (
    ConfigurationError,
    HydrostreamerError,
    MissingAttributeError,
    NetworkError,
    SchemaError,
    TopologyError,
    ValidationError,
)
from .logging import setup_logger

__all__ = [
    'RoutingConfig',
    'ensure_typed_config',
    'load_config',
    'HydrostreamerError',
    'ConfigurationError',
    'ValidationError',
    'SchemaError',
    'MissingAttributeError',
    'NetworkError',
    'TopologyError',
    'setup_logger',
]
