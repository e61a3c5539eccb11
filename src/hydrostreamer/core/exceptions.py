# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 hydrostreamer developers

"""
Custom exception hierarchy for hydrostreamer.

Every failure raised by topology building, routing and subnetwork extraction
derives from :class:`HydrostreamerError`, so callers can catch all of them
with a single except clause. Failures are always raised synchronously; no
partially routed network is ever returned.
"""

import logging
from contextlib import contextmanager
from typing import Optional, TypeVar


class HydrostreamerError(Exception):
    """
    Base exception for all hydrostreamer-specific errors.

    All custom exceptions in hydrostreamer should inherit from this class.
    """
    pass


class ConfigurationError(HydrostreamerError):
    """
    Configuration-related errors.

    Raised when:
    - The configuration file cannot be found or parsed
    - Configuration values fail validation
    - An unknown routing method or lag policy is requested
    """
    pass


class ValidationError(HydrostreamerError):
    """
    Input data validation failures.

    Base class for errors caused by malformed segment collections.
    """
    pass


class SchemaError(ValidationError):
    """
    Segment collection schema violations.

    Raised when:
    - The river id column is missing
    - River ids are duplicated
    - Runoff time series differ in length or timestamps across segments
    - A series name is missing from some segments
    """
    pass


class MissingAttributeError(ValidationError):
    """
    A routing method needs an attribute the input does not provide.

    Raised when:
    - Constant-velocity routing has no derivable length or velocity
    - Topology is requested for segments without line geometry and without
      borrowed topology fields
    """

    def __init__(self, message: str, attribute: Optional[str] = None):
        super().__init__(message)
        self.attribute = attribute


class NetworkError(HydrostreamerError):
    """
    River network structure failures.
    """
    pass


class TopologyError(NetworkError):
    """
    Invalid river network topology.

    Raised when:
    - The downstream relation contains a cycle
    - A successor or predecessor reference does not resolve to a segment
    - A topology transplant is attempted from an unbuilt network
    """
    pass


# =============================================================================
# Validation Helpers
# =============================================================================

T = TypeVar('T')


def require(condition: bool, message: str, error_type: type = None) -> None:
    """
    Validate a condition, raising an exception if it fails.

    Args:
        condition: The condition that must be True
        message: Error message if condition is False
        error_type: Exception type to raise (default: ValidationError)

    Raises:
        ValidationError (or specified error_type) if condition is False

    Example:
        >>> require(len(segments) > 0, "Network cannot be empty")
    """
    if error_type is None:
        error_type = ValidationError
    if not condition:
        raise error_type(message)


def require_not_none(value: Optional[T], name: str, error_type: type = None) -> T:
    """
    Validate that a value is not None, returning it if valid.

    Args:
        value: The value to check
        name: Name of the value (for error message)
        error_type: Exception type to raise (default: ValidationError)

    Returns:
        The value if it is not None
    """
    if error_type is None:
        error_type = ValidationError
    if value is None:
        raise error_type(f"{name} must not be None")
    return value


@contextmanager
def hydrostreamer_error_handler(
    operation: str,
    logger: Optional[logging.Logger] = None,
    reraise: bool = True,
    error_type: type = HydrostreamerError
):
    """
    Context manager for standardized error handling.

    hydrostreamer errors pass through unchanged; any other exception is
    converted to ``error_type`` and chained.

    Args:
        operation: Description of the operation being performed (for logging)
        logger: Logger instance for error messages. If None, errors are not logged.
        reraise: Whether to re-raise the exception after handling (default: True)
        error_type: hydrostreamer exception type to convert generic exceptions to

    Example:
        >>> with hydrostreamer_error_handler("reading river lines", logger):
        ...     rivers = gpd.read_file(path)
    """
    try:
        yield
    except HydrostreamerError:
        if logger:
            logger.error(f"Error during {operation}", exc_info=True)
        if reraise:
            raise
    except Exception as e:
        if logger:
            logger.error(f"Error during {operation}: {e}", exc_info=True)
        if reraise:
            raise error_type(f"Failed during {operation}: {e}") from e


__all__ = [
    # Base
    'HydrostreamerError',
    # Domain exceptions
    'ConfigurationError',
    'ValidationError',
    'SchemaError',
    'MissingAttributeError',
    'NetworkError',
    'TopologyError',
    # Helpers
    'require',
    'require_not_none',
    'hydrostreamer_error_handler',
]
