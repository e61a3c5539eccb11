# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 hydrostreamer developers

"""
Routing configuration.

``RoutingConfig`` is an immutable pydantic model. Fields can be populated by
their Python names or by the uppercase keys used in YAML configuration files:

    ROUTING_METHOD: constant
    ROUTING_VELOCITY: 0.8
    ROUTING_LAG_POLICY: linear
    TOPOLOGY_TOLERANCE: 1.0e-6
"""

import logging
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .constants import RoutingDefaults
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Routing keys form a closed set; unknown keys are rejected
FROZEN_CONFIG = ConfigDict(extra='forbid', populate_by_name=True, frozen=True)


class RoutingConfig(BaseModel):
    """Topology and routing configuration"""
    model_config = FROZEN_CONFIG

    method: str = Field(
        default=RoutingDefaults.METHOD,
        alias='ROUTING_METHOD',
        description='Routing method name (instant or constant)'
    )
    velocity: Optional[float] = Field(
        default=RoutingDefaults.VELOCITY,
        alias='ROUTING_VELOCITY',
        gt=0,
        description='Channel flow velocity in m/s for constant-velocity routing'
    )
    lag_policy: Literal['linear', 'nearest'] = Field(
        default=RoutingDefaults.LAG_POLICY,
        alias='ROUTING_LAG_POLICY',
        description='How fractional travel times are mapped onto the timestep grid'
    )
    timestep_seconds: Optional[float] = Field(
        default=None,
        alias='ROUTING_TIMESTEP_SECONDS',
        gt=0,
        description='Timestep override; inferred from the runoff index when unset'
    )
    tolerance: float = Field(
        default=RoutingDefaults.TOLERANCE,
        alias='TOPOLOGY_TOLERANCE',
        ge=0,
        description='Maximum distance between endpoints considered coincident'
    )
    river_id_field: str = Field(
        default=RoutingDefaults.RIVER_ID_FIELD,
        alias='RIVER_ID_FIELD',
        description='Column holding river ids when reading vector files'
    )
    log_level: str = Field(
        default='INFO',
        alias='LOG_LEVEL',
        description='Console log level applied by setup_logger'
    )

    @field_validator('method', mode='before')
    @classmethod
    def normalize_method(cls, v):
        """Strip and lowercase method names"""
        return str(v).strip().lower()

    @field_validator('lag_policy', mode='before')
    @classmethod
    def normalize_lag_policy(cls, v):
        """Strip and lowercase lag policy names"""
        return str(v).strip().lower()

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_log_level(cls, v):
        """Uppercase log level names"""
        return str(v).strip().upper()


def ensure_typed_config(config: Union[None, Dict[str, Any], RoutingConfig]) -> RoutingConfig:
    """
    Ensure configuration is a RoutingConfig instance.

    Args:
        config: Configuration as None (defaults), dict or RoutingConfig

    Returns:
        RoutingConfig instance

    Raises:
        ConfigurationError: If dict values fail validation
    """
    if isinstance(config, RoutingConfig):
        return config
    if config is None:
        return RoutingConfig()
    try:
        return RoutingConfig(**config)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid routing configuration: {e}") from e


def load_config(path: Union[str, Path]) -> RoutingConfig:
    """
    Load a RoutingConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file

    Returns:
        Validated RoutingConfig

    Raises:
        ConfigurationError: If the file is missing, unparsable, not a mapping,
            or fails validation
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse configuration YAML {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration YAML must be a mapping, got {type(data).__name__}"
        )

    config = ensure_typed_config(data)
    logger.debug(f"Loaded routing configuration from {path}")
    return config


__all__ = [
    'FROZEN_CONFIG',
    'RoutingConfig',
    'ensure_typed_config',
    'load_config',
]
