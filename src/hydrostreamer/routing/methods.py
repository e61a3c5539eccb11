# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 hydrostreamer developers

"""
Routing method registry and implementations.

Methods self-register with a decorator and are looked up by name:

    @RoutingMethodRegistry.register('instant')
    class InstantRouting(RoutingMethod):
        ...

    method_cls = RoutingMethodRegistry.get_method('instant')

A method is constructed once per routing call, validates the network before
any discharge is computed, and then combines each segment's local runoff with
the discharge of its immediate predecessors.
"""

import logging
from typing import Callable, Dict, Hashable, List, Optional, Sequence, Tuple, Type

import numpy as np

from hydrostreamer.core.config import RoutingConfig
from hydrostreamer.core.exceptions import MissingAttributeError, require
from hydrostreamer.network.model import RiverNetwork
from hydrostreamer.network.segment import Segment

from .lag import lag_series

logger = logging.getLogger(__name__)

Inflows = Sequence[Tuple[Segment, np.ndarray]]


class RoutingMethodRegistry:
    """
    Registry for routing method classes.

    Maps method names (e.g. 'instant', 'constant') to their implementing
    classes. Names are case-insensitive and legacy aliases are accepted.
    """

    _methods: Dict[str, Type['RoutingMethod']] = {}

    _aliases: Dict[str, str] = {
        'instantaneous': 'instant',
        'constant_velocity': 'constant',
        'constant-velocity': 'constant',
    }

    @classmethod
    def register(cls, method_name: str) -> Callable[[Type], Type]:
        """
        Decorator to register a routing method class.

        Args:
            method_name: Canonical name for the method

        Returns:
            Decorator function that registers the class and returns it unchanged.
        """
        def decorator(method_cls: Type) -> Type:
            cls._methods[method_name.lower()] = method_cls
            method_cls.name = method_name.lower()
            return method_cls
        return decorator

    @classmethod
    def get_method(cls, method_name: str) -> Optional[Type['RoutingMethod']]:
        """
        Get method class by name.

        Returns:
            Method class if found, None otherwise.
        """
        normalized = method_name.lower().strip()
        if normalized in cls._methods:
            return cls._methods[normalized]
        canonical = cls._aliases.get(normalized)
        if canonical:
            return cls._methods.get(canonical)
        return None

    @classmethod
    def list_methods(cls) -> List[str]:
        """List all registered method names (canonical names only)."""
        return sorted(cls._methods)


class RoutingMethod:
    """
    Base class for routing methods.

    Args:
        config: Routing configuration
        timestep_seconds: Shared timestep of the runoff series, None if
            irregular or unknown
    """

    name = 'base'
    requires_timestep = False

    def __init__(self, config: RoutingConfig, timestep_seconds: Optional[float] = None):
        self.config = config
        self.timestep_seconds = timestep_seconds

    def validate(self, network: RiverNetwork) -> None:
        """Check method-specific preconditions before routing starts."""

    def route(self, segment: Segment, local: np.ndarray, inflows: Inflows) -> np.ndarray:
        raise NotImplementedError


@RoutingMethodRegistry.register('instant')
class InstantRouting(RoutingMethod):
    """
    Instantaneous accumulation.

    Flow crosses the whole upstream network within one timestep:
    ``Q[t] = r[t] + sum(Q_pred[t])``.
    """

    def route(self, segment: Segment, local: np.ndarray, inflows: Inflows) -> np.ndarray:
        total = np.array(local, dtype=float)
        for _, upstream_q in inflows:
            total += upstream_q
        return total


@RoutingMethodRegistry.register('constant')
class ConstantVelocityRouting(RoutingMethod):
    """
    Constant-velocity accumulation.

    Discharge leaving a predecessor reaches the downstream segment after the
    predecessor's travel time ``length / velocity``:
    ``Q[t] = r[t] + sum(Q_pred[t - lag_pred])`` with the lag expressed in
    timesteps and fractional lags handled by the configured lag policy.
    """

    requires_timestep = True

    def __init__(self, config: RoutingConfig, timestep_seconds: Optional[float] = None):
        super().__init__(config, timestep_seconds)
        self.lags: Dict[Hashable, float] = {}

    def travel_time(self, segment: Segment) -> float:
        """
        Travel time through a segment in seconds.

        Raises:
            MissingAttributeError: If length or velocity cannot be determined
        """
        length = segment.channel_length()
        if length is None:
            raise MissingAttributeError(
                f"Segment {segment.river_id!r} has no 'length' and no line geometry; "
                "constant-velocity routing needs companion line topology or a length column",
                attribute='length',
            )
        velocity = segment.velocity if segment.velocity is not None else self.config.velocity
        if velocity is None:
            raise MissingAttributeError(
                f"Segment {segment.river_id!r} has no 'velocity' and no default velocity is configured",
                attribute='velocity',
            )
        require(
            velocity > 0 and length >= 0,
            f"Segment {segment.river_id!r} needs positive velocity and non-negative "
            f"length, got velocity={velocity}, length={length}"
        )
        return length / velocity

    def validate(self, network: RiverNetwork) -> None:
        self.lags = {}
        for segment in network:
            if segment.next_id is None:
                continue
            self.lags[segment.river_id] = self.travel_time(segment) / self.timestep_seconds

        if self.lags:
            logger.debug(
                f"Travel-time lags range {min(self.lags.values()):.3f} to "
                f"{max(self.lags.values()):.3f} timesteps ({self.config.lag_policy} policy)"
            )

    def route(self, segment: Segment, local: np.ndarray, inflows: Inflows) -> np.ndarray:
        total = np.array(local, dtype=float)
        for upstream, upstream_q in inflows:
            total += lag_series(upstream_q, self.lags[upstream.river_id], self.config.lag_policy)
        return total
