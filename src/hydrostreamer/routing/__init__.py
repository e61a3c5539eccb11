"""Runoff accumulation (instantaneous and constant-velocity routing)."""

from hydrostreamer.routing.engine import RoutingEngine, accumulate_runoff, discharge_at
from hydrostreamer.routing.lag import lag_series
from hydrostreamer.routing.methods import (
    ConstantVelocityRouting,
    InstantRouting,
    RoutingMethod,
    RoutingMethodRegistry,
)

__all__ = [
    'RoutingEngine',
    'accumulate_runoff',
    'discharge_at',
    'lag_series',
    'RoutingMethod',
    'RoutingMethodRegistry',
    'InstantRouting',
    'ConstantVelocityRouting',
]
