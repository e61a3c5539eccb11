"""
Physical constants, unit conversion factors and routing defaults.

Centralizes hardcoded values used by topology building and routing.
"""


class UnitConversion:
    """
    Unit conversion factors for runoff and discharge.
    """

    MM_TO_M = 1e-3
    """Convert millimetres to metres."""

    @classmethod
    def mm_per_timestep_to_cms_factor(cls, area_m2: float, timestep_seconds: float) -> float:
        """
        Get the multiplier converting a runoff depth to volumetric flow.

        A depth of 1 mm over ``area_m2`` square metres released during one
        timestep of ``timestep_seconds`` seconds corresponds to
        ``area_m2 * 0.001 / timestep_seconds`` m³/s.

        Args:
            area_m2: Catchment area in square metres
            timestep_seconds: Timestep length in seconds

        Returns:
            Factor to multiply mm/timestep by to obtain m³/s
        """
        return area_m2 * cls.MM_TO_M / timestep_seconds


class RoutingDefaults:
    """Default values for topology building and routing."""

    VELOCITY = 1.0
    """Channel flow velocity in m/s used when segments carry none."""

    TOLERANCE = 1e-6
    """Maximum endpoint distance treated as coincident (CRS units)."""

    RIVER_ID_FIELD = 'riverID'
    """Default name of the river id column."""

    LAG_POLICY = 'linear'
    """Default fractional travel-time policy."""

    METHOD = 'instant'
    """Default routing method."""


OUTLET_ID = -9999
"""Tabular stand-in for "no downstream segment" in the NEXT column."""

NEXT_FIELD = 'NEXT'
PREVIOUS_FIELD = 'PREVIOUS'
UP_SEGMENTS_FIELD = 'UP_SEGMENTS'
