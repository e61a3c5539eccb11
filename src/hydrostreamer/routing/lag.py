"""
Travel-time lag on a fixed timestep grid.

A travel time rarely equals a whole number of timesteps. The lag policy
decides how a fractional lag ``k + f`` (``0 <= f < 1``) is applied:

- ``linear``: ``(1 - f) * Q[t - k] + f * Q[t - k - 1]``, i.e. the flow is
  split between the two bracketing bins. Volume is conserved except for
  what is shifted past the end of the series.
- ``nearest``: the lag is rounded half-up to whole timesteps.

Values before the start of the series are zero (no antecedent flow).
"""

import math
from typing import Callable, Dict

import numpy as np

from hydrostreamer.core.exceptions import ConfigurationError


def shift(values: np.ndarray, steps: int) -> np.ndarray:
    """Delay a series by whole timesteps, padding the start with zeros."""
    values = np.asarray(values, dtype=float)
    out = np.zeros_like(values)
    if steps <= 0:
        out[:] = values
    elif steps < len(values):
        out[steps:] = values[:len(values) - steps]
    return out


def _linear(values: np.ndarray, lag_steps: float) -> np.ndarray:
    whole = int(math.floor(lag_steps))
    fraction = lag_steps - whole
    lagged = shift(values, whole)
    if fraction > 0:
        lagged = (1.0 - fraction) * lagged + fraction * shift(values, whole + 1)
    return lagged


def _nearest(values: np.ndarray, lag_steps: float) -> np.ndarray:
    return shift(values, int(math.floor(lag_steps + 0.5)))


LAG_POLICIES: Dict[str, Callable[[np.ndarray, float], np.ndarray]] = {
    'linear': _linear,
    'nearest': _nearest,
}


def lag_series(values: np.ndarray, lag_steps: float, policy: str = 'linear') -> np.ndarray:
    """
    Delay a series by a possibly fractional number of timesteps.

    Args:
        values: Series values, oldest first
        lag_steps: Non-negative delay in timesteps
        policy: 'linear' or 'nearest'

    Returns:
        New array of the same length

    Raises:
        ConfigurationError: If the policy is unknown
        ValueError: If lag_steps is negative or not finite
    """
    try:
        apply = LAG_POLICIES[policy]
    except KeyError:
        raise ConfigurationError(
            f"Unknown lag policy {policy!r}; choose from {sorted(LAG_POLICIES)}"
        ) from None
    if not np.isfinite(lag_steps) or lag_steps < 0:
        raise ValueError(f"Lag must be a non-negative finite number of timesteps, got {lag_steps}")
    return apply(values, float(lag_steps))
