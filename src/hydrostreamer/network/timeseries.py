"""
Typed runoff and discharge time series.

A :class:`TimeSeries` pairs a strictly increasing ``pandas.DatetimeIndex``
with a float array of the same length. Values are volumetric flows in m³/s.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from hydrostreamer.core.exceptions import SchemaError


@dataclass(frozen=True, eq=False)
class TimeSeries:
    """
    Ordered (timestamp, value) pairs.

    Attributes:
        index: Timestamps, strictly increasing
        values: Flow values in m³/s, read-only
    """
    index: pd.DatetimeIndex
    values: np.ndarray

    def __post_init__(self):
        index = pd.DatetimeIndex(self.index)
        values = np.array(self.values, dtype=float).reshape(-1)
        if len(index) != len(values):
            raise SchemaError(
                f"Time series has {len(index)} timestamps but {len(values)} values"
            )
        if len(index) > 1 and not index.is_monotonic_increasing:
            raise SchemaError("Time series timestamps must be increasing")
        if index.has_duplicates:
            raise SchemaError("Time series timestamps must be unique")
        values.setflags(write=False)
        object.__setattr__(self, 'index', index)
        object.__setattr__(self, 'values', values)

    @classmethod
    def from_series(cls, series: pd.Series) -> 'TimeSeries':
        """Build from a pandas Series indexed by timestamps."""
        return cls(index=pd.DatetimeIndex(series.index), values=series.to_numpy(dtype=float))

    @classmethod
    def from_pairs(cls, pairs: Iterable) -> 'TimeSeries':
        """Build from an iterable of (timestamp, value) pairs."""
        pairs = list(pairs)
        timestamps = [t for t, _ in pairs]
        values = [v for _, v in pairs]
        return cls(index=pd.DatetimeIndex(timestamps), values=np.asarray(values, dtype=float))

    def to_series(self, name: Optional[str] = None) -> pd.Series:
        return pd.Series(self.values, index=self.index, name=name)

    def with_values(self, values: np.ndarray) -> 'TimeSeries':
        """New series on the same timestamps."""
        return TimeSeries(index=self.index, values=values)

    def same_axis(self, other: 'TimeSeries') -> bool:
        """True when both series share an identical timestamp sequence."""
        return len(self) == len(other) and self.index.equals(other.index)

    def timestep_seconds(self) -> Optional[float]:
        """
        Uniform spacing of the index in seconds.

        Returns:
            The step length, or None for a single timestamp or an irregular index
        """
        if len(self.index) < 2:
            return None
        steps = (self.index[1:] - self.index[:-1]).total_seconds().to_numpy()
        if not np.all(steps == steps[0]):
            return None
        return float(steps[0])

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self):
        return iter(zip(self.index, self.values))

    def __eq__(self, other):
        if not isinstance(other, TimeSeries):
            return NotImplemented
        return self.same_axis(other) and np.array_equal(self.values, other.values)

    def __repr__(self):
        if len(self) == 0:
            return "TimeSeries(empty)"
        return f"TimeSeries({len(self)} steps, {self.index[0]} .. {self.index[-1]})"
