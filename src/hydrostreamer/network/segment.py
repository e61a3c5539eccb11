"""
River segment record.

A :class:`Segment` is one reach of a river network. Identity, geometry and
runoff come from upstream collaborators; topology fields are attached by the
topology builder and discharge by the routing engine. Segments are frozen:
every update produces a new instance via :func:`dataclasses.replace`.
"""

from dataclasses import dataclass, field, replace
from typing import Any, FrozenSet, Hashable, Mapping, Optional, Tuple

from shapely.geometry import LineString, MultiLineString
from shapely.geometry.base import BaseGeometry

from .timeseries import TimeSeries

LINE_TYPES = (LineString, MultiLineString)


@dataclass(frozen=True)
class Segment:
    """
    One river reach.

    Attributes:
        river_id: Unique identifier within a network
        geometry: Line or polygon geometry, opaque to routing
        runoff: Named local runoff series (m³/s)
        discharge: Named routed discharge series, filled by routing
        next_id: Downstream successor id, None for an outlet
        previous: Immediate upstream predecessor ids
        up_segments: All upstream segment ids (transitive)
        length: Channel length in metres; falls back to line geometry length
        velocity: Channel velocity in m/s overriding the configured default
        attributes: Any other columns carried along from the input table
    """
    river_id: Hashable
    geometry: Optional[BaseGeometry] = None
    runoff: Mapping[str, TimeSeries] = field(default_factory=dict)
    discharge: Mapping[str, TimeSeries] = field(default_factory=dict)
    next_id: Optional[Hashable] = None
    previous: Tuple[Hashable, ...] = ()
    up_segments: FrozenSet[Hashable] = frozenset()
    length: Optional[float] = None
    velocity: Optional[float] = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    @property
    def has_line_geometry(self) -> bool:
        return isinstance(self.geometry, LINE_TYPES) and not self.geometry.is_empty

    @property
    def is_outlet(self) -> bool:
        return self.next_id is None

    @property
    def is_headwater(self) -> bool:
        return len(self.previous) == 0

    def channel_length(self) -> Optional[float]:
        """Explicit length, else the length of the line geometry."""
        if self.length is not None:
            return float(self.length)
        if self.has_line_geometry:
            return float(self.geometry.length)
        return None

    def endpoints(self):
        """
        Initial and terminal vertex of the line geometry.

        Returns:
            Tuple of ((x, y), (x, y)), or None without line geometry
        """
        if not self.has_line_geometry:
            return None
        if isinstance(self.geometry, MultiLineString):
            parts = list(self.geometry.geoms)
            start = parts[0].coords[0]
            end = parts[-1].coords[-1]
        else:
            start = self.geometry.coords[0]
            end = self.geometry.coords[-1]
        return (start[0], start[1]), (end[0], end[1])

    def with_topology(self, next_id, previous, up_segments) -> 'Segment':
        return replace(
            self,
            next_id=next_id,
            previous=tuple(previous),
            up_segments=frozenset(up_segments),
        )

    def with_discharge(self, discharge: Mapping[str, TimeSeries]) -> 'Segment':
        return replace(self, discharge=dict(discharge))
