# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 hydrostreamer developers

"""
In-memory river network model.

``RiverNetwork`` is an insertion-ordered, read-only collection of
:class:`~hydrostreamer.network.segment.Segment` keyed by river id. Topology is
attached by :mod:`hydrostreamer.network.topology`; reads never recompute it.
Updates return new networks.
"""

from collections import deque
from typing import Dict, FrozenSet, Hashable, Iterable, Iterator, List, Optional, Tuple

import networkx as nx

from hydrostreamer.core.exceptions import SchemaError, TopologyError

from .segment import Segment


class RiverNetwork:
    """
    Collection of river segments with derived topology.

    Args:
        segments: Segments in the order they should be iterated
        topology_built: Whether next/previous/up_segments fields are valid

    Raises:
        SchemaError: If two segments share a river id
    """

    def __init__(self, segments: Iterable[Segment], topology_built: bool = False):
        self._segments: Dict[Hashable, Segment] = {}
        for segment in segments:
            if segment.river_id in self._segments:
                raise SchemaError(f"Duplicate river id: {segment.river_id!r}")
            self._segments[segment.river_id] = segment
        self._topology_built = topology_built

    # =========================================================================
    # Lookup
    # =========================================================================

    @property
    def topology_built(self) -> bool:
        return self._topology_built

    @property
    def ids(self) -> List[Hashable]:
        return list(self._segments)

    def get_segment(self, river_id: Hashable) -> Segment:
        """
        Look up a segment.

        Raises:
            SchemaError: If the id is not in the network
        """
        try:
            return self._segments[river_id]
        except KeyError:
            raise SchemaError(f"River id {river_id!r} not found in network") from None

    __getitem__ = get_segment

    def __contains__(self, river_id) -> bool:
        return river_id in self._segments

    def __iter__(self) -> Iterator[Segment]:
        return iter(self._segments.values())

    def __len__(self) -> int:
        return len(self._segments)

    def __repr__(self):
        state = "built" if self._topology_built else "unbuilt"
        return f"RiverNetwork({len(self)} segments, topology {state})"

    def successor(self, river_id: Hashable) -> Optional[Hashable]:
        return self.get_segment(river_id).next_id

    def predecessors(self, river_id: Hashable) -> Tuple[Hashable, ...]:
        return self.get_segment(river_id).previous

    def ancestors(self, river_id: Hashable) -> FrozenSet[Hashable]:
        return self.get_segment(river_id).up_segments

    def outlets(self) -> List[Hashable]:
        return [s.river_id for s in self if s.next_id is None]

    def headwaters(self) -> List[Hashable]:
        return [s.river_id for s in self if not s.previous]

    def series_names(self) -> List[str]:
        """Runoff series names in first-seen order."""
        names: Dict[str, None] = {}
        for segment in self:
            for name in segment.runoff:
                names.setdefault(name, None)
        return list(names)

    # =========================================================================
    # Graph views
    # =========================================================================

    def to_graph(self) -> nx.DiGraph:
        """
        Directed graph with edges pointing downstream.

        Node attributes hold the segment under the ``segment`` key.
        """
        graph = nx.DiGraph()
        for segment in self:
            graph.add_node(segment.river_id, segment=segment)
        for segment in self:
            if segment.next_id is not None:
                graph.add_edge(segment.river_id, segment.next_id)
        return graph

    def topological_order(self) -> List[Hashable]:
        """
        Ids ordered upstream before downstream.

        Independent branches keep their insertion order, so the result is
        deterministic for a given input.

        Raises:
            TopologyError: If the downstream relation contains a cycle
        """
        pending = {s.river_id: 0 for s in self}
        for segment in self:
            if segment.next_id is not None and segment.next_id in pending:
                pending[segment.next_id] += 1

        queue = deque(rid for rid, count in pending.items() if count == 0)
        order = []
        while queue:
            rid = queue.popleft()
            order.append(rid)
            next_id = self._segments[rid].next_id
            if next_id is not None and next_id in pending:
                pending[next_id] -= 1
                if pending[next_id] == 0:
                    queue.append(next_id)

        if len(order) != len(self):
            stuck = [rid for rid, count in pending.items() if count > 0]
            try:
                cycle = [u for u, _ in nx.find_cycle(self.to_graph(), source=stuck[0])]
            except nx.NetworkXNoCycle:
                cycle = stuck
            raise TopologyError(f"River network contains a cycle: {cycle}")
        return order

    # =========================================================================
    # Validation and updates
    # =========================================================================

    def validate_integrity(self) -> None:
        """
        Check that all topology references resolve inside the network.

        Raises:
            TopologyError: On a dangling successor, predecessor or ancestor id,
                or when a segment lists itself upstream
        """
        for segment in self:
            rid = segment.river_id
            if segment.next_id is not None and segment.next_id not in self._segments:
                raise TopologyError(
                    f"Segment {rid!r} drains to unknown segment {segment.next_id!r}"
                )
            for pid in segment.previous:
                if pid not in self._segments:
                    raise TopologyError(f"Segment {rid!r} lists unknown predecessor {pid!r}")
                if self._segments[pid].next_id != rid:
                    raise TopologyError(
                        f"Segment {rid!r} lists {pid!r} upstream but {pid!r} drains "
                        f"to {self._segments[pid].next_id!r}"
                    )
            missing = [uid for uid in segment.up_segments if uid not in self._segments]
            if missing:
                raise TopologyError(f"Segment {rid!r} lists unknown upstream segments {missing}")
            if rid in segment.up_segments:
                raise TopologyError(f"Segment {rid!r} is listed in its own upstream set")

    def with_segments(self, segments: Iterable[Segment],
                      topology_built: Optional[bool] = None) -> 'RiverNetwork':
        """New network from segments, inheriting the topology flag by default."""
        if topology_built is None:
            topology_built = self._topology_built
        return RiverNetwork(segments, topology_built=topology_built)

    def replace_segment(self, segment: Segment) -> 'RiverNetwork':
        """New network with one segment swapped, keeping position."""
        self.get_segment(segment.river_id)
        return self.with_segments(
            segment if s.river_id == segment.river_id else s for s in self
        )
