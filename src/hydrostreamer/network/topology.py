# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 hydrostreamer developers

"""
River network topology builder.

Derives downstream successors, upstream predecessors and full upstream sets
from line geometry. Two segments connect when the terminal vertex of one lies
within ``tolerance`` of the initial vertex of the other, i.e. lines are assumed
to be digitized in flow direction.

Also provides two alternatives to geometric matching:
- ``build_topology_from_links``: explicit ``river_id -> next_id`` links
- ``transplant_topology``: borrow topology from a companion line network
  sharing the same river ids (e.g. catchment polygons of the lines)
"""

import logging
from dataclasses import replace
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Union

import numpy as np
import pandas as pd
from shapely import STRtree
from shapely.geometry import Point

from hydrostreamer.core.constants import OUTLET_ID, RoutingDefaults
from hydrostreamer.core.exceptions import MissingAttributeError, SchemaError, TopologyError

from .model import RiverNetwork
from .segment import Segment

SegmentsLike = Union[RiverNetwork, Iterable[Segment]]


def _as_network(segments: SegmentsLike) -> RiverNetwork:
    if isinstance(segments, RiverNetwork):
        return segments
    return RiverNetwork(segments)


def _is_outlet_marker(value: Any) -> bool:
    if value is None:
        return True
    if np.ndim(value) == 0 and pd.isna(value):
        return True
    try:
        return value == OUTLET_ID
    except (TypeError, ValueError):
        return False


def _attach(network: RiverNetwork, next_ids: Dict[Hashable, Optional[Hashable]]) -> RiverNetwork:
    """Attach successor links, derive predecessors and upstream sets."""
    previous: Dict[Hashable, List[Hashable]] = {rid: [] for rid in network.ids}
    for rid in network.ids:
        next_id = next_ids[rid]
        if next_id is not None:
            previous[next_id].append(rid)

    linked = network.with_segments(
        (s.with_topology(next_ids[s.river_id], previous[s.river_id], ()) for s in network),
        topology_built=False,
    )
    return compute_ancestors(linked)


def compute_ancestors(network: RiverNetwork) -> RiverNetwork:
    """
    Recompute every segment's full upstream set from its predecessors.

    Walks the network upstream-first so each set is the union of the
    predecessors' sets plus the predecessors themselves.

    Args:
        network: Network whose next/previous fields are set

    Returns:
        New network with ``up_segments`` filled and topology marked built

    Raises:
        TopologyError: If the downstream relation contains a cycle
    """
    order = network.topological_order()
    upstream: Dict[Hashable, frozenset] = {}
    for rid in order:
        segment = network[rid]
        ids = set()
        for pid in segment.previous:
            ids.add(pid)
            ids |= upstream[pid]
        upstream[rid] = frozenset(ids)

    result = network.with_segments(
        (s.with_topology(s.next_id, s.previous, upstream[s.river_id]) for s in network),
        topology_built=True,
    )
    result.validate_integrity()
    return result


def build_topology(
    segments: SegmentsLike,
    tolerance: float = RoutingDefaults.TOLERANCE,
    logger: Optional[logging.Logger] = None,
) -> RiverNetwork:
    """
    Derive network topology from coincident line endpoints.

    Any topology already present on the input is ignored, so rebuilding a
    built network reproduces the same result. Segments whose endpoints match
    nothing become isolated headwater-outlets.

    Args:
        segments: RiverNetwork or iterable of Segment with line geometry
        tolerance: Maximum endpoint distance treated as coincident
        logger: Logger for diagnostics (default: module logger)

    Returns:
        New RiverNetwork with next/previous/up_segments attached

    Raises:
        MissingAttributeError: If a segment has no line geometry
        TopologyError: If the matched endpoints form a cycle
    """
    log = logger or logging.getLogger(__name__)
    network = _as_network(segments)
    ids = network.ids

    no_lines = [s.river_id for s in network if not s.has_line_geometry]
    if no_lines:
        raise MissingAttributeError(
            f"Cannot derive topology for segments without line geometry {no_lines[:10]}; "
            "supply topology from a companion line network (transplant_topology) "
            "or explicit NEXT links",
            attribute='geometry',
        )

    endpoints = [s.endpoints() for s in network]
    starts = [Point(start) for start, _ in endpoints]
    tree = STRtree(starts)

    next_ids: Dict[Hashable, Optional[Hashable]] = {}
    for i, (_, end) in enumerate(endpoints):
        hits = tree.query(Point(end), predicate='dwithin', distance=tolerance)
        candidates = sorted(int(j) for j in np.atleast_1d(hits) if int(j) != i)
        if not candidates:
            next_ids[ids[i]] = None
            continue
        if len(candidates) > 1:
            log.warning(
                f"Segment {ids[i]!r} ends where {len(candidates)} segments start "
                f"({[ids[j] for j in candidates]}); keeping {ids[candidates[0]]!r}"
            )
        next_ids[ids[i]] = ids[candidates[0]]

    result = _attach(network, next_ids)
    log.debug(
        f"Built topology for {len(result)} segments: "
        f"{len(result.outlets())} outlets, {len(result.headwaters())} headwaters"
    )
    return result


def build_topology_from_links(
    segments: SegmentsLike,
    next_ids: Mapping[Hashable, Any],
) -> RiverNetwork:
    """
    Build topology from explicit downstream links.

    Args:
        segments: RiverNetwork or iterable of Segment
        next_ids: Mapping of river id to downstream id; None, NaN or
            ``OUTLET_ID`` mark an outlet. Ids absent from the mapping are outlets.

    Returns:
        New RiverNetwork with topology attached

    Raises:
        TopologyError: If a link points to an unknown segment or forms a cycle
    """
    network = _as_network(segments)
    resolved: Dict[Hashable, Optional[Hashable]] = {}
    for rid in network.ids:
        target = next_ids.get(rid)
        if _is_outlet_marker(target):
            resolved[rid] = None
        elif target not in network:
            raise TopologyError(f"Segment {rid!r} drains to unknown segment {target!r}")
        elif target == rid:
            raise TopologyError(f"Segment {rid!r} drains into itself")
        else:
            resolved[rid] = network[target].river_id
    return _attach(network, resolved)


def transplant_topology(source: RiverNetwork, target: SegmentsLike) -> RiverNetwork:
    """
    Borrow topology from a companion network with the same river ids.

    Typical use is routing on catchment polygons with topology derived from
    their river lines. Missing target lengths are taken from the source so
    constant-velocity routing remains available.

    Args:
        source: Network with topology built
        target: Segments to receive the topology

    Returns:
        New network in target order with source topology

    Raises:
        TopologyError: If the source topology has not been built
        SchemaError: If the id sets differ
    """
    if not source.topology_built:
        raise TopologyError("Source network has no topology to transplant")
    target_net = _as_network(target)

    source_ids = set(source.ids)
    target_ids = set(target_net.ids)
    if source_ids != target_ids:
        only_source = sorted(map(str, source_ids - target_ids))[:10]
        only_target = sorted(map(str, target_ids - source_ids))[:10]
        raise SchemaError(
            "Topology transplant requires identical river ids; "
            f"only in source: {only_source}, only in target: {only_target}"
        )

    def borrow(segment: Segment) -> Segment:
        donor = source[segment.river_id]
        borrowed = segment.with_topology(donor.next_id, donor.previous, donor.up_segments)
        if borrowed.length is None and donor.channel_length() is not None:
            borrowed = replace(borrowed, length=donor.channel_length())
        return borrowed

    return target_net.with_segments((borrow(s) for s in target_net), topology_built=True)


def ensure_topology(
    network: SegmentsLike,
    tolerance: float = RoutingDefaults.TOLERANCE,
    logger: Optional[logging.Logger] = None,
) -> RiverNetwork:
    """Return the network unchanged when built, otherwise build it."""
    network = _as_network(network)
    if network.topology_built:
        return network
    (logger or logging.getLogger(__name__)).info("Network has no topology; deriving it from geometry")
    return build_topology(network, tolerance=tolerance, logger=logger)
