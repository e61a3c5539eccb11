"""
Subnetwork extraction.

Selects the part of a river network draining to a given segment, or the path
from a segment down to its outlet.
"""

import logging
from typing import Hashable, List, Optional

from hydrostreamer.core.constants import RoutingDefaults
from hydrostreamer.core.exceptions import TopologyError, require_not_none

from .model import RiverNetwork
from .topology import ensure_topology

logger = logging.getLogger(__name__)


def upstream(
    network: RiverNetwork,
    river_id: Hashable,
    tolerance: float = RoutingDefaults.TOLERANCE,
) -> RiverNetwork:
    """
    Extract a segment and everything upstream of it.

    The root becomes an outlet of the returned network and topology fields
    only reference segments inside the subset. Segment order follows the
    parent network.

    Args:
        network: Source network (topology is built first if missing)
        river_id: Id of the most downstream segment to keep
        tolerance: Endpoint tolerance used if topology must be built

    Returns:
        New RiverNetwork with topology built

    Raises:
        SchemaError: If river_id is not in the network
        ValidationError: If river_id is None
    """
    require_not_none(river_id, "river_id")
    network = ensure_topology(network, tolerance=tolerance)
    root = network[river_id]
    keep = set(root.up_segments) | {river_id}

    subset = []
    for segment in network:
        if segment.river_id not in keep:
            continue
        next_id = segment.next_id if segment.river_id != river_id else None
        if next_id is not None and next_id not in keep:
            next_id = None
        previous = [pid for pid in segment.previous if pid in keep]
        up_segments = [uid for uid in segment.up_segments if uid in keep]
        subset.append(segment.with_topology(next_id, previous, up_segments))

    result = RiverNetwork(subset, topology_built=True)
    logger.debug(f"Extracted {len(result)} segments upstream of {river_id!r}")
    return result


def downstream_path(network: RiverNetwork, river_id: Hashable) -> List[Hashable]:
    """
    Ids from a segment down to its outlet, both included.

    Raises:
        SchemaError: If river_id is not in the network
        TopologyError: If the path revisits a segment
    """
    network = ensure_topology(network)
    path = [river_id]
    seen = {river_id}
    current: Optional[Hashable] = network[river_id].next_id
    while current is not None:
        if current in seen:
            raise TopologyError(f"Downstream path from {river_id!r} loops at {current!r}")
        path.append(current)
        seen.add(current)
        current = network[current].next_id
    return path
