"""
River network model, topology building and subnetwork extraction.

Key Components:
    - Segment / TimeSeries: typed records for reaches and their series
    - RiverNetwork: insertion-ordered network with derived topology
    - build_topology: topology from coincident line endpoints
    - transplant_topology: borrow topology from a companion line network
    - upstream: subnetwork draining to a segment
"""

from hydrostreamer.network.io import (
    discharge_frame,
    network_from_geodataframe,
    network_to_geodataframe,
    read_network,
    runoff_depth_to_discharge,
    runoff_frame,
)
from hydrostreamer.network.model import RiverNetwork
from hydrostreamer.network.ordering import stream_order
from hydrostreamer.network.segment import Segment
from hydrostreamer.network.subnetwork import downstream_path, upstream
from hydrostreamer.network.timeseries import TimeSeries
from hydrostreamer.network.topology import (
    build_topology,
    build_topology_from_links,
    compute_ancestors,
    ensure_topology,
    transplant_topology,
)

__all__ = [
    # Records
    'Segment',
    'TimeSeries',
    'RiverNetwork',
    # Topology
    'build_topology',
    'build_topology_from_links',
    'compute_ancestors',
    'ensure_topology',
    'transplant_topology',
    # Queries
    'upstream',
    'downstream_path',
    'stream_order',
    # Tables
    'network_from_geodataframe',
    'network_to_geodataframe',
    'read_network',
    'discharge_frame',
    'runoff_frame',
    'runoff_depth_to_discharge',
]
