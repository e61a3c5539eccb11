"""Stream order (Strahler and Shreve) for river networks."""

from typing import Dict, Hashable

from hydrostreamer.core.exceptions import ConfigurationError

from .model import RiverNetwork
from .topology import ensure_topology


def stream_order(network: RiverNetwork, method: str = 'strahler') -> Dict[Hashable, int]:
    """
    Calculate Strahler or Shreve stream order for every segment.

    Headwaters have order 1. Strahler order increases by one where two or
    more tributaries of the highest upstream order join; Shreve order is the
    sum of the upstream orders.

    Args:
        network: River network (topology is built first if missing)
        method: 'strahler' or 'shreve'

    Returns:
        Mapping of river id to order, in network order

    Raises:
        ConfigurationError: If method is unknown
    """
    method = method.strip().lower()
    if method not in ('strahler', 'shreve'):
        raise ConfigurationError(f"Unknown stream order method: {method!r}")

    network = ensure_topology(network)
    orders: Dict[Hashable, int] = {}
    for rid in network.topological_order():
        upstream_orders = [orders[p] for p in network.predecessors(rid)]
        if not upstream_orders:
            orders[rid] = 1
        elif method == 'shreve':
            orders[rid] = sum(upstream_orders)
        else:
            max_order = max(upstream_orders)
            if upstream_orders.count(max_order) > 1:
                orders[rid] = max_order + 1
            else:
                orders[rid] = max_order

    return {rid: orders[rid] for rid in network.ids}
