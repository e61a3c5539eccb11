# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 hydrostreamer developers

"""
Runoff accumulation through a river network.

``accumulate_runoff`` is a pure function from (network, method) to a new
network whose segments carry a discharge series next to every runoff series.
Segments are visited upstream before downstream and each discharge series is
written exactly once, after all predecessors are final. Any failed
precondition raises before a single value is computed.
"""

import logging
from typing import Any, Dict, Hashable, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from hydrostreamer.core.config import RoutingConfig, ensure_typed_config
from hydrostreamer.core.exceptions import ConfigurationError, SchemaError
from hydrostreamer.core.timing import TimingMixin
from hydrostreamer.network.model import RiverNetwork
from hydrostreamer.network.timeseries import TimeSeries
from hydrostreamer.network.topology import ensure_topology

from .methods import RoutingMethod, RoutingMethodRegistry


class RoutingEngine(TimingMixin):
    """
    Routes segment runoff downstream to produce discharge.

    Args:
        config: RoutingConfig, dict of config keys, or None for defaults
        logger: Logger instance (default: module logger)

    Example:
        >>> engine = RoutingEngine({'ROUTING_VELOCITY': 0.5})
        >>> routed = engine.accumulate(network, method='constant')
        >>> routed['outlet'].discharge['era5'].to_series()
    """

    def __init__(self, config: Union[None, Dict[str, Any], RoutingConfig] = None,
                 logger: Optional[logging.Logger] = None):
        self.config = ensure_typed_config(config)
        self.logger = logger or logging.getLogger(__name__)

    def resolve_method(self, method: Optional[str] = None):
        method_name = method or self.config.method
        method_cls = RoutingMethodRegistry.get_method(method_name)
        if method_cls is None:
            raise ConfigurationError(
                f"Unknown routing method {method_name!r}; "
                f"available: {RoutingMethodRegistry.list_methods()}"
            )
        return method_cls

    def accumulate(self, network: RiverNetwork, method: Optional[str] = None) -> RiverNetwork:
        """
        Accumulate runoff downstream.

        Args:
            network: Segments carrying runoff series; topology is derived from
                geometry first if the network has none
            method: Routing method name, defaults to the configured method

        Returns:
            New RiverNetwork with a discharge series per runoff series

        Raises:
            ConfigurationError: Unknown method
            SchemaError: Missing or misaligned runoff series, or no uniform
                timestep when the method needs one
            TopologyError: Cyclic or unresolvable topology
            MissingAttributeError: No line topology, length or velocity
        """
        method_cls = self.resolve_method(method)
        if len(network) == 0:
            self.logger.warning("Routing an empty network; nothing to do")
            return network

        with self.time_limit(f"{method_cls.name} routing of {len(network)} segments"):
            network = ensure_topology(network, tolerance=self.config.tolerance, logger=self.logger)
            order = network.topological_order()
            names, reference = self._check_series(network)

            timestep = self.config.timestep_seconds
            if timestep is None:
                timestep = reference[names[0]].timestep_seconds()
            if method_cls.requires_timestep and timestep is None:
                raise SchemaError(
                    "Runoff index has no uniform timestep; set ROUTING_TIMESTEP_SECONDS "
                    f"to use {method_cls.name} routing"
                )

            router: RoutingMethod = method_cls(self.config, timestep)
            router.validate(network)

            routed = self._route(network, order, names, router)

        return network.with_segments(
            segment.with_discharge({
                name: reference[name].with_values(routed[segment.river_id][name])
                for name in names
            })
            for segment in network
        )

    def _check_series(self, network: RiverNetwork) -> Tuple[List[str], Dict[str, TimeSeries]]:
        """
        Ensure all segments carry the same named series on one shared time axis.

        Returns:
            Series names and, per name, the reference series of the first segment
        """
        names = network.series_names()
        if not names:
            raise SchemaError("No runoff time series attached to the network")

        reference: Dict[str, TimeSeries] = {}
        for segment in network:
            missing = [name for name in names if name not in segment.runoff]
            if missing:
                raise SchemaError(
                    f"Segment {segment.river_id!r} lacks runoff series {missing}"
                )
            for name in names:
                series = segment.runoff[name]
                if name not in reference:
                    reference[name] = series
                    continue
                if len(series) != len(reference[name]):
                    raise SchemaError(
                        f"Runoff '{name}' of segment {segment.river_id!r} has {len(series)} "
                        f"timesteps, expected {len(reference[name])}"
                    )
                if not series.same_axis(reference[name]):
                    raise SchemaError(
                        f"Runoff '{name}' of segment {segment.river_id!r} is not aligned "
                        "with the other segments' timestamps"
                    )

        first = reference[names[0]]
        for name in names[1:]:
            if not reference[name].same_axis(first):
                raise SchemaError(
                    f"Runoff '{name}' does not share the timestamps of '{names[0]}'; "
                    "all series of a network must use one time axis"
                )

        self.logger.debug(
            f"Routing {len(names)} series of {len(reference[names[0]])} timesteps: {names}"
        )
        return names, reference

    def _route(self, network: RiverNetwork, order: List[Hashable], names: List[str],
               router: RoutingMethod) -> Dict[Hashable, Dict[str, np.ndarray]]:
        routed: Dict[Hashable, Dict[str, np.ndarray]] = {}
        for rid in order:
            segment = network[rid]
            predecessors = [network[pid] for pid in segment.previous]
            routed[rid] = {
                name: router.route(
                    segment,
                    segment.runoff[name].values,
                    [(p, routed[p.river_id][name]) for p in predecessors],
                )
                for name in names
            }
        return routed


def accumulate_runoff(
    network: RiverNetwork,
    method: Optional[str] = None,
    config: Union[None, Dict[str, Any], RoutingConfig] = None,
    logger: Optional[logging.Logger] = None,
    **overrides: Any,
) -> RiverNetwork:
    """
    Route runoff through a river network.

    Args:
        network: Segments carrying runoff series
        method: 'instant' or 'constant' (default: configured method)
        config: RoutingConfig, dict of config keys, or None
        logger: Logger instance
        **overrides: RoutingConfig fields overriding ``config``, e.g.
            ``velocity=0.5`` or ``lag_policy='nearest'``

    Returns:
        New RiverNetwork with discharge attached

    Example:
        >>> routed = accumulate_runoff(network, 'constant', velocity=0.8)
    """
    config = ensure_typed_config(config)
    if overrides:
        config = ensure_typed_config({**config.model_dump(), **overrides})
    return RoutingEngine(config, logger=logger).accumulate(network, method)


def discharge_at(network: RiverNetwork, river_id: Hashable, name: str) -> pd.Series:
    """Routed discharge of one segment as a pandas Series."""
    segment = network[river_id]
    if name not in segment.discharge:
        raise SchemaError(f"Segment {river_id!r} has no discharge series '{name}'")
    return segment.discharge[name].to_series(name=name)
