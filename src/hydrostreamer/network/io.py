# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 hydrostreamer developers

"""
GeoDataFrame adapters for river networks.

Converts between (Geo)DataFrames produced by areal interpolation and
:class:`~hydrostreamer.network.model.RiverNetwork`:

- Runoff is passed as ``{series_name: DataFrame}`` where each frame is indexed
  by timestamp and has one column per river id.
- Topology can be reused from ``NEXT`` / ``PREVIOUS`` / ``UP_SEGMENTS``
  columns, e.g. when routing catchment polygons with topology computed for
  their river lines. ``NEXT`` of an outlet is ``-9999``.
"""

import ast
import logging
from pathlib import Path
from typing import Any, Dict, Hashable, List, Mapping, Optional, Union

import geopandas as gpd
import numpy as np
import pandas as pd

from hydrostreamer.core.config import RoutingConfig, ensure_typed_config
from hydrostreamer.core.constants import (
    NEXT_FIELD,
    OUTLET_ID,
    PREVIOUS_FIELD,
    RoutingDefaults,
    UnitConversion,
    UP_SEGMENTS_FIELD,
)
from hydrostreamer.core.exceptions import (
    SchemaError,
    TopologyError,
    ValidationError,
    hydrostreamer_error_handler,
)

from .model import RiverNetwork
from .segment import Segment
from .timeseries import TimeSeries
from .topology import build_topology_from_links

logger = logging.getLogger(__name__)

TOPOLOGY_FIELDS = (NEXT_FIELD, PREVIOUS_FIELD, UP_SEGMENTS_FIELD)


def _optional_float(value: Any) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


def _parse_id_list(value: Any, column: str) -> List[Hashable]:
    """Read a PREVIOUS / UP_SEGMENTS cell: list-like, string repr or empty."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return []
        try:
            value = ast.literal_eval(value)
        except (ValueError, SyntaxError) as e:
            raise SchemaError(
                f"Cannot parse {column} cell {value!r}; expected a list of river ids"
            ) from e
    if np.ndim(value) == 0:
        if pd.isna(value):
            return []
        return [value]
    return [v.item() if isinstance(v, np.generic) else v for v in value]


def _runoff_by_segment(
    ids: List[Hashable],
    runoff: Optional[Mapping[str, pd.DataFrame]],
) -> Dict[Hashable, Dict[str, TimeSeries]]:
    series: Dict[Hashable, Dict[str, TimeSeries]] = {rid: {} for rid in ids}
    if not runoff:
        return series

    for name, frame in runoff.items():
        missing = [rid for rid in ids if rid not in frame.columns]
        if missing:
            raise SchemaError(
                f"Runoff '{name}' has no column for river ids {missing[:10]}"
            )
        index = pd.DatetimeIndex(frame.index)
        for rid in ids:
            series[rid][name] = TimeSeries(index=index, values=frame[rid].to_numpy(dtype=float))
    return series


def network_from_geodataframe(
    gdf: pd.DataFrame,
    id_field: str = RoutingDefaults.RIVER_ID_FIELD,
    runoff: Optional[Mapping[str, pd.DataFrame]] = None,
    length_field: str = 'length',
    velocity_field: str = 'velocity',
    use_topology_fields: bool = True,
) -> RiverNetwork:
    """
    Build a RiverNetwork from a (Geo)DataFrame of segments.

    Args:
        gdf: One row per segment
        id_field: Column holding unique river ids
        runoff: Named runoff frames (time × river id) in m³/s
        length_field: Optional column with channel length in metres
        velocity_field: Optional column with channel velocity in m/s
        use_topology_fields: Reuse NEXT/PREVIOUS/UP_SEGMENTS when present

    Returns:
        RiverNetwork; topology is built only if NEXT was reused

    Raises:
        SchemaError: On a missing id column, duplicate ids, or runoff frames
            lacking some ids
        TopologyError: If supplied PREVIOUS / UP_SEGMENTS disagree with NEXT
    """
    if id_field not in gdf.columns:
        raise SchemaError(f"Column '{id_field}' not found; available: {list(gdf.columns)}")

    ids = gdf[id_field].tolist()
    duplicated = gdf[id_field][gdf[id_field].duplicated()].tolist()
    if duplicated:
        raise SchemaError(f"Duplicate river ids in '{id_field}': {duplicated[:10]}")

    geometry_name = gdf.geometry.name if isinstance(gdf, gpd.GeoDataFrame) else None
    reserved = {id_field, length_field, velocity_field, *TOPOLOGY_FIELDS}
    if geometry_name:
        reserved.add(geometry_name)

    series = _runoff_by_segment(ids, runoff)

    segments = []
    for rid, record in zip(ids, gdf.to_dict('records')):
        segments.append(Segment(
            river_id=rid,
            geometry=record.get(geometry_name) if geometry_name else None,
            runoff=series[rid],
            length=_optional_float(record.get(length_field)),
            velocity=_optional_float(record.get(velocity_field)),
            attributes={k: v for k, v in record.items() if k not in reserved},
        ))
    network = RiverNetwork(segments)

    if use_topology_fields and NEXT_FIELD in gdf.columns:
        next_ids = dict(zip(ids, gdf[NEXT_FIELD].tolist()))
        network = build_topology_from_links(network, next_ids)
        _check_supplied_topology(network, gdf, ids)
        logger.info(f"Reused {NEXT_FIELD} topology for {len(network)} segments")

    return network


def read_network(
    path: Union[str, Path],
    id_field: Optional[str] = None,
    runoff: Optional[Mapping[str, pd.DataFrame]] = None,
    config: Union[None, Dict[str, Any], RoutingConfig] = None,
    layer: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
    **kwargs: Any,
) -> RiverNetwork:
    """
    Read river lines or catchments from a vector file.

    Any format readable by :func:`geopandas.read_file` is accepted. Remaining
    keyword arguments are passed to :func:`network_from_geodataframe`.

    Args:
        path: Vector file path
        id_field: River id column; defaults to ``RIVER_ID_FIELD`` of ``config``
        runoff: Named runoff frames (time × river id)
        config: RoutingConfig or dict of config keys
        layer: Layer name for multi-layer sources such as GeoPackage
        logger: Logger instance

    Raises:
        ValidationError: If the file cannot be read
        ConfigurationError: If config fails validation
    """
    log = logger or logging.getLogger(__name__)
    if id_field is None:
        id_field = ensure_typed_config(config).river_id_field
    with hydrostreamer_error_handler(f"reading river network {path}", log, error_type=ValidationError):
        gdf = gpd.read_file(path, layer=layer) if layer else gpd.read_file(path)
    log.info(f"Read {len(gdf)} features from {path}")
    return network_from_geodataframe(gdf, id_field=id_field, runoff=runoff, **kwargs)


def _check_supplied_topology(network: RiverNetwork, gdf: pd.DataFrame, ids: List[Hashable]) -> None:
    if PREVIOUS_FIELD in gdf.columns:
        for rid, cell in zip(ids, gdf[PREVIOUS_FIELD]):
            if set(_parse_id_list(cell, PREVIOUS_FIELD)) != set(network.predecessors(rid)):
                raise TopologyError(
                    f"{PREVIOUS_FIELD} of {rid!r} disagrees with {NEXT_FIELD} links"
                )
    if UP_SEGMENTS_FIELD in gdf.columns:
        for rid, cell in zip(ids, gdf[UP_SEGMENTS_FIELD]):
            if set(_parse_id_list(cell, UP_SEGMENTS_FIELD)) != set(network.ancestors(rid)):
                raise TopologyError(
                    f"{UP_SEGMENTS_FIELD} of {rid!r} disagrees with {NEXT_FIELD} links"
                )


def network_to_geodataframe(
    network: RiverNetwork,
    id_field: str = RoutingDefaults.RIVER_ID_FIELD,
    crs: Optional[Any] = None,
) -> gpd.GeoDataFrame:
    """
    Tabulate segments with their topology.

    Args:
        network: River network
        id_field: Name of the id column
        crs: CRS to assign to the geometry column

    Returns:
        GeoDataFrame with id, carried attributes, NEXT, PREVIOUS, UP_SEGMENTS,
        length and geometry columns
    """
    rows = []
    for segment in network:
        row = {id_field: segment.river_id}
        row.update(segment.attributes)
        if network.topology_built:
            row[NEXT_FIELD] = OUTLET_ID if segment.next_id is None else segment.next_id
            row[PREVIOUS_FIELD] = list(segment.previous)
            row[UP_SEGMENTS_FIELD] = [uid for uid in network.ids if uid in segment.up_segments]
        row['length'] = segment.channel_length()
        row['geometry'] = segment.geometry
        rows.append(row)

    columns = None if rows else [id_field, 'geometry']
    return gpd.GeoDataFrame(rows, columns=columns, geometry='geometry', crs=crs)


def _series_frame(network: RiverNetwork, name: str, kind: str) -> pd.DataFrame:
    columns = {}
    index = None
    for segment in network:
        store = segment.discharge if kind == 'discharge' else segment.runoff
        if name not in store:
            raise SchemaError(f"Segment {segment.river_id!r} has no {kind} series '{name}'")
        ts = store[name]
        if index is None:
            index = ts.index
        columns[segment.river_id] = ts.values
    return pd.DataFrame(columns, index=index)


def discharge_frame(network: RiverNetwork, name: str) -> pd.DataFrame:
    """Routed discharge as a time × river id frame."""
    return _series_frame(network, name, 'discharge')


def runoff_frame(network: RiverNetwork, name: str) -> pd.DataFrame:
    """Local runoff as a time × river id frame."""
    return _series_frame(network, name, 'runoff')


def runoff_depth_to_discharge(
    frame: pd.DataFrame,
    areas_m2: Mapping[Hashable, float],
    timestep_seconds: Optional[float] = None,
) -> pd.DataFrame:
    """
    Convert runoff depth (mm per timestep) to volumetric flow (m³/s).

    Args:
        frame: Runoff depth, time × river id
        areas_m2: Catchment area per river id in square metres
        timestep_seconds: Timestep length; inferred from the index when None

    Returns:
        Frame of the same shape in m³/s

    Raises:
        SchemaError: If an area is missing or the timestep cannot be inferred
    """
    missing = [rid for rid in frame.columns if rid not in areas_m2]
    if missing:
        raise SchemaError(f"No catchment area for river ids {missing[:10]}")

    if timestep_seconds is None:
        index = pd.DatetimeIndex(frame.index)
        probe = TimeSeries(index=index, values=np.zeros(len(index)))
        timestep_seconds = probe.timestep_seconds()
        if timestep_seconds is None:
            raise SchemaError("Cannot infer a uniform timestep from the runoff index")

    factors = pd.Series(
        {rid: UnitConversion.mm_per_timestep_to_cms_factor(areas_m2[rid], timestep_seconds)
         for rid in frame.columns}
    )
    return frame.mul(factors, axis='columns')

