"""Tests for runoff accumulation (instantaneous and constant-velocity routing)."""

import numpy as np
import pandas as pd
import pytest
from shapely.geometry import LineString

from hydrostreamer.core.config import RoutingConfig
from hydrostreamer.core.exceptions import (
    ConfigurationError,
    MissingAttributeError,
    SchemaError,
    TopologyError,
)
from hydrostreamer.network.model import RiverNetwork
from hydrostreamer.network.segment import Segment
from hydrostreamer.network.timeseries import TimeSeries
from hydrostreamer.network.topology import build_topology_from_links, transplant_topology
from hydrostreamer.routing.engine import RoutingEngine, accumulate_runoff, discharge_at
from hydrostreamer.routing.methods import RoutingMethodRegistry
from utils_network import make_catchments, make_segments, make_series


def _q(network, rid, name='era5'):
    return network[rid].discharge[name].values


def _chain(up_runoff, down_runoff, up_length=3600.0, **series_kwargs):
    """Two segments, 'up' draining into 'down'."""
    return RiverNetwork([
        Segment('up', LineString([(0, 0), (1, 0)]), length=up_length,
                runoff={'era5': make_series(up_runoff, **series_kwargs)}),
        Segment('down', LineString([(1, 0), (2, 0)]), length=3600.0,
                runoff={'era5': make_series(down_runoff, **series_kwargs)}),
    ])


class TestInstantRouting:

    def test_sample_network(self, sample_network):
        routed = accumulate_runoff(sample_network, 'instant')
        assert np.allclose(_q(routed, 'A'), [1, 2, 3, 4, 5, 6])
        assert np.allclose(_q(routed, 'D'), [10, 0, 0, 0, 0, 0])
        assert np.allclose(_q(routed, 'B'), [11.5, 2.5, 3.5, 4.5, 5.5, 6.5])
        assert np.allclose(_q(routed, 'C'), [11.5, 3.5, 3.5, 5.5, 5.5, 7.5])

    def test_chain_mass_balance(self):
        up = [1.0, 0.0, 2.5, 3.0]
        down = [0.5, 0.25, 0.0, 1.0]
        routed = accumulate_runoff(_chain(up, down), 'instant')
        assert np.allclose(_q(routed, 'down'), np.add(up, down))

    def test_outlet_totals_all_runoff(self, sample_network):
        routed = accumulate_runoff(sample_network)
        total_local = sum(s.runoff['era5'].values for s in sample_network)
        assert np.allclose(_q(routed, 'C'), total_local)

    def test_result_keeps_index_and_runoff(self, sample_network):
        routed = accumulate_runoff(sample_network, 'instant')
        assert routed['B'].discharge['era5'].index.equals(sample_network['B'].runoff['era5'].index)
        assert routed['B'].runoff['era5'] == sample_network['B'].runoff['era5']

    def test_input_network_untouched(self, sample_network):
        accumulate_runoff(sample_network, 'instant')
        assert all(s.discharge == {} for s in sample_network)
        assert not sample_network.topology_built

    def test_builds_topology_when_missing(self, sample_network):
        routed = accumulate_runoff(sample_network, 'instant')
        assert routed.topology_built
        assert routed.successor('B') == 'C'

    def test_insertion_order_preserved(self):
        network = RiverNetwork(make_segments(order=('C', 'D', 'B', 'A')))
        routed = accumulate_runoff(network, 'instant')
        assert routed.ids == ['C', 'D', 'B', 'A']
        assert np.allclose(_q(routed, 'C'), [11.5, 3.5, 3.5, 5.5, 5.5, 7.5])

    def test_multiple_series(self):
        segments = [
            Segment('up', LineString([(0, 0), (1, 0)]), runoff={
                'era5': make_series([1, 1]), 'merra': make_series([2, 2]),
            }),
            Segment('down', LineString([(1, 0), (2, 0)]), runoff={
                'era5': make_series([0, 1]), 'merra': make_series([0, 2]),
            }),
        ]
        routed = accumulate_runoff(RiverNetwork(segments), 'instant')
        assert np.allclose(_q(routed, 'down', 'era5'), [1, 2])
        assert np.allclose(_q(routed, 'down', 'merra'), [2, 4])

    def test_polygons_with_borrowed_topology(self, built_network):
        catchments = transplant_topology(built_network, make_catchments())
        routed = accumulate_runoff(catchments, 'instant')
        assert np.allclose(_q(routed, 'C'), [11.5, 3.5, 3.5, 5.5, 5.5, 7.5])

    def test_discharge_at(self, sample_network):
        routed = accumulate_runoff(sample_network, 'instant')
        series = discharge_at(routed, 'B', 'era5')
        assert isinstance(series, pd.Series)
        assert series.iloc[0] == pytest.approx(11.5)
        with pytest.raises(SchemaError):
            discharge_at(routed, 'B', 'merra')


class TestConstantVelocityRouting:

    def test_one_step_lag(self):
        up = [1.0, 2.0, 3.0, 4.0]
        down = [0.5, 0.5, 0.5, 0.5]
        routed = accumulate_runoff(_chain(up, down), 'constant', velocity=1.0)
        # no antecedent flow at t=0
        assert _q(routed, 'down')[0] == pytest.approx(0.5)
        assert np.allclose(_q(routed, 'down'), [0.5, 1.5, 2.5, 3.5])
        assert np.allclose(_q(routed, 'up'), up)

    def test_sample_network_lags_accumulate(self):
        network = RiverNetwork(make_segments(length=3600.0))
        routed = accumulate_runoff(network, 'constant')
        assert np.allclose(_q(routed, 'B'), [0.5, 11.5, 2.5, 3.5, 4.5, 5.5])
        assert np.allclose(_q(routed, 'C'), [0.0, 1.5, 11.5, 3.5, 3.5, 5.5])

    def test_zero_length_matches_instant(self, sample_network):
        network = RiverNetwork(make_segments(length=0.0))
        constant = accumulate_runoff(network, 'constant')
        instant = accumulate_runoff(sample_network, 'instant')
        for rid in network.ids:
            assert np.allclose(_q(constant, rid), _q(instant, rid))

    def test_fractional_lag_linear(self):
        routed = accumulate_runoff(_chain([4.0, 0.0, 0.0], [0.0, 0.0, 0.0], up_length=5400.0),
                                   'constant', lag_policy='linear')
        assert np.allclose(_q(routed, 'down'), [0.0, 2.0, 2.0])

    def test_fractional_lag_nearest(self):
        routed = accumulate_runoff(_chain([4.0, 0.0, 0.0], [0.0, 0.0, 0.0], up_length=5400.0),
                                   'constant', lag_policy='nearest')
        assert np.allclose(_q(routed, 'down'), [0.0, 0.0, 4.0])

    def test_velocity_from_config(self):
        network = _chain([4.0, 0.0, 0.0], [0.0, 0.0, 0.0], up_length=7200.0)
        routed = RoutingEngine({'ROUTING_VELOCITY': 2.0}).accumulate(network, 'constant')
        assert np.allclose(_q(routed, 'down'), [0.0, 4.0, 0.0])

    def test_segment_velocity_overrides_config(self):
        segments = [
            Segment('up', LineString([(0, 0), (1, 0)]), length=3600.0, velocity=0.5,
                    runoff={'era5': make_series([4.0, 0.0, 0.0])}),
            Segment('down', LineString([(1, 0), (2, 0)]),
                    runoff={'era5': make_series([0.0, 0.0, 0.0])}),
        ]
        routed = accumulate_runoff(RiverNetwork(segments), 'constant', velocity=10.0)
        assert np.allclose(_q(routed, 'down'), [0.0, 0.0, 4.0])

    def test_length_from_line_geometry(self):
        segments = [
            Segment('up', LineString([(0, 0), (3600, 0)]),
                    runoff={'era5': make_series([4.0, 0.0, 0.0])}),
            Segment('down', LineString([(3600, 0), (7200, 0)]),
                    runoff={'era5': make_series([0.0, 0.0, 0.0])}),
        ]
        routed = accumulate_runoff(RiverNetwork(segments), 'constant')
        assert np.allclose(_q(routed, 'down'), [0.0, 4.0, 0.0])

    def test_daily_timestep(self):
        network = _chain([4.0, 0.0, 0.0], [0.0, 0.0, 0.0], up_length=86400.0, freq='D')
        routed = accumulate_runoff(network, 'constant')
        assert np.allclose(_q(routed, 'down'), [0.0, 4.0, 0.0])

    def test_timestep_override_for_irregular_index(self):
        index = pd.DatetimeIndex(['2020-01-01', '2020-01-02', '2020-01-05'])
        segments = [
            Segment('up', LineString([(0, 0), (1, 0)]), length=3600.0,
                    runoff={'era5': TimeSeries(index, [4.0, 0.0, 0.0])}),
            Segment('down', LineString([(1, 0), (2, 0)]),
                    runoff={'era5': TimeSeries(index, [0.0, 0.0, 0.0])}),
        ]
        with pytest.raises(SchemaError, match="uniform timestep"):
            accumulate_runoff(RiverNetwork(segments), 'constant')
        routed = accumulate_runoff(RiverNetwork(segments), 'constant', timestep_seconds=3600)
        assert np.allclose(_q(routed, 'down'), [0.0, 4.0, 0.0])

    def test_transplanted_catchments_use_line_lengths(self, built_network):
        catchments = transplant_topology(built_network, make_catchments())
        routed = accumulate_runoff(catchments, 'constant', velocity=1.0 / 3600)
        # B is one unit long, i.e. one hour at 1/3600 units per second
        assert np.allclose(_q(routed, 'C')[:2], [0.0, 1.5])


class TestRoutingFailures:

    def test_mismatched_series_lengths(self):
        segments = [
            Segment('up', LineString([(0, 0), (1, 0)]), runoff={'era5': make_series(np.ones(12))}),
            Segment('down', LineString([(1, 0), (2, 0)]), runoff={'era5': make_series(np.ones(10))}),
        ]
        result = None
        with pytest.raises(SchemaError, match="10 timesteps, expected 12"):
            result = accumulate_runoff(RiverNetwork(segments), 'instant')
        assert result is None

    def test_misaligned_timestamps(self):
        segments = [
            Segment('up', LineString([(0, 0), (1, 0)]), runoff={'era5': make_series([1, 2])}),
            Segment('down', LineString([(1, 0), (2, 0)]),
                    runoff={'era5': make_series([1, 2], start='2021-01-01')}),
        ]
        with pytest.raises(SchemaError, match="not aligned"):
            accumulate_runoff(RiverNetwork(segments))

    def test_series_on_different_time_axes(self):
        def runoff(hourly, daily):
            return {'hourly': make_series(hourly), 'daily': make_series(daily, freq='D')}

        segments = [
            Segment('up', LineString([(0, 0), (1, 0)]), length=86400.0,
                    runoff=runoff([0.0, 0.0, 0.0], [4.0, 0.0, 0.0])),
            Segment('down', LineString([(1, 0), (2, 0)]),
                    runoff=runoff([0.0, 0.0, 0.0], [0.0, 0.0, 0.0])),
        ]
        with pytest.raises(SchemaError, match="one time axis"):
            accumulate_runoff(RiverNetwork(segments), 'constant')
        with pytest.raises(SchemaError, match="one time axis"):
            accumulate_runoff(RiverNetwork(segments), 'instant')

    def test_missing_series_name(self):
        segments = [
            Segment('up', LineString([(0, 0), (1, 0)]), runoff={'era5': make_series([1, 2])}),
            Segment('down', LineString([(1, 0), (2, 0)]), runoff={'merra': make_series([1, 2])}),
        ]
        with pytest.raises(SchemaError, match="lacks runoff"):
            accumulate_runoff(RiverNetwork(segments))

    def test_no_runoff(self):
        segments = [Segment('up', LineString([(0, 0), (1, 0)]))]
        with pytest.raises(SchemaError, match="No runoff"):
            accumulate_runoff(RiverNetwork(segments))

    def test_cyclic_topology(self):
        segments = [
            Segment('a', next_id='b', previous=('b',), runoff={'era5': make_series([1])}),
            Segment('b', next_id='a', previous=('a',), runoff={'era5': make_series([1])}),
        ]
        network = RiverNetwork(segments, topology_built=True)
        with pytest.raises(TopologyError, match="cycle"):
            accumulate_runoff(network)

    def test_polygons_without_topology(self):
        with pytest.raises(MissingAttributeError, match="companion"):
            accumulate_runoff(RiverNetwork(make_catchments()), 'constant')

    def test_missing_length(self):
        catchments = build_topology_from_links(
            make_catchments(), {'A': 'B', 'D': 'B', 'B': 'C'}
        )
        with pytest.raises(MissingAttributeError) as excinfo:
            accumulate_runoff(catchments, 'constant')
        assert excinfo.value.attribute == 'length'
        assert "'length'" in str(excinfo.value)

    def test_missing_velocity(self):
        with pytest.raises(MissingAttributeError) as excinfo:
            accumulate_runoff(_chain([1, 2], [1, 2]), 'constant', velocity=None)
        assert excinfo.value.attribute == 'velocity'

    def test_unknown_method(self, sample_network):
        with pytest.raises(ConfigurationError, match="Unknown routing method"):
            accumulate_runoff(sample_network, 'muskingum')

    def test_invalid_override(self, sample_network):
        with pytest.raises(ConfigurationError):
            accumulate_runoff(sample_network, 'constant', velocity=-1.0)

    def test_misspelled_override(self):
        network = _chain([4.0, 0.0, 0.0], [0.0, 0.0, 0.0])
        with pytest.raises(ConfigurationError, match="velocty"):
            accumulate_runoff(network, 'constant', velocty=0.5)
        routed = accumulate_runoff(network, 'constant', velocity=0.5)
        assert np.allclose(_q(routed, 'down'), [0.0, 0.0, 4.0])


class TestRoutingEngine:

    def test_method_aliases(self):
        assert RoutingMethodRegistry.get_method('Instantaneous') is RoutingMethodRegistry.get_method('instant')
        assert RoutingMethodRegistry.get_method('constant_velocity') is RoutingMethodRegistry.get_method('constant')
        assert RoutingMethodRegistry.get_method('kinematic') is None
        assert RoutingMethodRegistry.list_methods() == ['constant', 'instant']

    def test_configured_method_is_default(self):
        engine = RoutingEngine(RoutingConfig(method='constant'))
        routed = engine.accumulate(_chain([1.0, 0.0], [0.0, 0.0]))
        assert np.allclose(_q(routed, 'down'), [0.0, 1.0])

    def test_logs_duration(self, sample_network, mock_logger):
        RoutingEngine(logger=mock_logger).accumulate(sample_network, 'instant')
        messages = [call.args[0] for call in mock_logger.info.call_args_list]
        assert any('Completed task' in m for m in messages)

    def test_empty_network(self, mock_logger):
        empty = RiverNetwork([])
        assert RoutingEngine(logger=mock_logger).accumulate(empty) is empty
        mock_logger.warning.assert_called_once()
