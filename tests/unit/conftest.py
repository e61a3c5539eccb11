"""
Unit test fixtures and configuration.

Fixtures specific to unit tests (fast, isolated tests).
"""

import logging
from unittest.mock import MagicMock

import pytest

from hydrostreamer.network.model import RiverNetwork
from hydrostreamer.network.topology import build_topology
from utils_network import make_catchments, make_segments


@pytest.fixture
def mock_logger():
    """Create a mock logger for unit tests."""
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def sample_segments():
    return make_segments()


@pytest.fixture
def sample_network(sample_segments):
    """Sample network without topology."""
    return RiverNetwork(sample_segments)


@pytest.fixture
def built_network(sample_network):
    """Sample network with topology derived from geometry."""
    return build_topology(sample_network)


@pytest.fixture
def catchment_segments():
    """Polygon-only segments sharing ids with the sample network."""
    return make_catchments()
