# src/hydrostreamer/__init__.py
try:
    from .hydrostreamer_version import __version__
except ImportError:
    try:
        from importlib.metadata import version, PackageNotFoundError
        __version__ = version("hydrostreamer")
    except (ImportError, PackageNotFoundError):
        __version__ = "0.0.0"

from .core import RoutingConfig, load_config, setup_logger
from .network import (
    RiverNetwork,
    Segment,
    TimeSeries,
    build_topology,
    transplant_topology,
    upstream,
)
from .routing import RoutingEngine, accumulate_runoff

__all__ = [
    "__version__",
    "RoutingConfig",
    "load_config",
    "setup_logger",
    "RiverNetwork",
    "Segment",
    "TimeSeries",
    "build_topology",
    "transplant_topology",
    "upstream",
    "RoutingEngine",
    "accumulate_runoff",
]
