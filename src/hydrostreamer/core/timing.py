"""
Task timing for hydrostreamer components.

:class:`~hydrostreamer.routing.engine.RoutingEngine` wraps each routing call
in :meth:`TimingMixin.time_limit`, so a run logs how long topology building
and accumulation took for a network of a given size.
"""

import logging
import time
from contextlib import contextmanager
from typing import Iterator


class TimingMixin:
    """
    Adds ``time_limit`` to classes that hold a ``logger`` attribute.

    Classes without one log to this module's logger.
    """

    @contextmanager
    def time_limit(self, task_name: str) -> Iterator[None]:
        """
        Log the wall-clock duration of the enclosed block.

        The completion message is written even when the block raises, so a
        failed routing run still reports how far it got in time.

        Args:
            task_name: Label used in the log messages, e.g.
                ``"constant routing of 120 segments"``
        """
        log = getattr(self, 'logger', None) or logging.getLogger(__name__)
        log.debug(f"Starting task: {task_name}")
        started = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - started
            log.info(f"Completed task: {task_name} in {elapsed:.2f} seconds")
