"""
Metrics Abstraction Layer for the Relay

This module provides a small metrics interface so handlers and tasks can report counters,
gauges and timings without knowing which backend receives them.

Key Components:
- MetricsClient: Abstract interface for all metrics operations
- TelegrafMetricsClient: Delegates to aio-statsd's TelegrafStatsdClient
- NoOpMetricsClient: Discards everything, used when metrics are disabled
- create_metrics_client: Factory function for backend selection

Metric names are prefixed with ``relay.`` by convention, and tags are passed as plain
dictionaries in the StatsD/Telegraf style.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union

from aio_statsd import TelegrafStatsdClient

logger = logging.getLogger(__name__)

Number = Union[int, float]


class MetricsClient(ABC):
    """
    Abstract metrics client.

    Implementations must support counters, gauges and timers. Timer values are in seconds.
    """

    async def connect(self) -> None:
        """Open any network resources the backend needs. Optional."""

    @abstractmethod
    def increment(
        self, name: str, value: Number = 1, tag_dict: Optional[Dict[str, Any]] = None
    ) -> None:
        """Increment a counter metric by ``value``."""

    @abstractmethod
    def gauge(
        self, name: str, value: Number, tag_dict: Optional[Dict[str, Any]] = None
    ) -> None:
        """Set a gauge metric to ``value``."""

    @abstractmethod
    def timer(
        self, name: str, value: Number, tag_dict: Optional[Dict[str, Any]] = None
    ) -> None:
        """Record a duration, in seconds."""

    @abstractmethod
    async def close(self) -> None:
        """Flush pending metrics and release network resources."""


class TelegrafMetricsClient(MetricsClient):
    """
    Metrics client backed by a TelegrafStatsdClient.

    The wrapped client speaks StatsD with Telegraf tag extensions over UDP.
    """

    def __init__(self, telegraf_client: TelegrafStatsdClient):
        self.client = telegraf_client

    async def connect(self) -> None:
        await self.client.connect()

    def increment(
        self, name: str, value: Number = 1, tag_dict: Optional[Dict[str, Any]] = None
    ) -> None:
        self.client.increment(name, value, tag_dict=tag_dict or {})

    def gauge(
        self, name: str, value: Number, tag_dict: Optional[Dict[str, Any]] = None
    ) -> None:
        self.client.gauge(name, value, tag_dict=tag_dict or {})

    def timer(
        self, name: str, value: Number, tag_dict: Optional[Dict[str, Any]] = None
    ) -> None:
        self.client.timer(name, value, tag_dict=tag_dict or {})

    async def close(self) -> None:
        try:
            await self.client.close()
        except Exception as e:
            logger.warning("Error closing Telegraf client: %s", e)


class NoOpMetricsClient(MetricsClient):
    """Metrics client that records nothing."""

    def increment(
        self, name: str, value: Number = 1, tag_dict: Optional[Dict[str, Any]] = None
    ) -> None:
        pass

    def gauge(
        self, name: str, value: Number, tag_dict: Optional[Dict[str, Any]] = None
    ) -> None:
        pass

    def timer(
        self, name: str, value: Number, tag_dict: Optional[Dict[str, Any]] = None
    ) -> None:
        pass

    async def close(self) -> None:
        pass


def create_metrics_client(
    backend: str,
    host: str = "localhost",
    port: int = 8125,
    debug: bool = False,
) -> MetricsClient:
    """
    Create the metrics client for ``backend``.

    Args:
        backend: Backend type, ``telegraf`` or ``none`` (case-insensitive)
        host: Telegraf/StatsD host
        port: Telegraf/StatsD port
        debug: Enable the StatsD client's debug logging

    Returns:
        MetricsClient: An unconnected metrics client; call ``connect()`` before use

    Raises:
        ValueError: If the backend type is not supported
    """
    backend = backend.lower()

    if backend == "telegraf":
        return TelegrafMetricsClient(
            TelegrafStatsdClient(host=host, port=port, debug=debug)
        )

    if backend == "none":
        logger.info("Metrics collection disabled (no-op client)")
        return NoOpMetricsClient()

    raise ValueError(
        f"Invalid metrics backend: {backend}. Supported backends: 'telegraf', 'none'"
    )
