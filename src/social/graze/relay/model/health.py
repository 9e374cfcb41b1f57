import asyncio


class HealthGauge:
    """
    Error-burst tracker backing the readiness probe.

    Handlers that hit an unexpected exception add to the gauge with ``womp``. The health
    task calls ``tick`` once a second, draining ``decay`` points each time. While the score
    is above ``health_threshold``, ``is_healthy`` returns false and ``/internal/ready``
    answers 503, so a relay stuck in an error loop is taken out of rotation until Discord
    calls start succeeding again.
    """

    def __init__(
        self, value: int = 0, health_threshold: int = 100, decay: int = 1
    ) -> None:
        self._score = value
        self.health_threshold = health_threshold
        self.decay = decay
        self._lock = asyncio.Lock()

    @property
    def value(self) -> int:
        return self._score

    async def womp(self, d=1) -> int:
        """Record ``d`` failures and return the new score."""
        async with self._lock:
            self._score += int(d)
            return self._score

    async def tick(self) -> int:
        async with self._lock:
            self._score = max(0, self._score - self.decay)
            return self._score

    async def is_healthy(self) -> bool:
        async with self._lock:
            return self._score <= self.health_threshold
