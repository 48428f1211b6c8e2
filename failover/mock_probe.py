import asyncio
import logging
import random

from failover.log import get_logger, log_event
from failover.probe import Probe, ProbeResult

logger = get_logger("probe")


class MockProbe(Probe):
    """Simulates a provider health endpoint with random delay and failures."""

    def __init__(
        self,
        min_delay_ms: int = 50,
        max_delay_ms: int = 550,
        fail_rate: float = 0.15,
        rng: random.Random | None = None,
    ) -> None:
        self.min_delay_ms = min_delay_ms
        self.max_delay_ms = max_delay_ms
        self.fail_rate = fail_rate
        self._rng = rng if rng is not None else random.Random()

    async def check(self, model: str) -> ProbeResult:
        log_event(logger, "probe_ping", level=logging.DEBUG, model=model)
        delay_ms = self._rng.uniform(self.min_delay_ms, self.max_delay_ms)
        await asyncio.sleep(delay_ms / 1000)
        if self._rng.random() < self.fail_rate:
            return ProbeResult(success=False, latency_ms=5000 + self._rng.random() * 1000)
        latency_ms = round(100 + self._rng.random() * 400)
        return ProbeResult(success=True, latency_ms=latency_ms)
