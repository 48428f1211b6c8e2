from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from opentelemetry import trace

from failover.health import HealthStatus, HealthTable, ModelHealth
from failover.log import get_logger, log_event
from failover.probe import Probe, ProbeResult

logger = get_logger("monitor")
tracer = trace.get_tracer(__name__)


def classify(result: ProbeResult, threshold_ms: float) -> HealthStatus:
    if result.success and result.latency_ms < threshold_ms:
        return HealthStatus.HEALTHY
    return HealthStatus.UNHEALTHY


class HealthMonitor:
    """Keeps a HealthTable fresh by probing every registered model on a fixed period.

    Cycles are serialized: a cycle requested while another is running waits for
    it to finish. Probe errors and timeouts are recorded as UNHEALTHY and never
    stop the cycle or the background loop.
    """

    def __init__(
        self,
        table: HealthTable,
        probe: Probe,
        latency_threshold_ms: float = 1500,
        interval_ms: int = 10000,
        probe_timeout_ms: int = 5000,
        on_probe: Callable[[str, ModelHealth], None] | None = None,
    ) -> None:
        self._table = table
        self._probe = probe
        self.latency_threshold_ms = latency_threshold_ms
        self.interval_ms = interval_ms
        self.probe_timeout_ms = probe_timeout_ms
        self._on_probe = on_probe
        self._cycle_lock = asyncio.Lock()
        self._task: asyncio.Task | None = None
        self._starting = False
        self.cycles_completed = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_probe_cycle(self) -> None:
        async with self._cycle_lock:
            start = time.perf_counter()
            for model in self._table.models():
                health = await self._probe_model(model)
                self._table.set(model, health)
                self._emit_probe(model, health)
            self.cycles_completed += 1
            log_event(
                logger,
                "probe_cycle_completed",
                cycle=self.cycles_completed,
                models=len(self._table),
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )

    async def start(self) -> None:
        if self.running or self._starting:
            return
        self._starting = True
        try:
            log_event(logger, "monitor_started", interval_ms=self.interval_ms, threshold_ms=self.latency_threshold_ms)
            await self.run_probe_cycle()
            self._task = asyncio.create_task(self._run())
        finally:
            self._starting = False

    async def stop(self) -> None:
        task = self._task
        if task is None:
            return
        self._task = None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log_event(logger, "monitor_stopped", cycles=self.cycles_completed)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        interval_s = self.interval_ms / 1000
        next_tick = loop.time() + interval_s
        while True:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            try:
                await self.run_probe_cycle()
            except Exception as exc:
                log_event(logger, "probe_cycle_failed", level=logging.ERROR, error=repr(exc))
            next_tick += interval_s
            now = loop.time()
            if next_tick <= now:
                skipped = int((now - next_tick) // interval_s) + 1
                next_tick += skipped * interval_s
                log_event(logger, "probe_ticks_skipped", level=logging.WARNING, skipped=skipped)

    async def _probe_model(self, model: str) -> ModelHealth:
        start = time.perf_counter()
        with tracer.start_as_current_span("health_probe", attributes={"model": model}) as span:
            try:
                result = await asyncio.wait_for(self._probe.check(model), timeout=self.probe_timeout_ms / 1000)
            except asyncio.TimeoutError:
                result = ProbeResult(success=False, latency_ms=_elapsed_ms(start))
                log_event(logger, "probe_failed", level=logging.WARNING, model=model, error="timeout")
            except Exception as exc:
                result = ProbeResult(success=False, latency_ms=_elapsed_ms(start))
                log_event(logger, "probe_failed", level=logging.WARNING, model=model, error=repr(exc))

            status = classify(result, self.latency_threshold_ms)
            span.set_attribute("status", status.value)

        health = ModelHealth(status=status, latency_ms=result.latency_ms)
        level = logging.INFO if status is HealthStatus.HEALTHY else logging.WARNING
        log_event(
            logger,
            "probe_result",
            level=level,
            model=model,
            status=status.value,
            latency_ms=result.latency_ms,
            threshold_ms=self.latency_threshold_ms,
        )
        return health

    def _emit_probe(self, model: str, health: ModelHealth) -> None:
        if self._on_probe is None:
            return
        try:
            self._on_probe(model, health)
        except Exception as exc:
            log_event(logger, "probe_callback_failed", level=logging.ERROR, model=model, error=repr(exc))


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)
