import time
from typing import Mapping

import httpx

from failover.probe import Probe, ProbeResult


class HttpProbe(Probe):
    def __init__(
        self,
        urls: Mapping[str, str],
        timeout_s: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.urls = dict(urls)
        self.timeout_s = timeout_s
        self._transport = transport

    async def check(self, model: str) -> ProbeResult:
        url = self.urls[model]
        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                resp = await client.get(url)
        except httpx.HTTPError:
            return ProbeResult(success=False, latency_ms=_elapsed_ms(start))
        return ProbeResult(success=resp.is_success, latency_ms=_elapsed_ms(start))


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)
