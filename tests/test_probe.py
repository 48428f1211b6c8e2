import asyncio
import random

import httpx
import pytest

from failover.http_probe import HttpProbe
from failover.mock_probe import MockProbe


def test_mock_probe_success_latency_range():
    probe = MockProbe(min_delay_ms=0, max_delay_ms=0, fail_rate=0.0, rng=random.Random(7))

    results = [asyncio.run(probe.check("gpt-4o")) for _ in range(20)]

    assert all(r.success for r in results)
    assert all(100 <= r.latency_ms <= 500 for r in results)


def test_mock_probe_failure_is_slow():
    probe = MockProbe(min_delay_ms=0, max_delay_ms=0, fail_rate=1.0, rng=random.Random(7))

    result = asyncio.run(probe.check("gpt-4o"))

    assert result.success is False
    assert 5000 <= result.latency_ms < 6000


def _transport():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "down.test":
            raise httpx.ConnectError("connection refused", request=request)
        if request.url.host == "degraded.test":
            return httpx.Response(503)
        return httpx.Response(200, json={"status": "ok"})

    return httpx.MockTransport(handler)


def test_http_probe_reports_success():
    probe = HttpProbe({"gpt-4o": "http://ok.test/health"}, transport=_transport())

    result = asyncio.run(probe.check("gpt-4o"))

    assert result.success is True
    assert result.latency_ms >= 0


def test_http_probe_error_status_is_failure():
    probe = HttpProbe({"gpt-4o": "http://degraded.test/health"}, transport=_transport())

    result = asyncio.run(probe.check("gpt-4o"))

    assert result.success is False


def test_http_probe_transport_error_is_failure():
    probe = HttpProbe({"gpt-4o": "http://down.test/health"}, transport=_transport())

    result = asyncio.run(probe.check("gpt-4o"))

    assert result.success is False


def test_http_probe_requires_url():
    probe = HttpProbe({}, transport=_transport())

    with pytest.raises(KeyError):
        asyncio.run(probe.check("gpt-4o"))
