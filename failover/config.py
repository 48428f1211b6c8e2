from __future__ import annotations

import json
import os
from dataclasses import dataclass, field


class ConfigurationError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    latency_threshold_ms: float = 1500
    health_check_interval_ms: int = 10000
    probe_timeout_ms: int = 5000
    probe_mode: str = "mock"
    probe_urls: dict[str, str] = field(default_factory=dict)
    mock_fail_rate: float = 0.15
    simulations_file: str | None = None
    known_models: tuple[str, ...] = ()
    otel_enabled: bool = False
    otel_service_name: str = "model-failover"
    otel_endpoint: str = "http://localhost:4318"


def load_settings(env: dict[str, str] | None = None) -> Settings:
    source = os.environ if env is None else env
    probe_mode = source.get("PROBE_MODE", "mock").lower()
    if probe_mode not in {"mock", "http"}:
        raise ConfigurationError(f"PROBE_MODE must be 'mock' or 'http', got {probe_mode!r}")

    interval_ms = _number(source, "HEALTH_CHECK_INTERVAL_MS", "10000", int)
    if interval_ms <= 0:
        raise ConfigurationError("HEALTH_CHECK_INTERVAL_MS must be positive")
    timeout_ms = _number(source, "PROBE_TIMEOUT_MS", "5000", int)
    if timeout_ms <= 0:
        raise ConfigurationError("PROBE_TIMEOUT_MS must be positive")

    known_models = tuple(m.strip() for m in source.get("KNOWN_MODELS", "").split(",") if m.strip())

    return Settings(
        latency_threshold_ms=_number(source, "LATENCY_THRESHOLD_MS", "1500", float),
        health_check_interval_ms=interval_ms,
        probe_timeout_ms=timeout_ms,
        probe_mode=probe_mode,
        probe_urls=_probe_urls(source.get("PROBE_URLS", "{}")),
        mock_fail_rate=_number(source, "MOCK_FAIL_RATE", "0.15", float),
        simulations_file=source.get("SIMULATIONS_FILE") or None,
        known_models=known_models,
        otel_enabled=source.get("OTEL_ENABLED", "false").lower() == "true",
        otel_service_name=source.get("OTEL_SERVICE_NAME", "model-failover"),
        otel_endpoint=source.get("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318"),
    )


def _number(source, name: str, default: str, cast):
    raw = source.get(name, default)
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _probe_urls(raw: str) -> dict[str, str]:
    try:
        urls = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"PROBE_URLS must be a JSON object: {exc}") from exc
    if not isinstance(urls, dict) or not all(isinstance(v, str) for v in urls.values()):
        raise ConfigurationError("PROBE_URLS must map model ids to URL strings")
    return urls


def validate_probe_urls(urls: dict[str, str], models) -> None:
    missing = [model for model in models if model not in urls]
    if missing:
        raise ConfigurationError("PROBE_URLS has no URL for: " + ", ".join(missing))
