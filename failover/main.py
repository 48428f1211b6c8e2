import time
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

from failover.config import load_settings, validate_probe_urls
from failover.health import HealthStatus, HealthTable, ModelHealth
from failover.http_probe import HttpProbe
from failover.log import get_logger, log_event
from failover.mock_probe import MockProbe
from failover.monitor import HealthMonitor
from failover.otel import setup_tracing
from failover.resolver import InvalidSimulationIdError, ModelResolver, SimulationNotFoundError
from failover.schemas import (
    HealthDetails,
    ListSimulationsResponse,
    ModelsHealthResponse,
    ResolveModelRequest,
    ResolveModelResponse,
    SimulationSummary,
)
from failover.simulations import load_simulations, referenced_models, validate_models

logger = get_logger()

app = FastAPI(title="model-failover")
settings = load_settings()
setup_tracing(app, settings)

simulations = load_simulations(settings.simulations_file)
if settings.known_models:
    validate_models(simulations, settings.known_models)
    known_models = list(settings.known_models)
else:
    known_models = referenced_models(simulations)
health_table = HealthTable(known_models)

if settings.probe_mode == "http":
    validate_probe_urls(settings.probe_urls, known_models)
    probe = HttpProbe(urls=settings.probe_urls, timeout_s=settings.probe_timeout_ms / 1000)
else:
    probe = MockProbe(fail_rate=settings.mock_fail_rate)

REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "path"],
)
PROBES_TOTAL = Counter(
    "model_probes_total",
    "Total model health probes by outcome",
    ["model", "status"],
)
PROBE_LATENCY = Histogram(
    "model_probe_latency_ms",
    "Reported model probe latency in milliseconds",
    ["model"],
    buckets=(50, 100, 250, 500, 1000, 1500, 2500, 5000, 10000),
)
MODEL_HEALTH = Gauge(
    "model_health_status",
    "1 when the model's last probe was healthy, 0 otherwise",
    ["model"],
)
RESOLUTIONS_TOTAL = Counter(
    "resolutions_total",
    "Total model resolutions by simulation and chosen model",
    ["simulation", "model"],
)
FALLBACK_TOTAL = Counter(
    "fallback_total",
    "Total fallbacks",
    ["reason", "from_model", "to_model"],
)


def record_probe(model: str, health: ModelHealth) -> None:
    PROBES_TOTAL.labels(model, health.status.value).inc()
    if health.latency_ms is not None:
        PROBE_LATENCY.labels(model).observe(health.latency_ms)
    MODEL_HEALTH.labels(model).set(1 if health.status is HealthStatus.HEALTHY else 0)


monitor = HealthMonitor(
    health_table,
    probe,
    latency_threshold_ms=settings.latency_threshold_ms,
    interval_ms=settings.health_check_interval_ms,
    probe_timeout_ms=settings.probe_timeout_ms,
    on_probe=record_probe,
)
resolver = ModelResolver(simulations, health_table)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.on_event("startup")
async def start_health_monitor():
    await monitor.start()


@app.on_event("shutdown")
async def stop_health_monitor():
    await monitor.stop()


@app.exception_handler(RequestValidationError)
async def invalid_request_body(request: Request, exc: RequestValidationError):
    fields = sorted({".".join(str(part) for part in error["loc"][1:]) or "body" for error in exc.errors()})
    message = "Invalid request body: " + ", ".join(fields)
    return JSONResponse(status_code=400, content={"error": {"code": "invalid_request", "message": message}})


@app.post("/api/resolve-model", response_model=ResolveModelResponse)
async def resolve_model(response: Response, payload: ResolveModelRequest | None = None):
    simulation_id = payload.simulationId if payload is not None else None
    try:
        result = resolver.resolve(simulation_id)
    except InvalidSimulationIdError as exc:
        return JSONResponse(status_code=400, content={"error": {"code": "invalid_request", "message": str(exc)}})
    except SimulationNotFoundError as exc:
        return JSONResponse(status_code=404, content={"error": {"code": "not_found", "message": str(exc)}})

    RESOLUTIONS_TOTAL.labels(simulation_id, result.model_to_use).inc()
    route_reason = "primary_healthy"
    if result.fallback_occurred:
        route_reason = "primary_unhealthy"
        primary = simulations[simulation_id].primary_model
        FALLBACK_TOTAL.labels(route_reason, primary, result.model_to_use).inc()

    response.headers["X-Model-Chosen"] = result.model_to_use
    response.headers["X-Route-Reason"] = route_reason
    return ResolveModelResponse(
        modelToUse=result.model_to_use,
        fallbackOccurred=result.fallback_occurred,
        reason=result.reason,
        details=HealthDetails.from_health(result.details),
    )


@app.get("/v1/models/health", response_model=ModelsHealthResponse)
async def models_health():
    return _health_snapshot()


@app.get("/v1/simulations", response_model=ListSimulationsResponse)
async def list_simulations():
    return ListSimulationsResponse(
        simulations=[SimulationSummary(**config.to_dict()) for config in simulations.values()]
    )


@app.post("/v1/admin/health/refresh", response_model=ModelsHealthResponse)
async def refresh_health():
    await monitor.run_probe_cycle()
    return _health_snapshot()


def _health_snapshot() -> ModelsHealthResponse:
    return ModelsHealthResponse(
        models={model: HealthDetails.from_health(entry) for model, entry in health_table.snapshot().items()}
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    start = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
    finally:
        elapsed_seconds = time.perf_counter() - start
        log_event(
            logger,
            "request",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=getattr(response, "status_code", None),
            duration_ms=round(elapsed_seconds * 1000, 2),
        )

    response.headers["X-Request-Id"] = request_id
    status_code = str(getattr(response, "status_code", 500))
    REQUESTS_TOTAL.labels(request.method, request.url.path, status_code).inc()
    REQUEST_LATENCY.labels(request.method, request.url.path).observe(elapsed_seconds)
    return response
