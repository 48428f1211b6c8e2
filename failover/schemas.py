from typing import Literal

from pydantic import BaseModel, Field

from failover.health import ModelHealth


class ResolveModelRequest(BaseModel):
    simulationId: str | None = None


class HealthDetails(BaseModel):
    status: Literal["UNKNOWN", "HEALTHY", "UNHEALTHY"]
    latency: float | None = None

    @classmethod
    def from_health(cls, health: ModelHealth) -> "HealthDetails":
        return cls(status=health.status.value, latency=health.latency_ms)


class ResolveModelResponse(BaseModel):
    modelToUse: str = Field(min_length=1)
    fallbackOccurred: bool
    reason: str
    details: HealthDetails


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    error: ErrorDetail


class ModelsHealthResponse(BaseModel):
    models: dict[str, HealthDetails]


class SimulationSummary(BaseModel):
    id: str
    name: str
    primaryModel: str
    secondaryModel: str


class ListSimulationsResponse(BaseModel):
    simulations: list[SimulationSummary]
