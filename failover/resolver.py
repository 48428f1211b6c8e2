from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from failover.health import HealthStatus, HealthTable, ModelHealth
from failover.log import get_logger, log_event

logger = get_logger("resolver")


class ResolutionError(Exception):
    pass


class InvalidSimulationIdError(ResolutionError, ValueError):
    def __init__(self) -> None:
        super().__init__("simulationId is required")


class SimulationNotFoundError(ResolutionError, LookupError):
    def __init__(self, simulation_id: str) -> None:
        super().__init__(f"Simulation config for '{simulation_id}' not found.")
        self.simulation_id = simulation_id


@dataclass(frozen=True)
class SimulationConfig:
    id: str
    name: str
    primary_model: str
    secondary_model: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "primaryModel": self.primary_model,
            "secondaryModel": self.secondary_model,
        }


@dataclass(frozen=True)
class ResolutionResult:
    model_to_use: str
    fallback_occurred: bool
    reason: str
    details: ModelHealth


class ModelResolver:
    def __init__(self, simulations: Mapping[str, SimulationConfig], table: HealthTable) -> None:
        self._simulations = simulations
        self._table = table

    def resolve(self, simulation_id: str | None) -> ResolutionResult:
        if not simulation_id:
            raise InvalidSimulationIdError()

        config = self._simulations.get(simulation_id)
        if config is None:
            raise SimulationNotFoundError(simulation_id)

        primary = config.primary_model
        health = self._table.get(primary)

        if health.status is HealthStatus.HEALTHY:
            log_event(logger, "model_resolved", simulation=config.id, model=primary)
            return ResolutionResult(
                model_to_use=primary,
                fallback_occurred=False,
                reason=f"Primary model '{primary}' is healthy.",
                details=health,
            )

        # The secondary is assigned without consulting its own health.
        secondary = config.secondary_model
        log_event(
            logger,
            "model_fallback",
            level=logging.WARNING,
            simulation=config.id,
            from_model=primary,
            to_model=secondary,
            status=health.status.value,
        )
        return ResolutionResult(
            model_to_use=secondary,
            fallback_occurred=True,
            reason=(
                f"Primary model '{primary}' is unhealthy "
                f"(Status: {health.status.value}, Latency: {_format_latency(health.latency_ms)})."
            ),
            details=health,
        )


def _format_latency(latency_ms: float | None) -> str:
    if latency_ms is None:
        return "n/a"
    return f"{round(latency_ms)}ms"
