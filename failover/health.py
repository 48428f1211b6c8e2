from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class HealthStatus(str, Enum):
    UNKNOWN = "UNKNOWN"
    HEALTHY = "HEALTHY"
    UNHEALTHY = "UNHEALTHY"


@dataclass(frozen=True)
class ModelHealth:
    status: HealthStatus = HealthStatus.UNKNOWN
    latency_ms: float | None = None

    def to_dict(self) -> dict:
        return {"status": self.status.value, "latency": self.latency_ms}


UNKNOWN_HEALTH = ModelHealth()


class HealthTable:
    """Latest known health per model.

    Entries are immutable and swapped whole, so a reader always gets a status
    and latency taken from the same probe.
    """

    def __init__(self, models: Iterable[str]) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, ModelHealth] = {model: UNKNOWN_HEALTH for model in models}

    def models(self) -> list[str]:
        return list(self._entries)

    def get(self, model: str) -> ModelHealth:
        return self._entries.get(model, UNKNOWN_HEALTH)

    def set(self, model: str, health: ModelHealth) -> None:
        with self._lock:
            if model not in self._entries:
                raise KeyError(f"model {model!r} is not registered")
            self._entries[model] = health

    def snapshot(self) -> dict[str, ModelHealth]:
        with self._lock:
            return dict(self._entries)

    def reset(self) -> None:
        with self._lock:
            for model in self._entries:
                self._entries[model] = UNKNOWN_HEALTH

    def __contains__(self, model: object) -> bool:
        return model in self._entries

    def __len__(self) -> int:
        return len(self._entries)
