from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProbeResult:
    success: bool
    latency_ms: float


class Probe(ABC):
    @abstractmethod
    async def check(self, model: str) -> ProbeResult:
        raise NotImplementedError
