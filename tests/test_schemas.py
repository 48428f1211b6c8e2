import pytest
from pydantic import ValidationError

from failover.health import HealthStatus, ModelHealth
from failover.schemas import HealthDetails, ResolveModelRequest, ResolveModelResponse


def test_resolve_request_allows_missing_id():
    assert ResolveModelRequest().simulationId is None


def test_health_details_from_health():
    details = HealthDetails.from_health(ModelHealth(HealthStatus.UNKNOWN, None))
    assert details.model_dump() == {"status": "UNKNOWN", "latency": None}


def test_resolve_response_requires_model():
    with pytest.raises(ValidationError):
        ResolveModelResponse(
            modelToUse="",
            fallbackOccurred=False,
            reason="",
            details=HealthDetails(status="HEALTHY", latency=1),
        )
