"""
Prometheus metrics endpoint.

Exposes application metrics in Prometheus format.
"""
from fastapi import APIRouter, Response
from corebank.obs.metrics import metrics

router = APIRouter(tags=["Observability"])


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="""
    Exposes application metrics in Prometheus format.

    **Metrics Exposed**:
    - HTTP request count and latency by route
    - Core banking vendor attempts by vendor, method and status
    - Retries and exhausted exchanges by vendor
    - Integration queue transitions and audit records

    **No Authentication Required**: Metrics endpoint is public (no PII)
    """,
    response_class=Response
)
async def get_metrics():
    """Return Prometheus-formatted metrics."""
    return metrics.get_metrics_response()
