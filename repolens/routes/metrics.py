"""
Metrics route for the repolens FastAPI application
"""

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def metrics(request: Request):
    """Prometheus text exposition of the application registry"""
    return Response(
        content=generate_latest(request.app.state.metrics_registry),
        media_type=CONTENT_TYPE_LATEST,
    )
