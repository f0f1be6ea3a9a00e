from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from dashboard.dependencies import get_services
from dashboard.schemas import StatusResponse
from feeds.container import Services

router = APIRouter(prefix="/api", tags=["System Status"])

# healthy 200, degraded 206 (partial content), unhealthy 503
STATUS_CODES = {"healthy": 200, "degraded": 206, "unhealthy": 503}


@router.get("/status", response_model=StatusResponse)
def get_status(services: Services = Depends(get_services)):
    """
    Source health across all domains, plus cache statistics.
    """
    report = StatusResponse(**services.health_report())
    return JSONResponse(
        content=report.model_dump(mode="json"),
        status_code=STATUS_CODES.get(report.overall, 503),
    )
