from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response

from prospector.core.config import get_settings
from prospector.metrics import generate_metrics_payload, metrics_content_type
from prospector.prospects.api import router as prospects_router
from prospector.scoring.api import router as scoring_router

router = APIRouter()
router.include_router(prospects_router)
router.include_router(scoring_router)


@router.get("/health", tags=["system"])
def health() -> dict[str, str | int]:
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.app_env,
        "commit_max_writes": settings.commit_max_writes,
        "scoring_schedule": (
            f"{settings.scoring_schedule_hour:02d}:{settings.scoring_schedule_minute:02d} {settings.scoring_timezone}"
        ),
    }


@router.get("/metrics", tags=["system"])
def metrics() -> Response:
    if not get_settings().metrics_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="metrics disabled")
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())
