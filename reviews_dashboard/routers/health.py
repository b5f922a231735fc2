from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from reviews_dashboard.config import settings
from reviews_dashboard.services.review_service import ReviewService

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    approvals: str
    hostaway: str
    google: str
    environment: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    detail: str | None = None


@router.get("/health", response_model=HealthResponse)
async def get_health() -> JSONResponse:
    service = ReviewService()
    store_ok, store_detail = await service.check_approval_store()
    http_status = status.HTTP_200_OK if store_ok else status.HTTP_503_SERVICE_UNAVAILABLE
    payload = HealthResponse(
        status="ok" if store_ok else "degraded",
        approvals="up" if store_ok else "down",
        hostaway="live" if service.hostaway_client.has_credentials else "mock",
        google="enabled" if service.google_client.enabled else "disabled",
        environment=settings.app_env,
        detail=store_detail if not store_ok else None,
    )
    return JSONResponse(status_code=http_status, content=payload.model_dump(mode="json", exclude_none=True))
