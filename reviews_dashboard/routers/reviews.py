from typing import Any

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict

from reviews_dashboard.models.query import ReviewFilters, ReviewSort
from reviews_dashboard.services.review_service import ReviewService

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


class ApprovalRequest(BaseModel):
    reviewId: Any = None
    approved: Any = None

    model_config = ConfigDict(extra="ignore")


class BatchApprovalRequest(BaseModel):
    updates: Any = None

    model_config = ConfigDict(extra="ignore")


def _filters_from_query(
    listing_id: str | None,
    channel: str | None,
    rating_min: str | None,
    rating_max: str | None,
    category: str | None,
    date_from: str | None,
    date_to: str | None,
    approved: str | None,
    search: str | None,
) -> ReviewFilters:
    return ReviewFilters(
        listing_id=listing_id,
        channel=channel,
        rating_min=rating_min,
        rating_max=rating_max,
        category=category,
        date_from=date_from,
        date_to=date_to,
        approved=approved,
        search=search,
    )


@router.get("")
async def get_combined_reviews(
    place_id: str | None = Query(default=None, alias="placeId"),
    listing_id: str | None = Query(default=None, alias="listingId"),
    channel: str | None = Query(default=None),
    rating_min: str | None = Query(default=None, alias="ratingMin"),
    rating_max: str | None = Query(default=None, alias="ratingMax"),
    category: str | None = Query(default=None),
    date_from: str | None = Query(default=None, alias="from"),
    date_to: str | None = Query(default=None, alias="to"),
    approved: str | None = Query(default=None),
    search: str | None = Query(default=None),
    sort: str | None = Query(default=None),
    direction: str | None = Query(default=None, alias="dir"),
) -> dict:
    service = ReviewService()
    filters = _filters_from_query(
        listing_id, channel, rating_min, rating_max, category, date_from, date_to, approved, search
    )
    try:
        return await service.get_combined_reviews(
            place_id=place_id,
            filters=filters,
            sort=ReviewSort(sort_by=sort, direction=direction),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/hostaway")
async def get_hostaway_reviews(
    listing_id: str | None = Query(default=None, alias="listingId"),
    channel: str | None = Query(default=None),
    rating_min: str | None = Query(default=None, alias="ratingMin"),
    rating_max: str | None = Query(default=None, alias="ratingMax"),
    category: str | None = Query(default=None),
    date_from: str | None = Query(default=None, alias="from"),
    date_to: str | None = Query(default=None, alias="to"),
    approved: str | None = Query(default=None),
    search: str | None = Query(default=None),
    sort: str | None = Query(default=None),
    direction: str | None = Query(default=None, alias="dir"),
) -> dict:
    service = ReviewService()
    filters = _filters_from_query(
        listing_id, channel, rating_min, rating_max, category, date_from, date_to, approved, search
    )
    try:
        return await service.get_hostaway_reviews(
            filters=filters,
            sort=ReviewSort(sort_by=sort, direction=direction),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/google")
async def get_google_reviews(
    place_id: str | None = Query(default=None, alias="placeId"),
    rating_min: str | None = Query(default=None, alias="ratingMin"),
    rating_max: str | None = Query(default=None, alias="ratingMax"),
    date_from: str | None = Query(default=None, alias="from"),
    date_to: str | None = Query(default=None, alias="to"),
    approved: str | None = Query(default=None),
    search: str | None = Query(default=None),
    sort: str | None = Query(default=None),
    direction: str | None = Query(default=None, alias="dir"),
) -> dict:
    service = ReviewService()
    filters = _filters_from_query(None, None, rating_min, rating_max, None, date_from, date_to, approved, search)
    try:
        return await service.get_google_reviews(
            place_id=place_id,
            filters=filters,
            sort=ReviewSort(sort_by=sort, direction=direction),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("/approve")
async def approve_review(payload: ApprovalRequest) -> dict:
    service = ReviewService()
    try:
        return await service.set_approval(review_id=payload.reviewId, approved=payload.approved)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.patch("/approve")
async def approve_reviews(payload: BatchApprovalRequest) -> dict:
    service = ReviewService()
    try:
        return await service.set_approvals(updates=payload.updates)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
