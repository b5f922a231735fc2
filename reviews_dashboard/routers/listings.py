from fastapi import APIRouter, HTTPException, Query, status

from reviews_dashboard.services.review_service import ReviewService

router = APIRouter(prefix="/api/listings", tags=["Listings"])


@router.get("")
async def list_listings(
    place_id: str | None = Query(default=None, alias="placeId"),
    period: str | None = Query(default=None),
    max_buckets: int | None = Query(default=None, alias="maxBuckets", ge=1, le=366),
) -> dict:
    service = ReviewService()
    try:
        return await service.list_listings(place_id=place_id, period=period, max_buckets=max_buckets)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/{listing_id}")
async def get_listing(
    listing_id: str,
    place_id: str | None = Query(default=None, alias="placeId"),
    approved_only: bool = Query(default=False, alias="approvedOnly"),
    period: str | None = Query(default=None),
    max_buckets: int | None = Query(default=None, alias="maxBuckets", ge=1, le=366),
) -> dict:
    service = ReviewService()
    try:
        return await service.get_listing(
            listing_id,
            place_id=place_id,
            approved_only=approved_only,
            period=period,
            max_buckets=max_buckets,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
