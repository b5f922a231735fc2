from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from reviews_dashboard.clients.errors import UpstreamError
from reviews_dashboard.clients.google_places import GooglePlacesClient
from reviews_dashboard.clients.hostaway import HostawayClient
from reviews_dashboard.config import Settings, settings
from reviews_dashboard.models.query import ReviewFilters, ReviewSort
from reviews_dashboard.models.review import ListingSummary, NormalizedSource
from reviews_dashboard.pipeline.aggregator import aggregate_reviews, summarize_listings
from reviews_dashboard.pipeline.buckets import PERIODS, bucketize
from reviews_dashboard.pipeline.normalizers import GoogleNormalizer, HostawayNormalizer
from reviews_dashboard.pipeline.values import utc_now
from reviews_dashboard.storage import ApprovalStore

LOGGER = logging.getLogger(__name__)

_MAX_TREND_BUCKETS = 366


class ReviewService:
    def __init__(
        self,
        *,
        app_settings: Settings | None = None,
        hostaway_client: HostawayClient | None = None,
        google_client: GooglePlacesClient | None = None,
        approval_store: ApprovalStore | None = None,
    ) -> None:
        self.settings = app_settings or settings
        self.hostaway_client = hostaway_client or HostawayClient.from_settings(self.settings)
        self.google_client = google_client or GooglePlacesClient.from_settings(self.settings)
        self.approval_store = approval_store or ApprovalStore(self.settings.approvals_path)
        self.hostaway_normalizer = HostawayNormalizer()

    async def get_hostaway_reviews(
        self,
        *,
        filters: ReviewFilters | None = None,
        sort: ReviewSort | None = None,
    ) -> dict:
        approvals = await self._load_approvals()
        source = await self._hostaway_source(approvals)
        return self._aggregate([source], filters=filters, sort=sort)

    async def get_google_reviews(
        self,
        *,
        place_id: str | None,
        filters: ReviewFilters | None = None,
        sort: ReviewSort | None = None,
    ) -> dict:
        if not self.google_client.enabled:
            return {
                "source": "google",
                "enabled": False,
                "message": "Google Places API key not configured",
                "listings": [],
            }

        place_id_value = self._validate_place_id(place_id)
        approvals = await self._load_approvals()
        source = await self._google_source(place_id_value, approvals)
        payload = self._aggregate([source], filters=filters, sort=sort)
        payload["enabled"] = True
        return payload

    async def get_combined_reviews(
        self,
        *,
        place_id: str | None = None,
        filters: ReviewFilters | None = None,
        sort: ReviewSort | None = None,
    ) -> dict:
        approvals = await self._load_approvals()
        sources = await self._all_sources(place_id, approvals)
        return self._aggregate(sources, filters=filters, sort=sort)

    async def list_listings(
        self,
        *,
        place_id: str | None = None,
        period: str | None = None,
        max_buckets: int | None = None,
    ) -> dict:
        period_value = self._resolve_period(period)
        max_buckets_value = self._resolve_max_buckets(max_buckets)

        approvals = await self._load_approvals()
        sources = await self._all_sources(place_id, approvals)
        summaries = summarize_listings(
            sources,
            period=period_value,
            max_buckets=max_buckets_value,
            week_start=self.settings.week_start,
        )

        payload: dict[str, Any] = {
            "items": [summary.to_payload() for summary in summaries],
            "total": len(summaries),
            "period": period_value,
            "maxBuckets": max_buckets_value,
            "fetchedAt": max(source.fetched_at for source in sources).isoformat(),
        }
        reasons = [f"{source.source}: {source.reason}" for source in sources if source.degraded]
        if reasons:
            payload["reason"] = "; ".join(reasons)
        return payload

    async def get_listing(
        self,
        listing_id: str,
        *,
        place_id: str | None = None,
        approved_only: bool = False,
        period: str | None = None,
        max_buckets: int | None = None,
    ) -> dict:
        listing_id_value = (listing_id or "").strip()
        if not listing_id_value:
            raise ValueError("listing_id is required.")
        period_value = self._resolve_period(period)
        max_buckets_value = self._resolve_max_buckets(max_buckets)

        approvals = await self._load_approvals()
        sources = await self._all_sources(place_id, approvals)
        filters = ReviewFilters(listing_id=listing_id_value, approved=True if approved_only else None)
        aggregated = aggregate_reviews(sources, filters=filters)
        if not aggregated.listings:
            raise LookupError(f"Listing '{listing_id_value}' not found.")

        listing = aggregated.listings[0]
        summary = ListingSummary(
            listing_id=listing.listing_id,
            listing_name=listing.listing_name,
            channels=sorted({review.channel for review in listing.reviews}),
            metrics=listing.metrics,
            trend=bucketize(
                listing.reviews,
                "submitted_at",
                period_value,
                max_buckets_value,
                self.settings.week_start,
            ),
        )
        payload = summary.to_payload()
        payload["reviews"] = [review.to_payload() for review in listing.reviews]
        payload["approvedOnly"] = approved_only
        return payload

    async def set_approval(self, review_id: str, approved: bool) -> dict:
        review_id_value = self._validate_review_id(review_id)
        if not isinstance(approved, bool):
            raise ValueError("approved must be a boolean.")

        await asyncio.to_thread(self.approval_store.set, review_id_value, approved)
        LOGGER.info("Review %s %s", review_id_value, "approved" if approved else "unapproved")
        return {
            "ok": True,
            "reviewId": review_id_value,
            "approved": approved,
            "message": f"Review {'approved' if approved else 'unapproved'} successfully",
        }

    async def set_approvals(self, updates: list[Mapping[str, Any]]) -> dict:
        if not isinstance(updates, list):
            raise ValueError("updates array is required.")

        accepted: list[tuple[str, bool]] = []
        errors: list[dict[str, Any]] = []
        for update in updates:
            review_id = update.get("reviewId") if isinstance(update, Mapping) else None
            approved = update.get("approved") if isinstance(update, Mapping) else None
            try:
                review_id_value = self._validate_review_id(review_id)
            except ValueError as exc:
                errors.append({"reviewId": review_id or "unknown", "error": str(exc)})
                continue
            if not isinstance(approved, bool):
                errors.append({"reviewId": review_id_value, "error": "approved must be a boolean."})
                continue
            accepted.append((review_id_value, approved))

        if accepted:
            await asyncio.to_thread(self.approval_store.set_many, accepted)

        payload: dict[str, Any] = {
            "ok": True,
            "updated": len(accepted),
            "results": [
                {"reviewId": review_id, "approved": approved, "success": True} for review_id, approved in accepted
            ],
        }
        if errors:
            payload["errors"] = errors
        return payload

    async def check_approval_store(self) -> tuple[bool, str | None]:
        return await asyncio.to_thread(self.approval_store.check)

    async def _load_approvals(self) -> dict[str, bool]:
        return await asyncio.to_thread(self.approval_store.load_or_empty)

    async def _hostaway_source(self, approvals: Mapping[str, bool]) -> NormalizedSource:
        raw_payload, fallback_reason = await self.hostaway_client.fetch_raw()
        source = self.hostaway_normalizer.normalize(raw_payload, approvals)
        if fallback_reason and source.reason is None:
            source.reason = fallback_reason
        return source

    async def _google_source(self, place_id: str, approvals: Mapping[str, bool]) -> NormalizedSource:
        normalizer = GoogleNormalizer(
            place_id=place_id,
            listing_name=self.settings.google_listing_names.get(place_id),
        )
        try:
            raw_payload = await self.google_client.fetch_place(place_id)
        except UpstreamError as exc:
            LOGGER.warning("Google Places unavailable for %s: %s", place_id, exc)
            return NormalizedSource(source=normalizer.channel, fetched_at=utc_now(), reason=str(exc))
        return normalizer.normalize(raw_payload, approvals)

    async def _all_sources(self, place_id: str | None, approvals: Mapping[str, bool]) -> list[NormalizedSource]:
        place_id_value = (place_id or "").strip()
        if place_id_value and self.google_client.enabled:
            return list(
                await asyncio.gather(
                    self._hostaway_source(approvals),
                    self._google_source(place_id_value, approvals),
                )
            )
        return [await self._hostaway_source(approvals)]

    def _aggregate(
        self,
        sources: list[NormalizedSource],
        *,
        filters: ReviewFilters | None,
        sort: ReviewSort | None,
    ) -> dict:
        sort_value = sort or ReviewSort()
        aggregated = aggregate_reviews(
            sources,
            filters=filters,
            sort_by=sort_value.sort_by,
            direction=sort_value.direction,
        )
        return aggregated.to_payload()

    def _validate_place_id(self, place_id: str | None) -> str:
        value = (place_id or "").strip()
        if not value:
            raise ValueError("placeId parameter is required.")
        return value

    def _validate_review_id(self, review_id: object) -> str:
        if not isinstance(review_id, str) or not review_id.strip():
            raise ValueError("reviewId (string) is required.")
        value = review_id.strip()
        if ":" not in value:
            raise ValueError('reviewId should be in format "source:id" (e.g., "hostaway:12345").')
        return value

    def _resolve_period(self, period: str | None) -> str:
        raw_value = period if period is not None else self.settings.trend_period
        value = str(raw_value or "").strip().lower() or "day"
        if value not in PERIODS:
            raise ValueError(f"Invalid period '{raw_value}'. Use one of: {', '.join(PERIODS)}.")
        return value

    def _resolve_max_buckets(self, max_buckets: int | None) -> int:
        raw_value = max_buckets if max_buckets is not None else self.settings.trend_max_buckets
        try:
            value = int(raw_value)
        except (TypeError, ValueError) as exc:
            raise ValueError("Invalid maxBuckets. It must be an integer >= 1.") from exc
        if value < 1:
            raise ValueError("Invalid maxBuckets. It must be >= 1.")
        return min(value, _MAX_TREND_BUCKETS)
