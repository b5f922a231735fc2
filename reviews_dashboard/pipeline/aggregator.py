from collections.abc import Mapping, Sequence
from typing import Any

from reviews_dashboard.models.query import ReviewFilters
from reviews_dashboard.models.review import (
    AggregatedReviews,
    CanonicalReview,
    ListingAggregate,
    ListingSummary,
    NormalizedSource,
)
from reviews_dashboard.pipeline.buckets import SUNDAY, bucketize
from reviews_dashboard.pipeline.filters import apply_filters, coerce_filters, sort_reviews
from reviews_dashboard.pipeline.metrics import compute_metrics
from reviews_dashboard.pipeline.normalizers import group_by_listing
from reviews_dashboard.pipeline.values import utc_now


def _as_sources(sources: NormalizedSource | Sequence[NormalizedSource]) -> list[NormalizedSource]:
    if isinstance(sources, NormalizedSource):
        return [sources]
    return list(sources)


def _source_name(sources: list[NormalizedSource]) -> str:
    names = list(dict.fromkeys(source.source for source in sources))
    return "+".join(names)


def _combined_reason(sources: list[NormalizedSource]) -> str | None:
    reasons = [f"{source.source}: {source.reason}" for source in sources if source.degraded]
    return "; ".join(reasons) or None


def flatten_reviews(sources: NormalizedSource | Sequence[NormalizedSource]) -> list[CanonicalReview]:
    return [review for source in _as_sources(sources) for review in source.iter_reviews()]


def _find_listing(sources: list[NormalizedSource], listing_id: str) -> ListingAggregate | None:
    for source in sources:
        for listing in source.listings:
            if listing.listing_id == listing_id:
                return listing
    return None


def aggregate_reviews(
    sources: NormalizedSource | Sequence[NormalizedSource],
    filters: ReviewFilters | Mapping[str, Any] | None = None,
    sort_by: str = "date",
    direction: str = "desc",
) -> AggregatedReviews:
    source_list = _as_sources(sources)
    filter_model = coerce_filters(filters)

    reviews = flatten_reviews(source_list)
    selected = sort_reviews(apply_filters(reviews, filter_model), sort_by, direction)

    target = _find_listing(source_list, filter_model.listing_id) if filter_model.listing_id else None
    if target is not None:
        listings = [
            ListingAggregate(
                listing_id=target.listing_id,
                listing_name=target.listing_name,
                reviews=selected,
                metrics=compute_metrics(selected),
            )
        ]
    else:
        listings = group_by_listing(selected)
        known_names = {
            listing.listing_id: listing.listing_name for source in reversed(source_list) for listing in source.listings
        }
        for listing in listings:
            listing.listing_name = known_names.get(listing.listing_id, listing.listing_name)

    fetched_at = max((source.fetched_at for source in source_list), default=None) or utc_now()
    return AggregatedReviews(
        source=_source_name(source_list),
        fetched_at=fetched_at,
        listings=listings,
        total_reviews=len(selected),
        applied_filters=filter_model.applied(),
        reason=_combined_reason(source_list),
    )


def summarize_listings(
    sources: NormalizedSource | Sequence[NormalizedSource],
    period: str = "day",
    max_buckets: int = 30,
    week_start: int = SUNDAY,
) -> list[ListingSummary]:
    summaries: list[ListingSummary] = []
    for listing in group_by_listing(flatten_reviews(sources)):
        summaries.append(
            ListingSummary(
                listing_id=listing.listing_id,
                listing_name=listing.listing_name,
                channels=sorted({review.channel for review in listing.reviews}),
                metrics=listing.metrics,
                trend=bucketize(listing.reviews, "submitted_at", period, max_buckets, week_start),
            )
        )
    return summaries
