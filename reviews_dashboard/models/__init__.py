from reviews_dashboard.models.query import ReviewFilters, ReviewSort
from reviews_dashboard.models.review import (
    AggregatedReviews,
    CanonicalReview,
    ListingAggregate,
    ListingRef,
    ListingSummary,
    Metrics,
    NormalizedSource,
    TrendBucket,
)

__all__ = [
    "AggregatedReviews",
    "CanonicalReview",
    "ListingAggregate",
    "ListingRef",
    "ListingSummary",
    "Metrics",
    "NormalizedSource",
    "ReviewFilters",
    "ReviewSort",
    "TrendBucket",
]
