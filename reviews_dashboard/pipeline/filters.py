import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from reviews_dashboard.models.query import ReviewFilters
from reviews_dashboard.models.review import CanonicalReview
from reviews_dashboard.pipeline.values import end_of_day, parse_timestamp

LOGGER = logging.getLogger(__name__)

Predicate = Callable[[CanonicalReview], bool]

_SORT_KEYS: dict[str, Callable[[CanonicalReview], Any]] = {
    "rating": lambda review: review.rating_overall5 or 0,
    "date": lambda review: review.submitted_at,
    "author": lambda review: (review.author_name or "").lower(),
    "listing": lambda review: (review.listing.name or "").lower(),
    "channel": lambda review: review.channel or "",
}


def coerce_filters(filters: ReviewFilters | Mapping[str, Any] | None) -> ReviewFilters:
    if filters is None:
        return ReviewFilters()
    if isinstance(filters, ReviewFilters):
        return filters
    return ReviewFilters.model_validate(dict(filters))


def build_predicates(filters: ReviewFilters) -> list[Predicate]:
    predicates: list[Predicate] = []

    if filters.listing_id:
        listing_id = filters.listing_id
        predicates.append(lambda review: review.listing.slug == listing_id)

    if filters.channel:
        channel = filters.channel
        predicates.append(lambda review: review.channel == channel)

    if filters.rating_min is not None:
        rating_min = filters.rating_min
        predicates.append(
            lambda review: review.is_rated and review.rating_overall5 >= rating_min
        )

    if filters.rating_max is not None:
        rating_max = filters.rating_max
        predicates.append(
            lambda review: review.is_rated and review.rating_overall5 <= rating_max
        )

    if filters.category:
        category = filters.category
        predicates.append(lambda review: review.categories.get(category) is not None)

    if filters.date_from:
        date_from = parse_timestamp(filters.date_from)
        if date_from is None:
            LOGGER.warning("Ignoring unparseable 'from' filter: %r", filters.date_from)
        else:
            predicates.append(lambda review: review.submitted_at >= date_from)

    if filters.date_to:
        parsed_to = parse_timestamp(filters.date_to)
        if parsed_to is None:
            LOGGER.warning("Ignoring unparseable 'to' filter: %r", filters.date_to)
        else:
            date_to = end_of_day(parsed_to)
            predicates.append(lambda review: review.submitted_at <= date_to)

    if filters.approved is not None:
        approved = filters.approved
        predicates.append(lambda review: review.approved is approved)

    if filters.search:
        term = filters.search.lower()
        predicates.append(
            lambda review: term in (review.text or "").lower()
            or term in (review.author_name or "").lower()
            or term in (review.listing.name or "").lower()
        )

    return predicates


def apply_filters(
    reviews: Iterable[CanonicalReview],
    filters: ReviewFilters | Mapping[str, Any] | None = None,
) -> list[CanonicalReview]:
    predicates = build_predicates(coerce_filters(filters))
    return [review for review in reviews if all(predicate(review) for predicate in predicates)]


def sort_reviews(
    reviews: Iterable[CanonicalReview],
    sort_by: str = "date",
    direction: str = "desc",
) -> list[CanonicalReview]:
    key = _SORT_KEYS.get(str(sort_by or "").strip().lower())
    if key is None:
        return list(reviews)
    return sorted(reviews, key=key, reverse=str(direction or "").strip().lower() != "asc")
