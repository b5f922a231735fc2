import logging
import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from reviews_dashboard.models.review import CanonicalReview, ListingAggregate, ListingRef, NormalizedSource
from reviews_dashboard.pipeline.metrics import compute_metrics
from reviews_dashboard.pipeline.values import (
    coerce_number,
    parse_timestamp,
    round_half_up,
    to_camel_key,
    to_listing_slug,
    to_stars5,
    utc_now,
)

LOGGER = logging.getLogger(__name__)

_WHITESPACE_REGEX = re.compile(r"\s+")


def group_by_listing(reviews: Iterable[CanonicalReview]) -> list[ListingAggregate]:
    grouped: dict[str, ListingAggregate] = {}
    for review in reviews:
        slug = review.listing.slug
        if slug not in grouped:
            grouped[slug] = ListingAggregate(listing_id=slug, listing_name=review.listing.name)
        grouped[slug].reviews.append(review)

    for listing in grouped.values():
        listing.metrics = compute_metrics(listing.reviews)
    return list(grouped.values())


class SourceNormalizer:
    channel = ""
    default_listing_name = "Unknown listing"

    def normalize(self, raw_payload: object, approvals: Mapping[str, bool] | None = None) -> NormalizedSource:
        fetched_at = utc_now()
        approval_flags = approvals or {}

        records, reason = self.extract_records(raw_payload)
        if records is None:
            LOGGER.warning("Malformed %s payload: %s", self.channel, reason)
            return NormalizedSource(source=self.channel, fetched_at=fetched_at, reason=reason)

        reviews: list[CanonicalReview] = []
        for index, record in enumerate(records):
            if not isinstance(record, Mapping):
                LOGGER.warning("Skipping %s record #%s: expected an object, got %s", self.channel, index, type(record).__name__)
                continue
            review = self._build_review(record, raw_payload, approval_flags)
            if review is not None:
                reviews.append(review)

        return NormalizedSource(
            source=self.channel,
            fetched_at=fetched_at,
            listings=group_by_listing(reviews),
        )

    def extract_records(self, raw_payload: object) -> tuple[list[Any] | None, str | None]:
        raise NotImplementedError

    def map_record(self, record: Mapping[str, Any], raw_payload: object) -> dict[str, Any]:
        raise NotImplementedError

    def _build_review(
        self,
        record: Mapping[str, Any],
        raw_payload: object,
        approvals: Mapping[str, bool],
    ) -> CanonicalReview | None:
        fields = self.map_record(record, raw_payload)
        local_id = fields.get("local_id")
        if local_id is None or str(local_id).strip() == "":
            LOGGER.warning("Skipping %s record without an id", self.channel)
            return None
        review_id = f"{self.channel}:{local_id}"

        categories = self._normalize_categories(fields.get("categories") or {})
        rating10 = self._overall_rating10(fields.get("rating10"), categories)

        raw_submitted_at = fields.get("submitted_at")
        submitted_at = parse_timestamp(raw_submitted_at)
        if submitted_at is None:
            LOGGER.warning("Unparseable timestamp %r on %s, using current time", raw_submitted_at, review_id)
            submitted_at = utc_now()

        listing_name = str(fields.get("listing_name") or "").strip() or self.default_listing_name

        try:
            return CanonicalReview(
                id=review_id,
                channel=self.channel,
                review_type="host-to-guest" if fields.get("review_type") == "host-to-guest" else "guest-to-host",
                status=str(fields.get("status") or "pending"),
                rating_overall10=rating10,
                rating_overall5=to_stars5(rating10),
                categories=categories,
                submitted_at=submitted_at,
                author_name=str(fields.get("author_name") or "").strip() or "Anonymous",
                text=str(fields.get("text") or ""),
                approved=bool(approvals.get(review_id, False)),
                listing=ListingRef(name=listing_name, slug=to_listing_slug(listing_name)),
                source_meta=fields.get("source_meta") or {},
            )
        except ValidationError as exc:
            LOGGER.warning("Skipping invalid %s record %s: %s", self.channel, review_id, exc)
            return None

    def _normalize_categories(self, raw_categories: Mapping[str, object]) -> dict[str, float]:
        categories: dict[str, float] = {}
        for raw_key, raw_rating in raw_categories.items():
            if not isinstance(raw_key, str) or not raw_key.strip():
                continue
            if isinstance(raw_rating, bool) or not isinstance(raw_rating, (int, float)):
                continue
            rating = coerce_number(raw_rating)
            if rating is None:
                continue
            categories[to_camel_key(raw_key)] = rating
        return categories

    def _overall_rating10(self, explicit: float | None, categories: Mapping[str, float]) -> float | None:
        if explicit is not None:
            rating10 = explicit
        elif categories:
            # Category mean stands in for a missing overall rating.
            mean = sum(categories.values()) / len(categories)
            if not math.isfinite(mean):
                return None
            rating10 = round_half_up(mean, 0.1)
        else:
            return None
        return min(max(rating10, 0.0), 10.0)


class HostawayNormalizer(SourceNormalizer):
    channel = "hostaway"

    def extract_records(self, raw_payload: object) -> tuple[list[Any] | None, str | None]:
        if not isinstance(raw_payload, Mapping):
            return None, "payload is not an object"
        records = raw_payload.get("result")
        if not isinstance(records, list):
            return None, "missing 'result' list"
        return records, None

    def map_record(self, record: Mapping[str, Any], raw_payload: object) -> dict[str, Any]:
        raw_categories: dict[str, object] = {}
        review_categories = record.get("reviewCategory")
        if isinstance(review_categories, list):
            for item in review_categories:
                if isinstance(item, Mapping) and item.get("category"):
                    raw_categories[str(item["category"])] = item.get("rating")

        return {
            "local_id": record.get("id"),
            "review_type": record.get("type"),
            "status": record.get("status"),
            "rating10": coerce_number(record.get("rating")),
            "categories": raw_categories,
            "submitted_at": record.get("submittedAt"),
            "author_name": record.get("guestName") or record.get("hostName"),
            "text": record.get("publicReview"),
            "listing_name": record.get("listingName"),
        }


class GoogleNormalizer(SourceNormalizer):
    channel = "google"
    default_listing_name = "Unknown place"

    def __init__(self, place_id: str | None = None, listing_name: str | None = None) -> None:
        self.place_id = place_id
        self.listing_name = listing_name

    def extract_records(self, raw_payload: object) -> tuple[list[Any] | None, str | None]:
        if not isinstance(raw_payload, Mapping):
            return None, "payload is not an object"

        status = raw_payload.get("status")
        if status is not None and status != "OK":
            return None, f"upstream status {status}"

        result = raw_payload.get("result")
        if not isinstance(result, Mapping):
            return None, "missing 'result' object"

        records = result.get("reviews", [])
        if not isinstance(records, list):
            return None, "'result.reviews' is not a list"
        return records, None

    def map_record(self, record: Mapping[str, Any], raw_payload: object) -> dict[str, Any]:
        place: Mapping[str, Any] = {}
        if isinstance(raw_payload, Mapping) and isinstance(raw_payload.get("result"), Mapping):
            place = raw_payload["result"]

        author_name = str(record.get("author_name") or "").strip()
        timestamp = record.get("time")
        stars = coerce_number(record.get("rating"))
        total_ratings = coerce_number(place.get("user_ratings_total"))

        source_meta = {
            "authorUrl": record.get("author_url"),
            "profilePhotoUrl": record.get("profile_photo_url"),
            "relativeTimeDescription": record.get("relative_time_description"),
            "googleRating": coerce_number(place.get("rating")),
            "totalRatings": int(total_ratings) if total_ratings is not None else None,
        }
        if self.place_id:
            source_meta["placeId"] = self.place_id

        return {
            "local_id": f"{timestamp}:{_WHITESPACE_REGEX.sub('', author_name)}" if timestamp is not None else None,
            "review_type": "guest-to-host",
            "status": "published",
            "rating10": stars * 2 if stars is not None else None,
            "submitted_at": timestamp,
            "author_name": author_name,
            "text": record.get("text"),
            "listing_name": self.listing_name or place.get("name"),
            "source_meta": {key: value for key, value in source_meta.items() if value is not None},
        }


NORMALIZERS: dict[str, type[SourceNormalizer]] = {
    HostawayNormalizer.channel: HostawayNormalizer,
    GoogleNormalizer.channel: GoogleNormalizer,
}


def get_normalizer(channel: str, **options: Any) -> SourceNormalizer:
    normalizer_cls = NORMALIZERS.get(str(channel or "").strip().lower())
    if normalizer_cls is None:
        raise ValueError(f"Unsupported source '{channel}'. Use one of: {', '.join(NORMALIZERS)}.")
    return normalizer_cls(**options)
