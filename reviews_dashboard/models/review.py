from collections.abc import Iterator
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ReviewType = Literal["guest-to-host", "host-to-guest"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ListingRef(CamelModel):
    name: str
    slug: str


class CanonicalReview(CamelModel):
    id: str
    channel: str
    review_type: ReviewType = "guest-to-host"
    status: str = "pending"
    rating_overall10: float | None = Field(default=None, ge=0.0, le=10.0)
    rating_overall5: float | None = Field(default=None, ge=0.0, le=5.0)
    categories: dict[str, float] = Field(default_factory=dict)
    submitted_at: datetime
    author_name: str = "Anonymous"
    text: str = ""
    approved: bool = False
    listing: ListingRef
    source_meta: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_rated(self) -> bool:
        return self.rating_overall5 is not None


class Metrics(CamelModel):
    count: int = 0
    avg_rating5: float | None = None
    avg_rating10: float | None = None
    last_review_at: datetime | None = None
    category_averages: dict[str, float] = Field(default_factory=dict)
    rating_distribution: dict[int, int] = Field(default_factory=lambda: {star: 0 for star in range(1, 6)})


class ListingAggregate(CamelModel):
    listing_id: str
    listing_name: str
    reviews: list[CanonicalReview] = Field(default_factory=list)
    metrics: Metrics = Field(default_factory=Metrics)


class NormalizedSource(CamelModel):
    source: str
    fetched_at: datetime
    listings: list[ListingAggregate] = Field(default_factory=list)
    reason: str | None = None

    @property
    def degraded(self) -> bool:
        return self.reason is not None

    def iter_reviews(self) -> Iterator[CanonicalReview]:
        for listing in self.listings:
            yield from listing.reviews

    def to_payload(self) -> dict[str, Any]:
        exclude = {"reason"} if self.reason is None else None
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)


class TrendBucket(CamelModel):
    date: datetime
    label: str
    count: int = 0
    avg_rating: float | None = None


class ListingSummary(CamelModel):
    listing_id: str
    listing_name: str
    channels: list[str] = Field(default_factory=list)
    metrics: Metrics = Field(default_factory=Metrics)
    trend: list[TrendBucket] = Field(default_factory=list)


class AggregatedReviews(CamelModel):
    source: str
    fetched_at: datetime
    listings: list[ListingAggregate] = Field(default_factory=list)
    total_reviews: int = 0
    applied_filters: dict[str, Any] = Field(default_factory=dict)
    reason: str | None = None

    def to_payload(self) -> dict[str, Any]:
        exclude = {"reason"} if self.reason is None else None
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)
