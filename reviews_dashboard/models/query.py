from typing import Any

from pydantic import Field, field_validator

from reviews_dashboard.models.review import CamelModel
from reviews_dashboard.pipeline.values import coerce_number

SORT_DIRECTIONS = ("asc", "desc")


class ReviewFilters(CamelModel):
    listing_id: str | None = None
    channel: str | None = None
    rating_min: float | None = None
    rating_max: float | None = None
    category: str | None = None
    date_from: str | None = Field(default=None, alias="from")
    date_to: str | None = Field(default=None, alias="to")
    approved: bool | None = None
    search: str | None = None

    @field_validator("listing_id", "channel", "category", "date_from", "date_to", "search", mode="before")
    @classmethod
    def blank_to_none(cls, value: object) -> object:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("rating_min", "rating_max", mode="before")
    @classmethod
    def coerce_rating_bound(cls, value: object) -> object:
        return coerce_number(value)

    @field_validator("approved", mode="before")
    @classmethod
    def coerce_approved(cls, value: object) -> object:
        if value is None or isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if not text:
            return None
        return text == "true"

    def is_empty(self) -> bool:
        return not self.applied()

    def applied(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ReviewSort(CamelModel):
    sort_by: str = "date"
    direction: str = "desc"

    @field_validator("sort_by", mode="before")
    @classmethod
    def normalize_sort_by(cls, value: object) -> object:
        if value is None:
            return "date"
        return str(value).strip().lower() or "date"

    @field_validator("direction", mode="before")
    @classmethod
    def normalize_direction(cls, value: object) -> object:
        text = str(value or "").strip().lower()
        return text if text in SORT_DIRECTIONS else "desc"
