from datetime import datetime, timedelta, timezone

import pytest

from reviews_dashboard.models.review import CanonicalReview, ListingRef
from reviews_dashboard.pipeline.buckets import bucket_start, bucketize
from reviews_dashboard.pipeline.values import to_stars5


def _review(review_id: int, submitted_at: datetime, rating10: float | None = 8) -> CanonicalReview:
    return CanonicalReview(
        id=f"hostaway:{review_id}",
        channel="hostaway",
        rating_overall10=rating10,
        rating_overall5=to_stars5(rating10),
        submitted_at=submitted_at,
        listing=ListingRef(name="Cozy Loft", slug="cozy-loft"),
    )


def test_bucketize_empty_input_returns_no_buckets() -> None:
    assert bucketize([]) == []


def test_bucketize_keeps_only_trailing_window() -> None:
    newest = datetime(2024, 6, 30, 15, 0, tzinfo=timezone.utc)
    reviews = [_review(day, newest - timedelta(days=day)) for day in range(45)]

    buckets = bucketize(reviews, "submittedAt", "day", 30)

    assert len(buckets) == 30
    assert buckets[-1].date == datetime(2024, 6, 30, tzinfo=timezone.utc)
    assert buckets[0].date == datetime(2024, 6, 1, tzinfo=timezone.utc)
    assert all(bucket.count == 1 for bucket in buckets)
    assert buckets[0].label == "Jun 01"


def test_bucketize_fills_gaps_with_empty_buckets() -> None:
    reviews = [
        _review(1, datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc), rating10=10),
        _review(2, datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc), rating10=8),
        _review(3, datetime(2024, 5, 4, 12, 0, tzinfo=timezone.utc), rating10=None),
    ]

    buckets = bucketize(reviews, period="day", max_buckets=30)

    assert [bucket.count for bucket in buckets] == [2, 0, 0, 1]
    assert buckets[0].avg_rating == 4.5
    assert buckets[1].avg_rating is None
    assert buckets[3].avg_rating is None


def test_bucketize_same_instant_produces_single_bucket() -> None:
    moment = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    buckets = bucketize([_review(1, moment), _review(2, moment)], period="week")

    assert len(buckets) == 1
    assert buckets[0].count == 2


def test_bucket_start_weeks_begin_on_sunday_by_default() -> None:
    wednesday = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    assert bucket_start(wednesday, "week") == datetime(2024, 4, 28, tzinfo=timezone.utc)
    assert bucket_start(wednesday, "week", week_start=0) == datetime(2024, 4, 29, tzinfo=timezone.utc)


def test_bucketize_months_cross_year_boundary() -> None:
    reviews = [
        _review(1, datetime(2023, 11, 15, tzinfo=timezone.utc)),
        _review(2, datetime(2024, 2, 3, tzinfo=timezone.utc)),
    ]

    buckets = bucketize(reviews, period="month", max_buckets=12)

    assert [bucket.label for bucket in buckets] == ["Nov 2023", "Dec 2023", "Jan 2024", "Feb 2024"]
    assert [bucket.count for bucket in buckets] == [1, 0, 0, 1]


def test_bucketize_rejects_unknown_period_and_bad_window() -> None:
    reviews = [_review(1, datetime(2024, 5, 1, tzinfo=timezone.utc))]

    with pytest.raises(ValueError):
        bucketize(reviews, period="year")
    with pytest.raises(ValueError):
        bucketize(reviews, max_buckets=0)


def test_bucketize_handles_reviews_at_the_start_of_the_calendar() -> None:
    reviews = [
        _review(1, datetime(1, 1, 1, 8, 0, tzinfo=timezone.utc)),
        _review(2, datetime(1, 1, 3, 8, 0, tzinfo=timezone.utc)),
        _review(3, datetime(1, 1, 9, 8, 0, tzinfo=timezone.utc)),
    ]

    days = bucketize(reviews, period="day", max_buckets=30)
    weeks = bucketize(reviews, period="week", max_buckets=30)
    months = bucketize(reviews, period="month", max_buckets=30)

    assert len(days) == 9
    assert days[0].date == datetime(1, 1, 1, tzinfo=timezone.utc)
    assert [bucket.count for bucket in days][:3] == [1, 0, 1]
    # Year 1 starts on a Monday, so its first Sunday-based week is truncated.
    assert [bucket.date for bucket in weeks] == [
        datetime(1, 1, 1, tzinfo=timezone.utc),
        datetime(1, 1, 7, tzinfo=timezone.utc),
    ]
    assert [bucket.count for bucket in weeks] == [2, 1]
    assert [bucket.count for bucket in months] == [3]
