from datetime import datetime, timezone

from reviews_dashboard.models.review import CanonicalReview, ListingRef
from reviews_dashboard.pipeline.metrics import compute_metrics
from reviews_dashboard.pipeline.values import to_stars5


def _review(review_id: str, rating10: float | None, submitted_at: datetime, **categories: float) -> CanonicalReview:
    return CanonicalReview(
        id=f"hostaway:{review_id}",
        channel="hostaway",
        rating_overall10=rating10,
        rating_overall5=to_stars5(rating10),
        categories=categories,
        submitted_at=submitted_at,
        listing=ListingRef(name="Cozy Loft", slug="cozy-loft"),
    )


def test_compute_metrics_on_empty_input_returns_zero_value() -> None:
    metrics = compute_metrics([])

    assert metrics.count == 0
    assert metrics.avg_rating5 is None
    assert metrics.avg_rating10 is None
    assert metrics.last_review_at is None
    assert metrics.category_averages == {}
    assert metrics.rating_distribution == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}


def test_compute_metrics_averages_and_distribution() -> None:
    reviews = [
        _review("1", 10, datetime(2024, 5, 1, tzinfo=timezone.utc), cleanliness=10, communication=9),
        _review("2", 8, datetime(2024, 5, 3, tzinfo=timezone.utc), cleanliness=6),
        _review("3", None, datetime(2024, 5, 2, tzinfo=timezone.utc)),
    ]

    metrics = compute_metrics(reviews)

    assert metrics.count == 3
    assert metrics.avg_rating10 == 9.0
    assert metrics.avg_rating5 == 4.5
    assert metrics.last_review_at == datetime(2024, 5, 3, tzinfo=timezone.utc)
    assert metrics.category_averages == {"cleanliness": 8.0, "communication": 9.0}
    assert metrics.rating_distribution == {1: 0, 2: 0, 3: 0, 4: 1, 5: 1}


def test_compute_metrics_rounds_half_stars_up() -> None:
    reviews = [
        _review("1", 5, datetime(2024, 5, 1, tzinfo=timezone.utc)),
        _review("2", 4, datetime(2024, 5, 2, tzinfo=timezone.utc)),
    ]

    metrics = compute_metrics(reviews)

    # 2.5 and 2.0 stars average to 2.25, which rounds up to the next half star.
    assert metrics.avg_rating5 == 2.5
    assert metrics.avg_rating10 == 4.5
    assert metrics.rating_distribution[3] == 1
    assert metrics.rating_distribution[2] == 1


def test_compute_metrics_ignores_zero_star_reviews_in_distribution() -> None:
    metrics = compute_metrics([_review("1", 0, datetime(2024, 5, 1, tzinfo=timezone.utc))])

    assert metrics.avg_rating5 == 0.0
    assert sum(metrics.rating_distribution.values()) == 0


def test_compute_metrics_serializes_with_camel_case_keys() -> None:
    payload = compute_metrics([_review("1", 9, datetime(2024, 5, 1, tzinfo=timezone.utc))]).to_payload()

    assert payload["avgRating5"] == 4.5
    assert payload["avgRating10"] == 9.0
    assert payload["lastReviewAt"].startswith("2024-05-01T00:00:00")
    assert payload["ratingDistribution"]["5"] == 1
