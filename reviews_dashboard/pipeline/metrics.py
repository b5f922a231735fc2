from collections.abc import Iterable
from datetime import datetime

from reviews_dashboard.models.review import CanonicalReview, Metrics
from reviews_dashboard.pipeline.values import round_half_up

STAR_BUCKETS = (1, 2, 3, 4, 5)


def empty_distribution() -> dict[int, int]:
    return {star: 0 for star in STAR_BUCKETS}


def compute_metrics(reviews: Iterable[CanonicalReview]) -> Metrics:
    count = 0
    last_review_at: datetime | None = None

    rated5_count = 0
    rated5_total = 0.0
    rated10_count = 0
    rated10_total = 0.0
    rating_distribution = empty_distribution()

    category_totals: dict[str, float] = {}
    category_counts: dict[str, int] = {}

    for review in reviews:
        count += 1

        if last_review_at is None or review.submitted_at > last_review_at:
            last_review_at = review.submitted_at

        if review.is_rated:
            rated5_count += 1
            rated5_total += review.rating_overall5
            star = int(round_half_up(review.rating_overall5))
            if star in rating_distribution:
                rating_distribution[star] += 1

        if review.rating_overall10 is not None:
            rated10_count += 1
            rated10_total += review.rating_overall10

        for category, rating in review.categories.items():
            if rating is None:
                continue
            category_totals[category] = category_totals.get(category, 0.0) + rating
            category_counts[category] = category_counts.get(category, 0) + 1

    return Metrics(
        count=count,
        avg_rating5=round_half_up(rated5_total / rated5_count, 0.5) if rated5_count else None,
        avg_rating10=round_half_up(rated10_total / rated10_count, 0.1) if rated10_count else None,
        last_review_at=last_review_at,
        category_averages={
            category: round_half_up(total / category_counts[category], 0.1)
            for category, total in category_totals.items()
        },
        rating_distribution=rating_distribution,
    )
