from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from reviews_dashboard.models.review import CanonicalReview, TrendBucket
from reviews_dashboard.pipeline.values import parse_timestamp, round_half_up

PERIODS = ("day", "week", "month")
SUNDAY = 6

_LABEL_FORMATS = {
    "day": "%b %d",
    "week": "%b %d",
    "month": "%b %Y",
}
_FIELD_BY_ALIAS = {
    field_info.alias: field_name
    for field_name, field_info in CanonicalReview.model_fields.items()
    if field_info.alias
}


def bucket_start(value: datetime, period: str, week_start: int = SUNDAY) -> datetime:
    day_start = value.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "day":
        return day_start
    if period == "week":
        offset = (day_start.weekday() - week_start) % 7
        try:
            return day_start - timedelta(days=offset)
        except OverflowError:
            # The first week of year 1 is cut short at datetime.min.
            return day_start.replace(day=1)
    if period == "month":
        return day_start.replace(day=1)
    raise ValueError(f"Unsupported period '{period}'. Use one of: {', '.join(PERIODS)}.")


def previous_bucket_start(start: datetime, period: str) -> datetime | None:
    try:
        if period == "day":
            return start - timedelta(days=1)
        if period == "week":
            return start - timedelta(days=7)
        if period == "month":
            return (start - timedelta(days=1)).replace(day=1)
    except OverflowError:
        # Nothing precedes datetime.min except the truncated first week.
        return start.replace(day=1) if period == "week" and start.day != 1 else None
    raise ValueError(f"Unsupported period '{period}'. Use one of: {', '.join(PERIODS)}.")


def bucketize(
    reviews: Iterable[CanonicalReview],
    date_field: str = "submitted_at",
    period: str = "day",
    max_buckets: int = 30,
    week_start: int = SUNDAY,
) -> list[TrendBucket]:
    if period not in PERIODS:
        raise ValueError(f"Unsupported period '{period}'. Use one of: {', '.join(PERIODS)}.")
    if max_buckets < 1:
        raise ValueError("Invalid max_buckets. It must be >= 1.")

    attribute = _FIELD_BY_ALIAS.get(date_field, date_field)
    dated: list[tuple[datetime, CanonicalReview]] = []
    for review in reviews:
        value = parse_timestamp(getattr(review, attribute, None))
        if value is not None:
            dated.append((value, review))

    if not dated:
        return []

    first_start = bucket_start(min(value for value, _ in dated), period, week_start)
    last_start = bucket_start(max(value for value, _ in dated), period, week_start)

    # Walk back from the newest bucket so only the trailing window is generated.
    starts: list[datetime] = []
    current = last_start
    while current is not None and current >= first_start and len(starts) < max_buckets:
        starts.append(current)
        current = previous_bucket_start(current, period)
    starts.reverse()

    counts = {start: 0 for start in starts}
    rating_totals = {start: 0.0 for start in starts}
    rated_counts = {start: 0 for start in starts}

    for value, review in dated:
        key = bucket_start(value, period, week_start)
        if key not in counts:
            continue
        counts[key] += 1
        if review.is_rated:
            rating_totals[key] += review.rating_overall5
            rated_counts[key] += 1

    label_format = _LABEL_FORMATS[period]
    return [
        TrendBucket(
            date=start,
            label=start.strftime(label_format),
            count=counts[start],
            avg_rating=(
                round_half_up(rating_totals[start] / rated_counts[start], 0.5) if rated_counts[start] else None
            ),
        )
        for start in starts
    ]
