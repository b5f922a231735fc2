from datetime import datetime, timedelta, timezone

from reviews_dashboard.models.review import CanonicalReview, ListingRef, NormalizedSource
from reviews_dashboard.pipeline.aggregator import aggregate_reviews, flatten_reviews, summarize_listings
from reviews_dashboard.pipeline.normalizers import group_by_listing
from reviews_dashboard.pipeline.values import to_listing_slug, to_stars5

FETCHED_AT = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _review(review_id: str, channel: str, listing: str, rating10: float | None, day: int) -> CanonicalReview:
    return CanonicalReview(
        id=f"{channel}:{review_id}",
        channel=channel,
        rating_overall10=rating10,
        rating_overall5=to_stars5(rating10),
        submitted_at=datetime(2024, 5, day, 9, 0, tzinfo=timezone.utc),
        listing=ListingRef(name=listing, slug=to_listing_slug(listing)),
    )


def _source(name: str, reviews: list[CanonicalReview], fetched_at: datetime = FETCHED_AT) -> NormalizedSource:
    return NormalizedSource(source=name, fetched_at=fetched_at, listings=group_by_listing(reviews))


def _mixed_source() -> NormalizedSource:
    return _source(
        "hostaway+google",
        [
            _review("1", "hostaway", "Listing A", 8, 1),
            _review("2", "google", "Listing A", 10, 2),
            _review("3", "hostaway", "Listing B", 6, 3),
        ],
    )


def test_channel_filter_that_empties_a_listing_drops_it() -> None:
    aggregated = aggregate_reviews(_mixed_source(), {"channel": "google"})

    assert [listing.listing_id for listing in aggregated.listings] == ["listing-a"]
    assert aggregated.total_reviews == 1
    assert aggregated.applied_filters == {"channel": "google"}


def test_metrics_always_match_attached_reviews() -> None:
    aggregated = aggregate_reviews(_mixed_source(), {"ratingMin": 4})

    for listing in aggregated.listings:
        assert listing.metrics.count == len(listing.reviews)
    listing_a = aggregated.listings[0]
    assert listing_a.metrics.avg_rating10 == 9.0


def test_listings_follow_order_of_sorted_reviews() -> None:
    aggregated = aggregate_reviews(_mixed_source(), sort_by="date", direction="desc")

    assert [listing.listing_id for listing in aggregated.listings] == ["listing-b", "listing-a"]
    assert [review.id for review in aggregated.listings[1].reviews] == ["google:2", "hostaway:1"]


def test_single_listing_filter_returns_listing_even_when_empty() -> None:
    aggregated = aggregate_reviews(_mixed_source(), {"listingId": "listing-b", "channel": "google"})

    assert len(aggregated.listings) == 1
    listing = aggregated.listings[0]
    assert listing.listing_id == "listing-b"
    assert listing.listing_name == "Listing B"
    assert listing.reviews == []
    assert listing.metrics.count == 0
    assert aggregated.total_reviews == 0


def test_unknown_listing_filter_returns_no_listings() -> None:
    aggregated = aggregate_reviews(_mixed_source(), {"listingId": "nowhere"})

    assert aggregated.listings == []
    assert aggregated.total_reviews == 0


def test_multiple_sources_are_composed_before_filtering() -> None:
    hostaway = _source("hostaway", [_review("1", "hostaway", "Listing A", 8, 1)])
    google = _source(
        "google",
        [_review("9", "google", "Listing A", 4, 4)],
        fetched_at=FETCHED_AT + timedelta(minutes=5),
    )

    aggregated = aggregate_reviews([hostaway, google])

    assert aggregated.source == "hostaway+google"
    assert aggregated.fetched_at == FETCHED_AT + timedelta(minutes=5)
    assert len(aggregated.listings) == 1
    assert aggregated.listings[0].metrics.count == 2
    assert aggregated.listings[0].metrics.avg_rating10 == 6.0


def test_source_reasons_are_surfaced_in_payload() -> None:
    hostaway = _source("hostaway", [_review("1", "hostaway", "Listing A", 8, 1)])
    google = NormalizedSource(source="google", fetched_at=FETCHED_AT, reason="Google Places API error: 500")

    payload = aggregate_reviews([hostaway, google]).to_payload()

    assert payload["reason"] == "google: Google Places API error: 500"
    assert payload["totalReviews"] == 1
    assert "reason" not in aggregate_reviews(hostaway).to_payload()


def test_flatten_reviews_preserves_source_order() -> None:
    assert [review.id for review in flatten_reviews(_mixed_source())] == ["hostaway:1", "google:2", "hostaway:3"]


def test_summarize_listings_attaches_channels_and_trend() -> None:
    summaries = summarize_listings(_mixed_source(), period="day", max_buckets=7)

    assert [summary.listing_id for summary in summaries] == ["listing-a", "listing-b"]
    listing_a = summaries[0]
    assert listing_a.channels == ["google", "hostaway"]
    assert listing_a.metrics.count == 2
    assert [bucket.count for bucket in listing_a.trend] == [1, 1]
    assert summaries[1].channels == ["hostaway"]
