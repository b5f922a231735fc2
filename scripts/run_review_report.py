import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from reviews_dashboard.config import settings
from reviews_dashboard.models.query import ReviewFilters, ReviewSort
from reviews_dashboard.pipeline.aggregator import aggregate_reviews, summarize_listings
from reviews_dashboard.pipeline.buckets import PERIODS
from reviews_dashboard.pipeline.normalizers import NORMALIZERS, get_normalizer
from reviews_dashboard.services.review_service import ReviewService
from reviews_dashboard.storage import ApprovalStore


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the reviews dashboard payload without the API server.")
    parser.add_argument(
        "input",
        nargs="?",
        help="Raw upstream JSON file to normalize. Omit to fetch Hostaway (or its mock data) and Google.",
    )
    parser.add_argument("--source", choices=sorted(NORMALIZERS), default="hostaway", help="Channel of the input file.")
    parser.add_argument("--place-id", default=None, help="Google place id for the input file or the live fetch.")
    parser.add_argument("--approvals", default=settings.approvals_path, help="Approval flags JSON file.")
    parser.add_argument("--listing-id", default=None)
    parser.add_argument("--channel", default=None)
    parser.add_argument("--rating-min", default=None)
    parser.add_argument("--rating-max", default=None)
    parser.add_argument("--category", default=None)
    parser.add_argument("--from", dest="date_from", default=None)
    parser.add_argument("--to", dest="date_to", default=None)
    parser.add_argument("--approved", default=None, help="'true' for approved only, anything else for unapproved.")
    parser.add_argument("--search", default=None)
    parser.add_argument("--sort", default="date")
    parser.add_argument("--dir", dest="direction", default="desc")
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print per-listing summaries with trend buckets instead of the review list.",
    )
    parser.add_argument("--period", choices=PERIODS, default=settings.trend_period)
    parser.add_argument("--max-buckets", type=int, default=settings.trend_max_buckets)
    parser.add_argument(
        "--compact",
        action="store_true",
        help="Print compact JSON output (single line).",
    )
    return parser.parse_args()


def _filters_from_args(args: argparse.Namespace) -> ReviewFilters:
    return ReviewFilters(
        listing_id=args.listing_id,
        channel=args.channel,
        rating_min=args.rating_min,
        rating_max=args.rating_max,
        category=args.category,
        date_from=args.date_from,
        date_to=args.date_to,
        approved=args.approved,
        search=args.search,
    )


def _report_from_file(args: argparse.Namespace) -> dict[str, Any]:
    raw_payload = json.loads(Path(args.input).read_text(encoding="utf-8"))
    approvals = ApprovalStore(args.approvals).load_or_empty()

    options: dict[str, Any] = {}
    if args.source == "google":
        options = {"place_id": args.place_id, "listing_name": settings.google_listing_names.get(args.place_id or "")}
    source = get_normalizer(args.source, **options).normalize(raw_payload, approvals)

    if args.summary:
        summaries = summarize_listings(source, args.period, args.max_buckets, settings.week_start)
        return {"items": [summary.to_payload() for summary in summaries], "total": len(summaries)}
    return aggregate_reviews(
        source,
        filters=_filters_from_args(args),
        sort_by=args.sort,
        direction=args.direction,
    ).to_payload()


async def _report_from_upstream(args: argparse.Namespace) -> dict[str, Any]:
    service = ReviewService(approval_store=ApprovalStore(args.approvals))
    if args.summary:
        return await service.list_listings(place_id=args.place_id, period=args.period, max_buckets=args.max_buckets)
    return await service.get_combined_reviews(
        place_id=args.place_id,
        filters=_filters_from_args(args),
        sort=ReviewSort(sort_by=args.sort, direction=args.direction),
    )


async def _run() -> None:
    args = _parse_args()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )

    if args.input:
        result = _report_from_file(args)
    else:
        result = await _report_from_upstream(args)

    if args.compact:
        print(json.dumps(result, ensure_ascii=False))
    else:
        print(json.dumps(result, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    asyncio.run(_run())
