import math
import re
import unicodedata
from datetime import date, datetime, time, timezone

_SLUG_STRIP_REGEX = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE_REGEX = re.compile(r"\s+")
_HYPHENS_REGEX = re.compile(r"-+")
_KEY_SEPARATOR_REGEX = re.compile(r"[_\s]+")
_NUMBER_REGEX = re.compile(r"-?\d+(?:\.\d+)?")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def coerce_number(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            match = _NUMBER_REGEX.search(text)
            if not match:
                return None
            number = float(match.group(0))
    # NaN and infinities are not ratings.
    return number if math.isfinite(number) else None


def round_half_up(value: float, step: float = 1.0) -> float:
    """Round to the nearest multiple of ``step`` with ties going up.

    Mirrors ``Math.round(value / step) * step`` as rendered by the dashboard,
    so 2.25 rounds to 2.5 and 8.25 to 8.3 at one decimal, unlike ``round()``.
    """
    factor = round(1 / step)
    return math.floor(value * factor + 0.5) / factor


def to_stars5(rating10: float | None) -> float | None:
    if rating10 is None:
        return None
    return round_half_up(rating10 / 10 * 5, 0.5)


def to_listing_slug(listing_name: str | None) -> str:
    folded = unicodedata.normalize("NFKD", listing_name or "")
    folded = "".join(char for char in folded if not unicodedata.combining(char))
    slug = _SLUG_STRIP_REGEX.sub("", folded.lower())
    slug = _WHITESPACE_REGEX.sub("-", slug.strip())
    slug = _HYPHENS_REGEX.sub("-", slug)
    return slug.strip("-")


def to_camel_key(key: str) -> str:
    parts = [part for part in _KEY_SEPARATOR_REGEX.split(key.strip()) if part]
    if len(parts) <= 1:
        return key.strip()

    head = parts[0][:1].lower() + parts[0][1:]
    return head + "".join(part[:1].upper() + part[1:] for part in parts[1:])


def parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, bool) or value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        return None


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time(23, 59, 59, 999000), tzinfo=timezone.utc)
