"""Content Filter — deterministic matching of events and listings.

Used as the primary filter after query interpretation and as the whole
search path when the language model is unavailable. Every function here is
pure: the same records, filter and clock always give the same subsequence.

Calendar windows are evaluated in the service timezone (``Settings.timezone``).
Naive record timestamps are taken to be in that timezone.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterable, Sequence, TypeVar
from zoneinfo import ZoneInfo

from localhub.app.config import get_settings
from localhub.domain.enums import DateRange, PriceRange
from localhub.domain.schemas import EventRecord, FilterDescriptor, ListingRecord

MIN_KEYWORD_LENGTH = 3
NEXT_WEEK_DAYS = 7
_SATURDAY = 5  # datetime.weekday()

# Simple plural -> singular map applied to model-extracted keywords
PLURAL_MAP = {
    "bikes": "bike",
    "cars": "car",
    "events": "event",
    "tickets": "ticket",
    "tools": "tool",
    "books": "book",
    "games": "game",
    "toys": "toy",
}

RecordT = TypeVar("RecordT", EventRecord, ListingRecord)


# ---------------------------------------------------------------------------
# Tokenization
# ---------------------------------------------------------------------------

def tokenize_query(query: str | None) -> list[str]:
    """Naive keyword extraction: lowercase, whitespace split, keep len >= 3."""
    if not query:
        return []
    return [token for token in query.lower().split() if len(token) >= MIN_KEYWORD_LENGTH]


def normalize_search_term(term: str) -> str:
    """Collapse a handful of common plurals onto their singular form."""
    return PLURAL_MAP.get(term, term)


# ---------------------------------------------------------------------------
# Clock helpers
# ---------------------------------------------------------------------------

def service_timezone() -> ZoneInfo:
    return ZoneInfo(get_settings().timezone)


def local_now() -> datetime:
    """Wall-clock time in the service timezone, as a naive datetime."""
    return datetime.now(service_timezone()).replace(tzinfo=None)


def _localize(value: datetime, tz: ZoneInfo) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def parse_record_date(value: datetime | date | str | None, tz: ZoneInfo) -> datetime | None:
    """Return the record's start as an aware datetime, or None if unusable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _localize(value, tz)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=tz)
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            return _localize(datetime.fromisoformat(raw), tz)
        except ValueError:
            return None
    return None


def upcoming_weekend(today: date) -> tuple[date, date]:
    """Nearest Saturday on or after *today*, and the Sunday after it.

    On a Sunday this is the following weekend.
    """
    saturday = today + timedelta(days=(_SATURDAY - today.weekday()) % 7)
    return saturday, saturday + timedelta(days=1)


# ---------------------------------------------------------------------------
# Individual tests
# ---------------------------------------------------------------------------

def _search_text(item: EventRecord | ListingRecord) -> str:
    parts = (item.title, item.description, item.category, item.location)
    return " ".join(p for p in parts if p).lower()


def _passes_keywords(item: EventRecord | ListingRecord, keywords: Sequence[str]) -> bool:
    if not keywords:
        return True
    text = _search_text(item)
    return any(keyword.lower() in text for keyword in keywords)


def _passes_date_range(
    item: EventRecord | ListingRecord, date_range: DateRange, now: datetime, tz: ZoneInfo,
) -> bool:
    if date_range == DateRange.NONE:
        return True

    start = parse_record_date(item.start_date, tz)
    if start is None:
        return False

    if date_range == DateRange.TODAY:
        return start.date() == now.date()
    if date_range == DateRange.THIS_WEEKEND:
        saturday, sunday = upcoming_weekend(now.date())
        return saturday <= start.date() <= sunday
    if date_range == DateRange.NEXT_WEEK:
        return now <= start <= now + timedelta(days=NEXT_WEEK_DAYS)
    return True


def _passes_categories(item: EventRecord | ListingRecord, categories: Sequence[str]) -> bool:
    if not categories:
        return True
    return item.category in categories


def _passes_price(item: EventRecord | ListingRecord, price_range: PriceRange) -> bool:
    if price_range == PriceRange.FREE:
        return bool(item.is_free)
    return True


def matches(
    item: EventRecord | ListingRecord,
    filters: FilterDescriptor,
    now: datetime,
    tz: ZoneInfo,
) -> bool:
    """True when *item* passes every active filter dimension."""
    return (
        _passes_keywords(item, filters.keywords)
        and _passes_date_range(item, filters.date_range, now, tz)
        and _passes_categories(item, filters.categories)
        and _passes_price(item, filters.price_range)
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def _filter(
    items: Iterable[RecordT],
    filters: FilterDescriptor,
    now: datetime | None,
    tz: ZoneInfo | None,
) -> list[RecordT]:
    tz = tz or service_timezone()
    now = _localize(now, tz) if now is not None else datetime.now(tz)
    return [item for item in items if matches(item, filters, now, tz)]


def filter_events(
    events: Iterable[EventRecord],
    filters: FilterDescriptor,
    now: datetime | None = None,
    tz: ZoneInfo | None = None,
) -> list[EventRecord]:
    """Return the events that satisfy *filters*, in their original order."""
    return _filter(events, filters, now, tz)


def filter_listings(
    listings: Iterable[ListingRecord],
    filters: FilterDescriptor,
    now: datetime | None = None,
    tz: ZoneInfo | None = None,
) -> list[ListingRecord]:
    """Return the listings that satisfy *filters*, in their original order."""
    return _filter(listings, filters, now, tz)
