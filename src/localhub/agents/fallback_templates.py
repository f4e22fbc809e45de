"""Fixed user-facing messages and deterministic reply templates.

Every failure a visitor can see is one of these short messages; they never
carry error codes or exception text.
"""

from __future__ import annotations

from typing import Sequence

from localhub.domain.schemas import EventRecord, ListingRecord

MAX_ITEMS_PER_SECTION = 5

TEMPLATES = {
    # General search
    "no_results": (
        "I couldn't find anything matching \"{query}\" in {locale}. "
        "Try different keywords or browse the categories!"
    ),
    "search_error": (
        "I'm having trouble searching right now. Please try browsing the categories instead."
    ),
    # Business assistant
    "over_quota": (
        "I apologize, but we've reached our conversation limit for this month. "
        "Please contact the business directly for further assistance."
    ),
    "content_warning": (
        "I'm sorry, but I cannot process that message. Please keep our conversation appropriate."
    ),
    "agent_unavailable": (
        "I'm sorry, but the AI assistant is not currently available. "
        "Please contact the business directly."
    ),
    "agent_error": (
        "I apologize, but I'm having trouble processing your request. "
        "Please try again or contact the business directly."
    ),
}


def get_template(key: str, **kwargs) -> str:
    """Get a fixed message, with optional formatting."""
    template = TEMPLATES[key]
    try:
        return template.format(**kwargs)
    except (KeyError, IndexError):
        return template


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def _format_price(is_free: bool, cost: float | None) -> str:
    if is_free:
        return "Free"
    if cost is None:
        return "Price TBA"
    return f"${cost:,.2f}"


def format_event_date(event: EventRecord | ListingRecord) -> str:
    """Render the record's date as stored, or 'Date TBA'."""
    value = event.start_date
    if value is None or value == "":
        return "Date TBA"
    if hasattr(value, "strftime"):
        return value.strftime("%a %b %d")
    return str(value)


def event_line(event: EventRecord) -> str:
    location = event.location or "Location TBA"
    return (
        f"{event.title} at {location} on {format_event_date(event)} "
        f"({_format_price(event.is_free, event.cost)})"
    )


def listing_line(listing: ListingRecord) -> str:
    category = listing.category or listing.listing_type or "Listing"
    detail = f" at {listing.location}" if listing.location else ""
    if listing.start_date not in (None, ""):
        detail += f" on {format_event_date(listing)}"
    return f"{listing.title} [{category}]{detail} ({_format_price(listing.is_free, listing.cost)})"


def no_results_message(query: str, locale: str) -> str:
    return get_template("no_results", query=query, locale=locale)


def results_summary(
    events: Sequence[EventRecord], listings: Sequence[ListingRecord], query: str,
) -> str:
    """Deterministic bulleted reply built strictly from the matched records."""
    total = len(events) + len(listings)
    lines = [f"Found {_plural(total, 'result')} for \"{query}\":"]

    if events:
        lines.append("")
        lines.append(f"Events ({len(events)}):")
        lines.extend(f"- {event_line(e)}" for e in events[:MAX_ITEMS_PER_SECTION])

    if listings:
        lines.append("")
        lines.append(f"Listings ({len(listings)}):")
        lines.extend(f"- {listing_line(item)}" for item in listings[:MAX_ITEMS_PER_SECTION])

    return "\n".join(lines)
