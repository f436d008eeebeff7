"""Deterministic corrections applied to classifier output.

Models reliably confuse two things on travel sites: roundup posts that come
back as ItemList without entries, and trip reports that come back as
reviews of an airline or flight. Both are repaired here from signals in the
content itself.
"""

import html
import re

from schemaai.classification import (
    Classification,
    ClassificationRequest,
    ItemListDetails,
    ReviewDetails,
    TripDetails,
)

TRIP_JUSTIFICATION = (
    "Content appears to describe a trip itinerary/journey (Trip) rather than a review of a single flight/airline."
)

TRIP_TOKENS = (
    "trip report",
    "our trip",
    "road trip",
    "things to do",
    "where to stay",
    "where to eat",
    "visited",
    "stopped at",
    "we went",
    "guide to",
    "weekend in",
    "2 days",
    "3 days",
    "4 days",
    "5 days",
    "7 days",
    "multi-city",
    "multi city",
    "day trip",
    "journey",
    "route",
    "stopover",
)

_DAY_N_RE = re.compile(r"\bday\s*\d+\b", re.IGNORECASE)
_REVIEW_WORDS_RE = re.compile(r"\b(review|rating|score|i give it|stars?|verdict)\b", re.IGNORECASE)


def content_indicates_trip(text: str, title: str = "") -> bool:
    haystack = f"{title}\n{text}".lower()
    if _DAY_N_RE.search(haystack) or "itinerary" in haystack:
        return True
    return sum(1 for token in TRIP_TOKENS if token in haystack) >= 2


def content_indicates_review_focus(text: str, details: ReviewDetails) -> bool:
    has_review_words = _REVIEW_WORDS_RE.search(text.lower()) is not None
    has_rating = details.rating is not None and 1.0 <= details.rating <= 5.0
    return has_review_words and has_rating


def should_reclassify_as_trip(classification: Classification, request: ClassificationRequest) -> bool:
    details = classification.details
    if classification.primary_type != "Review" or not isinstance(details, ReviewDetails):
        return False
    if details.reviewed_type not in ("Airline", "Flight"):
        return False
    title = request.title.lower()
    if "trip report" in title or "itinerary" in title:
        return True
    if "review" in title:
        return False
    return content_indicates_trip(request.text, request.title) and not content_indicates_review_focus(
        request.text, details
    )


def apply_post_fixes(classification: Classification, request: ClassificationRequest) -> Classification:
    """Return `classification` with ItemList, Trip and entity fixes applied."""
    update: dict = {}
    details = classification.details

    if classification.primary_type == "ItemList" and isinstance(details, ItemListDetails):
        if not details.itemlist and request.list_hints:
            update["details"] = ItemListDetails(itemlist=list(request.list_hints))

    if should_reclassify_as_trip(classification, request):
        update["primary_type"] = "Trip"
        update["details"] = TripDetails(trip_name=request.title, image=details.image)
        update["justification"] = TRIP_JUSTIFICATION

    update["summary"] = html.unescape(classification.summary)
    update["justification"] = html.unescape(update.get("justification", classification.justification))
    return classification.model_copy(update=update)
