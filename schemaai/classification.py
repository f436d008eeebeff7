"""Classification results and the request sent to produce them.

A classification names the schema.org type a piece of content should be
published as, plus a `details` record whose shape depends on that type. The
details variants are plain pydantic models; `DETAILS_MODELS` maps each
supported primary type to its variant and `parse_details` picks one.

AI output is loosely typed. Parsing is therefore lenient: a field that fails
validation is dropped and parsing is retried, so one bad coordinate does not
throw away an otherwise useful classification.
"""

from __future__ import annotations

import copy
import html
import logging
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from schemaai.content import ContentRecord
from schemaai.errors import ResponseShapeError
from schemaai.text import clean_content_html, clean_content_text, extract_list_hints, trim_words

logger = logging.getLogger(__name__)

AUTO_TYPE = "Auto"

SUPPORTED_TYPES = (
    "BlogPosting",
    "Article",
    "NewsArticle",
    "Review",
    "FAQPage",
    "HowTo",
    "ItemList",
    "VideoObject",
    "Product",
    "Trip",
    "Place",
    "Airline",
)

ARTICLE_TYPES = ("BlogPosting", "Article", "NewsArticle")

REVIEWED_TYPES = (
    "Flight",
    "Airline",
    "Hotel",
    "Restaurant",
    "SoftwareApplication",
    "CreditCard",
    "FinancialProduct",
    "LocalBusiness",
    "Place",
    "Product",
)

REQUIRED_KEYS = ("type", "justification", "summary")
MAX_LENIENT_PASSES = 50


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class DetailsModel(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
    )


class GeoDetails(DetailsModel):
    latitude: Optional[float] = Field(default=None, validation_alias=_alias("latitude", "lat"))
    longitude: Optional[float] = Field(default=None, validation_alias=_alias("longitude", "lng"))


class OpeningHoursRow(DetailsModel):
    day_of_week: Optional[Union[str, list[str]]] = Field(
        default=None, validation_alias=_alias("dayOfWeek", "day", "day_of_week")
    )
    opens: Optional[str] = None
    closes: Optional[str] = None
    valid_from: Optional[str] = Field(default=None, validation_alias=_alias("validFrom", "valid_from"))
    valid_through: Optional[str] = Field(default=None, validation_alias=_alias("validThrough", "valid_through"))


class ThingDetails(DetailsModel):
    name: Optional[str] = None
    url: Optional[str] = None
    same_as: Optional[Union[list[str], str]] = Field(default=None, validation_alias=_alias("sameAs", "same_as"))
    image: Optional[str] = None


class PlaceLikeDetails(ThingDetails):
    """Fields shared by anything with an address: places, hotels, lounges, restaurants."""

    address: Optional[Union[str, dict[str, Any]]] = None
    location: Optional[str] = None
    telephone: Optional[str] = Field(default=None, validation_alias=_alias("telephone", "phone"))
    price_range: Optional[str] = Field(default=None, validation_alias=_alias("priceRange", "price_range"))
    opening_hours: Optional[Union[str, list[str]]] = Field(
        default=None, validation_alias=_alias("opening_hours", "openingHours")
    )
    opening_hours_spec: Optional[list[OpeningHoursRow]] = Field(
        default=None, validation_alias=_alias("opening_hours_spec", "openingHoursSpecification")
    )
    geo: Optional[GeoDetails] = None
    has_map: Optional[str] = Field(default=None, validation_alias=_alias("hasMap", "has_map"))
    amenity_feature: Optional[Any] = Field(default=None, validation_alias=_alias("amenityFeature", "amenity_feature"))
    rating: Optional[float] = None


class HotelDetails(PlaceLikeDetails):
    star_rating: Optional[float] = None


class LoungeDetails(PlaceLikeDetails):
    airport_name: Optional[str] = None
    iata: Optional[str] = None
    terminal: Optional[str] = None


class RestaurantDetails(PlaceLikeDetails):
    cuisine: Optional[str] = None
    menu: Optional[str] = None


class ProductInfo(ThingDetails):
    brand: Optional[str] = None
    rating: Optional[float] = None


class SoftwareDetails(ThingDetails):
    category: Optional[str] = None
    os: Optional[str] = None
    version: Optional[str] = None
    rating: Optional[float] = None


class CardDetails(ThingDetails):
    provider: Optional[str] = None
    category: Optional[str] = None
    annual_percentage_rate: Optional[str] = None
    fees: Optional[str] = None
    annual_fee: Optional[str] = None
    interest_rate: Optional[str] = None
    rating: Optional[float] = None


class FlightDetails(DetailsModel):
    airline_name: Optional[str] = None
    iata: Optional[str] = None
    flight_number: Optional[str] = None
    url: Optional[str] = None


class AirlineInfo(ThingDetails):
    name: Optional[str] = Field(default=None, validation_alias=_alias("name", "airline_name"))
    iata: Optional[str] = None
    rating: Optional[float] = None


class FAQEntry(DetailsModel):
    q: str = ""
    a: str = ""


class ListEntry(DetailsModel):
    name: str = ""
    url: Optional[str] = None


class TripStop(DetailsModel):
    name: Optional[str] = None
    title: Optional[str] = None
    location: Optional[str] = None
    url: Optional[str] = None
    position: Optional[float] = None
    address: Optional[Union[str, dict[str, Any]]] = None
    start_date: Optional[str] = Field(default=None, validation_alias=_alias("startDate", "start_date"))
    end_date: Optional[str] = Field(default=None, validation_alias=_alias("endDate", "end_date"))


class VideoInfo(DetailsModel):
    name: Optional[str] = None
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    upload_date: Optional[str] = None
    duration: Optional[str] = None
    embed_url: Optional[str] = None
    content_url: Optional[str] = None


# --- details variants, one per primary type ---


class ArticleDetails(DetailsModel):
    image: Optional[str] = None


class ReviewDetails(PlaceLikeDetails):
    """Review details; `reviewed_type` selects which sub-object describes the item."""

    reviewed_type: Optional[str] = None
    place_name: Optional[str] = None
    airline_name: Optional[str] = None
    iata: Optional[str] = None
    flight: Optional[FlightDetails] = None
    hotel: Optional[HotelDetails] = None
    lounge: Optional[LoungeDetails] = None
    restaurant: Optional[RestaurantDetails] = None
    product: Optional[ProductInfo] = None
    card: Optional[CardDetails] = None
    software: Optional[SoftwareDetails] = None
    airline: Optional[AirlineInfo] = None
    financial_product: Optional[CardDetails] = None


class TripDetails(DetailsModel):
    trip_name: Optional[str] = None
    itinerary: list[TripStop] = Field(default_factory=list)
    image: Optional[str] = None
    offers: Optional[dict[str, Any]] = None


class FAQDetails(DetailsModel):
    faq: list[FAQEntry] = Field(default_factory=list)


class HowToDetails(DetailsModel):
    howto_steps: list[str] = Field(default_factory=list)
    total_time: Optional[str] = Field(default=None, validation_alias=_alias("totalTime", "total_time"))
    image: Optional[str] = None


class ItemListDetails(DetailsModel):
    itemlist: list[ListEntry] = Field(default_factory=list)


class VideoDetails(DetailsModel):
    video: Optional[VideoInfo] = None


class ProductDetails(DetailsModel):
    product: Optional[ProductInfo] = None
    image: Optional[str] = None


class PlaceDetails(PlaceLikeDetails):
    place_name: Optional[str] = None


class AirlineDetails(ThingDetails):
    airline_name: Optional[str] = None
    iata: Optional[str] = None


Details = Union[
    ReviewDetails,
    TripDetails,
    FAQDetails,
    HowToDetails,
    ItemListDetails,
    VideoDetails,
    ProductDetails,
    PlaceDetails,
    AirlineDetails,
    ArticleDetails,
]

DETAILS_MODELS: dict[str, type[DetailsModel]] = {
    "Review": ReviewDetails,
    "Trip": TripDetails,
    "FAQPage": FAQDetails,
    "HowTo": HowToDetails,
    "ItemList": ItemListDetails,
    "VideoObject": VideoDetails,
    "Product": ProductDetails,
    "Place": PlaceDetails,
    "Airline": AirlineDetails,
}


def _drop_at(data: Any, loc: tuple) -> bool:
    """Delete the deepest element of `data` addressed by a pydantic error location."""
    parent: Any = None
    key: Any = None
    node = data
    for step in loc:
        if isinstance(node, dict) and step in node:
            parent, key, node = node, step, node[step]
        elif isinstance(node, list) and isinstance(step, int) and 0 <= step < len(node):
            parent, key, node = node, step, node[step]
        else:
            break
    if parent is None:
        return False
    del parent[key]
    return True


def parse_details(primary_type: str, raw: Any) -> Details:
    """Validate `raw` against the variant for `primary_type`, dropping bad fields."""
    model_cls = DETAILS_MODELS.get(primary_type, ArticleDetails)
    data = copy.deepcopy(raw) if isinstance(raw, dict) else {}
    for _ in range(MAX_LENIENT_PASSES):
        try:
            return model_cls.model_validate(data)
        except ValidationError as exc:
            loc = exc.errors()[0]["loc"]
            logger.debug("Dropping invalid %s details field %s", primary_type, loc)
            if not _drop_at(data, loc):
                break
    logger.warning("Discarding %s details that could not be repaired", primary_type)
    return model_cls()


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


class Classification(BaseModel):
    """What the classifier decided about one piece of content."""

    model_config = ConfigDict(frozen=True)

    primary_type: str = Field(description="schema.org type chosen for the content")
    justification: str = ""
    summary: str = ""
    missing_info: list[str] = Field(default_factory=list, description="Facts the content lacks for this type")
    details: Details = Field(default_factory=ArticleDetails)

    @classmethod
    def from_payload(cls, payload: Any) -> "Classification":
        """Build a classification from decoded AI output.

        Raises:
            ResponseShapeError: the payload is not an object, wraps a
                non-object `result`, or lacks type/justification/summary.
        """
        if not isinstance(payload, dict):
            raise ResponseShapeError("AI output was not a JSON object.")
        data = payload
        if "result" in data:
            if not isinstance(data["result"], dict):
                raise ResponseShapeError('AI output "result" must be an object.')
            data = data["result"]
        if any(key not in data for key in REQUIRED_KEYS):
            raise ResponseShapeError("AI output missing required keys.")
        primary_type = _text(data["type"])
        missing_info = data.get("missing_info")
        return cls(
            primary_type=primary_type,
            justification=_text(data["justification"]),
            summary=_text(data["summary"]),
            missing_info=[_text(m) for m in missing_info] if isinstance(missing_info, list) else [],
            details=parse_details(primary_type, data.get("details")),
        )

    def with_forced_reviewed_type(self, reviewed_type: str) -> "Classification":
        if not reviewed_type or not isinstance(self.details, ReviewDetails):
            return self
        details = self.details.model_copy(update={"reviewed_type": reviewed_type})
        return self.model_copy(update={"details": details})


class ClassificationRequest(BaseModel):
    """Everything the classifier sees about one content record."""

    model_config = ConfigDict(frozen=True)

    content_id: int
    title: str
    excerpt: str = ""
    text: str = ""
    html: str = ""
    list_hints: list[ListEntry] = Field(default_factory=list)
    forced_type: str = AUTO_TYPE
    forced_reviewed_type: str = ""

    @classmethod
    def from_content(
        cls,
        record: ContentRecord,
        forced_type: str = AUTO_TYPE,
        forced_reviewed_type: str = "",
        site_url: str = "",
        max_chars: int = 30000,
    ) -> "ClassificationRequest":
        excerpt = record.excerpt if record.excerpt.strip() else trim_words(record.body, 60)
        return cls(
            content_id=record.content_id,
            title=html.unescape(record.title),
            excerpt=html.unescape(excerpt),
            text=clean_content_text(record.body)[:max_chars],
            html=clean_content_html(record.body)[:max_chars],
            list_hints=[ListEntry(**hint) for hint in extract_list_hints(record.body, site_url, 25)],
            forced_type=forced_type or AUTO_TYPE,
            forced_reviewed_type=forced_reviewed_type or "",
        )

    @property
    def has_forced_type(self) -> bool:
        return self.forced_type not in ("", AUTO_TYPE)
