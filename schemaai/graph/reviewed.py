"""Review secondary entity and the item it reviews.

The reviewed item's shape is chosen by `ReviewDetails.reviewed_type`; each
sub-type reads its own details sub-object. Unknown sub-types are reviewed
as a Product.
"""

from typing import Any, NamedTuple, Optional

from schemaai.classification import (
    REVIEWED_TYPES,
    CardDetails,
    FlightDetails,
    HotelDetails,
    LoungeDetails,
    ProductInfo,
    RestaurantDetails,
    ReviewDetails,
    SoftwareDetails,
)
from schemaai.graph.context import BuildContext
from schemaai.graph.normalize import (
    address_node,
    apply_common_thing_props,
    apply_place_like_props,
    rating_node,
    slugify,
)
from schemaai.graph.values import ref

LOUNGE_ADDITIONAL_TYPE = "https://en.wikipedia.org/wiki/Airport_lounge"
LOUNGE_KEYWORDS = "Airport lounge, airport lounge review"

# First non-null value wins; order is policy, not incidental.
RATING_LOOKUP_PATHS: tuple[tuple[str, ...], ...] = (
    ("rating",),
    ("lounge", "rating"),
    ("hotel", "rating"),
    ("restaurant", "rating"),
    ("software", "rating"),
    ("card", "rating"),
    ("airline", "rating"),
    ("financial_product", "rating"),
)


class ReviewedItem(NamedTuple):
    node: dict[str, Any]
    extra_nodes: list[dict[str, Any]]


def lookup_rating(details: ReviewDetails) -> Optional[float]:
    for path in RATING_LOOKUP_PATHS:
        value: Any = details
        for step in path:
            value = getattr(value, step, None)
            if value is None:
                break
        if value is not None:
            return value
    return None


def _name(value: Optional[str], fallback: str) -> str:
    name = (value or "").strip()
    return name or fallback


def _image(ctx: BuildContext) -> Optional[str]:
    return ctx.image_url or None


def reviewed_product(details: ReviewDetails, ctx: BuildContext) -> dict[str, Any]:
    product = details.product or ProductInfo()
    node = {
        "@type": "Product",
        "name": _name(product.name, ctx.title),
        "brand": product.brand or "",
        "image": _image(ctx),
    }
    return apply_common_thing_props(node, product)


def reviewed_flight(details: ReviewDetails, ctx: BuildContext) -> dict[str, Any]:
    flight = details.flight or FlightDetails()
    return {
        "@type": "Flight",
        "flightNumber": flight.flight_number or "",
        "airline": {
            "@type": "Airline",
            "name": flight.airline_name or "",
            "iataCode": flight.iata or "",
        },
        "url": flight.url,
    }


def reviewed_airline(details: ReviewDetails, ctx: BuildContext) -> dict[str, Any]:
    airline = details.airline
    source: Any = airline if airline is not None else details
    node = {
        "@type": "Airline",
        "name": _name((airline.name if airline else None) or details.airline_name, ctx.title),
        "iataCode": (airline.iata if airline else None) or details.iata or "",
    }
    return apply_common_thing_props(node, source)


def reviewed_hotel(details: ReviewDetails, ctx: BuildContext) -> dict[str, Any]:
    hotel = details.hotel or HotelDetails()
    node = {
        "@type": "Hotel",
        "name": _name(hotel.name, ctx.title),
        "address": address_node(hotel.address if hotel.address is not None else hotel.location),
        "image": _image(ctx),
        "starRating": rating_node(hotel.star_rating),
    }
    return apply_place_like_props(node, hotel, allow_hours=True, allow_price=True)


def reviewed_restaurant(details: ReviewDetails, ctx: BuildContext) -> dict[str, Any]:
    restaurant = details.restaurant or RestaurantDetails()
    node = {
        "@type": "Restaurant",
        "name": _name(restaurant.name, ctx.title),
        "address": address_node(restaurant.address if restaurant.address is not None else restaurant.location),
        "servesCuisine": restaurant.cuisine or "",
        "image": _image(ctx),
        "menu": restaurant.menu or "",
    }
    return apply_place_like_props(node, restaurant, allow_hours=True, allow_price=True)


def reviewed_software(details: ReviewDetails, ctx: BuildContext) -> dict[str, Any]:
    software = details.software or SoftwareDetails()
    node = {
        "@type": "SoftwareApplication",
        "name": _name(software.name, ctx.title),
        "applicationCategory": software.category or "",
        "operatingSystem": software.os or "",
        "softwareVersion": software.version or "",
        "image": _image(ctx),
    }
    return apply_common_thing_props(node, software)


def _financial_node(type_name: str, card: CardDetails, ctx: BuildContext) -> dict[str, Any]:
    node = {
        "@type": type_name,
        "name": _name(card.name, ctx.title),
        "feesAndCommissionsSpecification": card.fees or card.annual_fee or "",
        "interestRate": card.interest_rate or "",
        "annualPercentageRate": card.annual_percentage_rate or "",
        "provider": {"@type": "Organization", "name": card.provider} if card.provider else None,
    }
    return apply_common_thing_props(node, card)


def reviewed_credit_card(details: ReviewDetails, ctx: BuildContext) -> dict[str, Any]:
    card = details.card or CardDetails()
    node = _financial_node("CreditCard", card, ctx)
    node["category"] = card.category or ""
    return node


def reviewed_financial_product(details: ReviewDetails, ctx: BuildContext) -> dict[str, Any]:
    card = details.financial_product or details.card or CardDetails()
    return _financial_node("FinancialProduct", card, ctx)


def _lounge_airport(lounge: LoungeDetails, ctx: BuildContext) -> tuple[str, str, str]:
    """Return (airport_id, airport_name, iata); the id is empty when nothing identifies the airport."""
    airport_name = (lounge.airport_name or "").strip()
    iata = (lounge.iata or "").strip().upper()
    if not airport_name and not iata:
        return "", "", ""
    return ctx.site_node_id(f"airport-{slugify(iata or airport_name)}"), airport_name, iata


def airport_node(lounge: LoungeDetails, ctx: BuildContext) -> Optional[dict[str, Any]]:
    airport_id, airport_name, iata = _lounge_airport(lounge, ctx)
    if not airport_id:
        return None
    return {
        "@type": "Airport",
        "@id": airport_id,
        "name": airport_name or f"{iata} Airport",
        "iataCode": iata or None,
    }


def reviewed_lounge(details: ReviewDetails, ctx: BuildContext) -> dict[str, Any]:
    """An airport lounge as a LocalBusiness, contained in a separately emitted Airport."""
    lounge = details.lounge or LoungeDetails()
    name = _name(lounge.name, ctx.title or "Airport Lounge")
    airport_id, airport_name, iata = _lounge_airport(lounge, ctx)
    airport_slug = slugify(iata or airport_name or "airport")
    terminal = (lounge.terminal or "").strip()

    if lounge.address is not None:
        address = address_node(lounge.address)
    elif terminal:
        address = address_node({"streetAddress": terminal})
    else:
        address = None

    node = {
        "@type": "LocalBusiness",
        "@id": ctx.site_node_id(f"airportlounge-{slugify(name)}-{airport_slug}"),
        "name": name,
        "additionalType": LOUNGE_ADDITIONAL_TYPE,
        "keywords": LOUNGE_KEYWORDS,
        "containedInPlace": ref(airport_id) if airport_id else None,
        "address": address,
        "image": _image(ctx),
    }
    return apply_place_like_props(node, lounge, allow_hours=True, allow_price=True)


def reviewed_place(details: ReviewDetails, ctx: BuildContext) -> dict[str, Any]:
    node = {
        "@type": "Place",
        "name": _name(details.place_name, ctx.title),
        "address": address_node(details.address),
        "image": _image(ctx),
    }
    return apply_place_like_props(node, details, allow_hours=True, allow_price=False)


REVIEWED_ITEM_BUILDERS = {
    "Flight": reviewed_flight,
    "Airline": reviewed_airline,
    "Hotel": reviewed_hotel,
    "Restaurant": reviewed_restaurant,
    "SoftwareApplication": reviewed_software,
    "CreditCard": reviewed_credit_card,
    "FinancialProduct": reviewed_financial_product,
    "LocalBusiness": reviewed_lounge,
    "Place": reviewed_place,
    "Product": reviewed_product,
}


def build_reviewed_item(details: ReviewDetails, ctx: BuildContext) -> ReviewedItem:
    reviewed_type = details.reviewed_type if details.reviewed_type in REVIEWED_TYPES else "Product"
    node = REVIEWED_ITEM_BUILDERS[reviewed_type](details, ctx)
    if not node.get("@id"):
        node = {"@id": ctx.node_id(f"reviewed-{reviewed_type.lower()}"), **node}
    extra_nodes: list[dict[str, Any]] = []
    if reviewed_type == "LocalBusiness":
        airport = airport_node(details.lounge or LoungeDetails(), ctx)
        if airport is not None:
            extra_nodes.append(airport)
    return ReviewedItem(node=node, extra_nodes=extra_nodes)


def build_review(details: ReviewDetails, ctx: BuildContext) -> list[dict[str, Any]]:
    """Nodes for a review, in output order: reviewed item, any extras, the Review."""
    item = build_reviewed_item(details, ctx)
    review = {
        "@type": "Review",
        "@id": ctx.node_id("review"),
        "name": ctx.title,
        "headline": ctx.title,
        "author": ctx.author_ref,
        "datePublished": ctx.published,
        "dateModified": ctx.modified,
        "publisher": ctx.publisher_ref,
        "reviewBody": ctx.summary or None,
        "reviewRating": rating_node(lookup_rating(details)),
        "itemReviewed": ref(item.node["@id"]),
    }
    return [item.node, *item.extra_nodes, review]
