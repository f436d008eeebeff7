"""Secondary entity builders, one per non-article primary type.

Each builder returns the nodes to append to the graph (possibly none) with
the secondary entity itself last; the builder links to the last node.
"""

from typing import Any, Callable, Optional

from schemaai.classification import (
    AirlineDetails,
    FAQDetails,
    HowToDetails,
    ItemListDetails,
    PlaceDetails,
    ProductDetails,
    ProductInfo,
    ReviewDetails,
    TripDetails,
    VideoDetails,
    VideoInfo,
)
from schemaai.graph.context import BuildContext
from schemaai.graph.normalize import address_node, apply_common_thing_props, apply_place_like_props
from schemaai.graph.reviewed import build_review
from schemaai.text import strip_tags

MAX_ITEMLIST_ENTRIES = 25

SecondaryBuilder = Callable[[Any, BuildContext], list[dict[str, Any]]]


def _details(details: Any, model_cls: type) -> Any:
    return details if isinstance(details, model_cls) else model_cls()


def build_faq(details: Any, ctx: BuildContext) -> list[dict[str, Any]]:
    faq = _details(details, FAQDetails)
    questions = []
    for entry in faq.faq:
        question = strip_tags(entry.q)
        answer = entry.a.strip()
        if not question or not answer:
            continue
        questions.append(
            {
                "@type": "Question",
                "name": question,
                "acceptedAnswer": {"@type": "Answer", "text": answer},
            }
        )
    if not questions:
        return []
    return [
        {
            "@type": "FAQPage",
            "@id": ctx.node_id("faqpage"),
            "url": ctx.post_url,
            "name": ctx.title,
            "isPartOf": ctx.website_ref,
            "mainEntity": questions,
            "inLanguage": ctx.language,
        }
    ]


def build_howto(details: Any, ctx: BuildContext) -> list[dict[str, Any]]:
    howto = _details(details, HowToDetails)
    steps = []
    for text in (s.strip() for s in howto.howto_steps):
        if not text:
            continue
        position = len(steps) + 1
        steps.append(
            {
                "@type": "HowToStep",
                "position": position,
                "text": text,
                "url": ctx.node_id(f"step-{position}"),
            }
        )
    return [
        {
            "@type": "HowTo",
            "@id": ctx.node_id("howto"),
            "headline": ctx.title,
            "name": ctx.title,
            "description": ctx.excerpt,
            "step": steps or None,
            "totalTime": howto.total_time,
            "image": ctx.image_url or None,
        }
    ]


def build_itemlist(details: Any, ctx: BuildContext) -> list[dict[str, Any]]:
    itemlist = _details(details, ItemListDetails)
    entries = [
        {
            "@type": "ListItem",
            "position": position,
            "name": entry.name,
            "url": entry.url or "",
        }
        for position, entry in enumerate(itemlist.itemlist[:MAX_ITEMLIST_ENTRIES], start=1)
    ]
    return [
        {
            "@type": "ItemList",
            "@id": ctx.node_id("itemlist"),
            "name": ctx.title,
            "description": ctx.excerpt,
            "url": ctx.post_url,
            "itemListElement": entries or None,
        }
    ]


def build_video(details: Any, ctx: BuildContext) -> list[dict[str, Any]]:
    video = _details(details, VideoDetails).video or VideoInfo()
    return [
        {
            "@type": "VideoObject",
            "@id": ctx.node_id("videoobject"),
            "headline": ctx.title,
            "name": video.name or ctx.title,
            "description": video.description or "",
            "thumbnailUrl": video.thumbnail or "",
            "uploadDate": video.upload_date or "",
            "duration": video.duration or "",
            "embedUrl": video.embed_url or "",
            "contentUrl": video.content_url or "",
        }
    ]


def build_trip(details: Any, ctx: BuildContext) -> list[dict[str, Any]]:
    trip = _details(details, TripDetails)
    node: dict[str, Any] = {
        "@type": "Trip",
        "@id": ctx.node_id("trip"),
        "name": trip.trip_name or ctx.title,
        "description": ctx.summary or None,
        "image": ctx.image_ref,
    }
    itinerary = [
        {
            "@type": "ListItem",
            "position": index,
            "name": stop.name or stop.title or "",
            "url": stop.url or "",
            "item": {
                "@type": "Place",
                "name": stop.location or stop.name or "",
                "address": address_node(stop.address),
            },
        }
        for index, stop in enumerate(trip.itinerary, start=1)
    ]
    if itinerary:
        node["itinerary"] = {"@type": "ItemList", "itemListElement": itinerary}
    return [node]


def build_place(details: Any, ctx: BuildContext) -> list[dict[str, Any]]:
    place = _details(details, PlaceDetails)
    node = {
        "@type": "Place",
        "@id": ctx.node_id("place"),
        "name": place.place_name or ctx.title,
        "description": ctx.summary or None,
        "address": address_node(place.address),
        "image": ctx.image_ref,
    }
    return [apply_place_like_props(node, place, allow_hours=True, allow_price=False)]


def build_airline(details: Any, ctx: BuildContext) -> list[dict[str, Any]]:
    airline = _details(details, AirlineDetails)
    node = {
        "@type": "Airline",
        "@id": ctx.node_id("airline"),
        "name": airline.airline_name or ctx.title,
        "description": ctx.summary or None,
        "iataCode": airline.iata or "",
        "image": ctx.image_ref,
    }
    return [apply_common_thing_props(node, airline)]


def build_product(details: Any, ctx: BuildContext) -> list[dict[str, Any]]:
    product = _details(details, ProductDetails).product or ProductInfo()
    node = {
        "@type": "Product",
        "@id": ctx.node_id("product"),
        "name": product.name or ctx.title,
        "description": ctx.summary or None,
        "image": ctx.image_ref,
        "brand": product.brand or "",
    }
    return [apply_common_thing_props(node, product)]


def build_review_entity(details: Any, ctx: BuildContext) -> list[dict[str, Any]]:
    return build_review(_details(details, ReviewDetails), ctx)


SECONDARY_BUILDERS: dict[str, SecondaryBuilder] = {
    "FAQPage": build_faq,
    "HowTo": build_howto,
    "ItemList": build_itemlist,
    "Review": build_review_entity,
    "VideoObject": build_video,
    "Trip": build_trip,
    "Place": build_place,
    "Airline": build_airline,
    "Product": build_product,
}


def build_secondary(secondary_type: str, details: Any, ctx: BuildContext) -> list[dict[str, Any]]:
    builder: Optional[SecondaryBuilder] = SECONDARY_BUILDERS.get(secondary_type)
    if builder is None:
        return []
    return builder(details, ctx)
