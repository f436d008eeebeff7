"""Per-type property rules.

Missing `required` properties are reported at the rule's severity, missing
`recommended` ones always as warnings, and a `one_of` group with no member
present at the rule's severity. Infrastructure types carry warning severity
because their gaps do not affect rich-result eligibility.
"""

from pydantic import BaseModel, ConfigDict

from schemaai.validation.report import Severity


class TypeRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    required: tuple[str, ...] = ()
    recommended: tuple[str, ...] = ()
    one_of: tuple[str, ...] = ()
    severity: Severity = "error"


_ARTICLE = TypeRule(
    required=("headline", "datePublished", "author", "publisher"),
    recommended=("image", "description", "mainEntityOfPage"),
)

TYPE_RULES: dict[str, TypeRule] = {
    "BlogPosting": _ARTICLE,
    "Article": _ARTICLE,
    "NewsArticle": _ARTICLE,
    "Review": TypeRule(
        required=("itemReviewed",),
        recommended=("reviewBody", "reviewRating", "author", "datePublished"),
    ),
    "FAQPage": TypeRule(required=("mainEntity",), recommended=("inLanguage",)),
    "HowTo": TypeRule(required=("step",), recommended=("image", "totalTime")),
    "ItemList": TypeRule(required=("itemListElement",), recommended=("name", "description")),
    "VideoObject": TypeRule(
        required=("name", "thumbnailUrl", "uploadDate"),
        one_of=("contentUrl", "embedUrl"),
        recommended=("description", "duration"),
    ),
    "Product": TypeRule(required=("name",), recommended=("brand", "image", "description")),
    "Trip": TypeRule(required=("name",), recommended=("itinerary", "image")),
    "Place": TypeRule(required=("name",), recommended=("address", "geo", "image")),
    "Airline": TypeRule(required=("name",), recommended=("iataCode", "url")),
    "WebPage": TypeRule(required=("url", "name"), severity="warning"),
    "WebSite": TypeRule(required=("url", "name"), severity="warning"),
    "Organization": TypeRule(required=("name", "url"), severity="warning"),
    "BreadcrumbList": TypeRule(required=("itemListElement",), severity="warning"),
}
