"""OpenAI-compatible chat-completions classifier.

Each classification makes at most two requests. The first asks for a strict
``json_schema`` response whose root is ``{"result": <one of the per-type
shapes>}``; if anything about that request fails, a second request asks for
a plain ``json_object`` response with the same prompt. The second failure is
the one reported.
"""

import json
import logging
from typing import Any, Optional

import httpx

from schemaai.classification import (
    AUTO_TYPE,
    REVIEWED_TYPES,
    SUPPORTED_TYPES,
    Classification,
    ClassificationRequest,
)
from schemaai.errors import (
    ClassifierError,
    MalformedResponseError,
    MissingCredentialsError,
    ProviderHTTPError,
    TransportError,
)
from schemaai.pipeline.classifier import ClassifierInterface
from schemaai.pipeline.post_fixes import apply_post_fixes

logger = logging.getLogger(__name__)

RESPONSE_SCHEMA_NAME = "schemaai_extraction"

SYSTEM_PROMPT = """You are a schema classification and extraction assistant for a travel publisher.
You MUST output a JSON object where the 'result' field contains the schema extraction.

Select a REAL schema.org type from this list:
[{types}]
{forced}
GLOBAL RULES:
- ONLY choose from the list above.
- Do NOT invent types.
- Do NOT output HTML entities. Use Unicode.
- Prefer facts stated in the post content.

MISSING INFO:
- If you select a type but cannot find important details (e.g. Rating, Location, Brand)
  in the content, list them in the 'missing_info' array, e.g. ["Rating", "Hotel Address"].

REVIEW VS TRIP DISTINCTION:
- Choose type="Trip" for journeys, itineraries, guides, trip reports.
- Choose type="Review" ONLY for specific evaluations with a verdict/rating.

DETAILS:
- Fill the 'details' object corresponding to your chosen 'type'.
- Leave unrelated detail fields null.
- For Review, strictly set 'reviewed_type' and 'rating' (1-5).
"""

_STR_NULL = {"type": ["string", "null"]}
_NUM_NULL = {"type": ["number", "null"]}
_ARR_NULL = {"type": ["array", "null"], "items": {"type": "string"}}


def _strict_object(properties: dict[str, Any], nullable: bool = False) -> dict[str, Any]:
    return {
        "type": ["object", "null"] if nullable else "object",
        "properties": properties,
        "required": list(properties),
        "additionalProperties": False,
    }


def _type_schema(type_name: str, details: dict[str, Any]) -> dict[str, Any]:
    return _strict_object(
        {
            "type": {"type": "string", "const": type_name},
            "justification": {"type": "string"},
            "summary": {"type": "string"},
            "missing_info": {"type": "array", "items": {"type": "string"}},
            "details": _strict_object(details),
        }
    )


def response_schema() -> dict[str, Any]:
    """JSON schema for the strict request: one shape per supported type."""
    thing = {"url": _STR_NULL, "sameAs": _ARR_NULL, "image": _STR_NULL}
    geo = _strict_object({"latitude": {"type": "number"}, "longitude": {"type": "number"}}, nullable=True)
    hours_spec = {
        "type": ["array", "null"],
        "items": _strict_object(
            {k: _STR_NULL for k in ("dayOfWeek", "opens", "closes", "validFrom", "validThrough")}
        ),
    }
    place = {
        **thing,
        "name": _STR_NULL,
        "address": _STR_NULL,
        "telephone": _STR_NULL,
        "priceRange": _STR_NULL,
        "opening_hours": _STR_NULL,
        "opening_hours_spec": hours_spec,
        "geo": geo,
    }
    rated = {"rating": _NUM_NULL}
    card = {k: _STR_NULL for k in ("name", "provider", "category", "url")} | rated

    review = _type_schema(
        "Review",
        {
            "reviewed_type": {"type": "string", "enum": list(REVIEWED_TYPES)},
            "rating": {"type": "number"},
            "flight": _strict_object(
                {k: _STR_NULL for k in ("airline_name", "iata", "flight_number", "url")}, nullable=True
            ),
            "hotel": _strict_object({**place, "star_rating": _NUM_NULL, **rated}, nullable=True),
            "lounge": _strict_object(
                {**place, "airport_name": _STR_NULL, "iata": _STR_NULL, "terminal": _STR_NULL, **rated},
                nullable=True,
            ),
            "restaurant": _strict_object({**place, "cuisine": _STR_NULL, "menu": _STR_NULL, **rated}, nullable=True),
            "product": _strict_object({**thing, "name": _STR_NULL, "brand": _STR_NULL}, nullable=True),
            "card": _strict_object(card, nullable=True),
            "software": _strict_object(
                {k: _STR_NULL for k in ("name", "category", "os", "version", "url", "image")} | rated, nullable=True
            ),
            "airline": _strict_object({k: _STR_NULL for k in ("name", "iata", "url")} | rated, nullable=True),
            "financial_product": _strict_object(card, nullable=True),
        },
    )
    stop = _strict_object(
        {
            "name": _STR_NULL,
            "location": _STR_NULL,
            "url": _STR_NULL,
            "position": _NUM_NULL,
            "address": _STR_NULL,
            "startDate": _STR_NULL,
            "endDate": _STR_NULL,
        }
    )
    trip = _type_schema(
        "Trip",
        {
            "trip_name": {"type": "string"},
            "itinerary": {"type": "array", "items": stop},
            "image": _STR_NULL,
            "offers": _strict_object(
                {"price": _STR_NULL, "priceCurrency": _STR_NULL, "url": _STR_NULL}, nullable=True
            ),
        },
    )
    faq = _type_schema(
        "FAQPage",
        {"faq": {"type": "array", "items": _strict_object({"q": {"type": "string"}, "a": {"type": "string"}})}},
    )
    howto = _type_schema(
        "HowTo",
        {"howto_steps": {"type": "array", "items": {"type": "string"}}, "totalTime": _STR_NULL, "image": _STR_NULL},
    )
    itemlist = _type_schema(
        "ItemList",
        {"itemlist": {"type": "array", "items": _strict_object({"name": {"type": "string"}, "url": _STR_NULL})}},
    )
    video = _type_schema(
        "VideoObject",
        {
            "video": _strict_object(
                {
                    k: _STR_NULL
                    for k in ("name", "description", "thumbnail", "upload_date", "duration", "embed_url", "content_url")
                }
            )
        },
    )
    product = _type_schema(
        "Product", {"product": _strict_object({**thing, "name": _STR_NULL, "brand": _STR_NULL})}
    )
    place_type = _type_schema(
        "Place",
        {
            "place_name": _STR_NULL,
            "address": _STR_NULL,
            "url": _STR_NULL,
            "telephone": _STR_NULL,
            "geo": geo,
            "image": _STR_NULL,
            "sameAs": _ARR_NULL,
            "opening_hours": _STR_NULL,
            "opening_hours_spec": hours_spec,
        },
    )
    airline = _type_schema(
        "Airline", {"airline_name": _STR_NULL, "iata": _STR_NULL, "url": _STR_NULL, "sameAs": _ARR_NULL}
    )
    articles = [_type_schema(name, {}) for name in ("BlogPosting", "Article", "NewsArticle")]
    return _strict_object(
        {"result": {"anyOf": [review, trip, faq, howto, itemlist, video, product, place_type, airline, *articles]}}
    )


def system_prompt(forced_type: str = AUTO_TYPE, forced_reviewed_type: str = "") -> str:
    forced = ""
    if forced_type and forced_type != AUTO_TYPE:
        forced += f"\nFORCED TYPE: You MUST return type='{forced_type}' exactly.\n"
    if forced_reviewed_type:
        forced += f"\nFORCED REVIEWED TYPE: If type=Review, you MUST set reviewed_type='{forced_reviewed_type}' exactly.\n"
    return SYSTEM_PROMPT.format(types=", ".join(SUPPORTED_TYPES), forced=forced)


def user_message(request: ClassificationRequest) -> str:
    message = (
        f"TITLE: {request.title}\n\nEXCERPT: {request.excerpt}\n\n"
        f"CONTENT_TEXT:\n{request.text}\n\nCONTENT_HTML (SAFE, TRIMMED):\n{request.html}"
    )
    if request.list_hints:
        hints = [hint.model_dump() for hint in request.list_hints]
        message += "\n\nLIST_HINTS (EXTRACTED FROM HTML LISTS):\n" + json.dumps(hints, indent=4, ensure_ascii=False)
    return message


class OpenAIClassifier(ClassifierInterface):
    """Classifier backed by an OpenAI-compatible chat-completions endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the classifier.

        Args:
            api_key: Bearer token; an empty key fails every call with
                MissingCredentialsError.
            model: Chat-completions model name.
            base_url: API root, without the trailing ``/chat/completions``.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport, used by tests to stub the API.
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    def _url(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat/completions"

    def build_payload(self, request: ClassificationRequest, strict: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt(request.forced_type, request.forced_reviewed_type)},
                {"role": "user", "content": user_message(request)},
            ],
            "temperature": 0.0,
        }
        if strict:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": RESPONSE_SCHEMA_NAME, "strict": True, "schema": response_schema()},
            }
        else:
            payload["response_format"] = {"type": "json_object"}
        return payload

    async def _request(self, payload: dict[str, Any]) -> Classification:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self._url(), json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to classifier failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponseError("OpenAI response was not valid JSON.") from exc
        if not isinstance(data, dict):
            raise MalformedResponseError("OpenAI response was not valid JSON.")
        if not response.is_success:
            error = data.get("error")
            message = error.get("message") if isinstance(error, dict) else None
            raise ProviderHTTPError(response.status_code, message or "Unknown OpenAI error.")

        try:
            content = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError):
            content = ""
        if not content:
            raise MalformedResponseError("OpenAI returned empty content.")
        try:
            result = json.loads(content)
        except ValueError as exc:
            raise MalformedResponseError("AI output was not valid JSON.") from exc
        if not isinstance(result, dict):
            raise MalformedResponseError("AI output was not valid JSON.")
        return Classification.from_payload(result)

    async def classify(self, request: ClassificationRequest) -> Classification:
        if not self.api_key:
            raise MissingCredentialsError()
        try:
            classification = await self._request(self.build_payload(request, strict=True))
        except ClassifierError as exc:
            logger.info("Strict classification of %s failed (%s); retrying in json_object mode", request.content_id, exc)
            classification = await self._request(self.build_payload(request, strict=False))
        return apply_post_fixes(classification, request)
