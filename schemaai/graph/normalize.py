"""Normalizers from loosely typed detail fields to schema.org values.

Every function here returns ``None`` (or an empty value) for input it cannot
use rather than raising; the builder prunes those away.
"""

import math
import re
import unicodedata
from typing import Any, Iterable, Mapping, Optional, Sequence
from urllib.parse import urlparse

from pydantic import BaseModel

PRICE_RANGE_MAX_LENGTH = 30
PRICE_AMOUNT_CEILING = 5000.0
WIKIMEDIA_HOSTS = ("upload.wikimedia.org", "commons.wikimedia.org")

_CANONICAL_PRICE_RE = re.compile(r"^\${1,4}(\s*[\-–]\s*\${1,4})?$")
_PRICE_AMOUNT_RE = re.compile(r"\$\s*\d[\d,]*(?:\.\d+)?")
_IMAGE_PATH_RE = re.compile(r"\.(jpe?g|png|webp)$")
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")

ADDRESS_ALIASES = (
    ("streetAddress", "street"),
    ("addressLocality", "city"),
    ("addressRegion", "region"),
    ("postalCode", "zip"),
    ("addressCountry", "country"),
)


def as_number(value: Any) -> Optional[float]:
    """Numbers and numeric strings as float; anything else (bools included) as None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _first(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if mapping.get(key) is not None:
            return mapping[key]
    return None


def _as_mapping(value: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=False)
    if isinstance(value, Mapping):
        return value
    return None


def address_node(value: Any) -> Optional[dict[str, Any]]:
    """PostalAddress from a structured mapping or a free-text street string."""
    mapping = _as_mapping(value)
    if mapping is not None:
        node: dict[str, Any] = {"@type": "PostalAddress"}
        for canonical, alias in ADDRESS_ALIASES:
            field = _first(mapping, canonical, alias)
            node[canonical] = "" if field is None else str(field)
        return node
    text = "" if value is None else str(value).strip()
    if not text:
        return None
    return {"@type": "PostalAddress", "streetAddress": text}


def geo_node(value: Any) -> Optional[dict[str, Any]]:
    """GeoCoordinates when both coordinates are numeric and not the (0, 0) placeholder."""
    mapping = _as_mapping(value)
    if mapping is None:
        return None
    latitude = as_number(_first(mapping, "lat", "latitude"))
    longitude = as_number(_first(mapping, "lng", "longitude"))
    if latitude is None or longitude is None:
        return None
    if latitude == 0.0 and longitude == 0.0:
        return None
    return {"@type": "GeoCoordinates", "latitude": latitude, "longitude": longitude}


def opening_hours_node(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        cleaned = [str(v).strip() for v in value if v is not None and str(v).strip()]
        return cleaned or None
    text = "" if value is None else str(value).strip()
    return text or None


def opening_hours_spec_node(rows: Any) -> Optional[list[dict[str, Any]]]:
    """OpeningHoursSpecification rows; empty fields are dropped from each row."""
    if not isinstance(rows, (list, tuple)):
        return None
    out: list[dict[str, Any]] = []
    for row in rows:
        mapping = _as_mapping(row)
        if mapping is None:
            continue
        spec = {
            "@type": "OpeningHoursSpecification",
            "dayOfWeek": _first(mapping, "dayOfWeek", "day", "day_of_week"),
            "opens": mapping.get("opens"),
            "closes": mapping.get("closes"),
            "validFrom": _first(mapping, "validFrom", "valid_from"),
            "validThrough": _first(mapping, "validThrough", "valid_through"),
        }
        out.append({k: v for k, v in spec.items() if v})
    return out or None


def _format_amount(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def normalize_price_range(raw: Any, max_length: int = PRICE_RANGE_MAX_LENGTH) -> Optional[str]:
    """Bound a free-text price range to a short display string.

    Canonical ``$``..``$$$$`` ranges and any text up to `max_length`
    characters pass through. Longer text is scanned for ``$`` amounts;
    amounts outside (0, 5000] are ignored and the rest become ``$min–$max``
    (or ``$amount`` when they agree). If that is still too long the maximum
    alone is used, and if even that is too long the range is dropped.
    """
    if raw is None or isinstance(raw, (dict, list, tuple)):
        return None
    text = re.sub(r"\s+", " ", str(raw).strip())
    if not text:
        return None
    if _CANONICAL_PRICE_RE.match(text) or len(text) <= max_length:
        return text

    amounts = []
    for token in _PRICE_AMOUNT_RE.findall(text):
        digits = re.sub(r"[^\d.]", "", token.replace(",", ""))
        if not digits:
            continue
        try:
            amount = float(digits)
        except ValueError:
            continue
        if 0 < amount <= PRICE_AMOUNT_CEILING:
            amounts.append(amount)
    if not amounts:
        return None

    low, high = min(amounts), max(amounts)
    if low == high:
        out = f"${_format_amount(low)}"
    else:
        out = f"${_format_amount(low)}–${_format_amount(high)}"
    if len(out) <= max_length:
        return out
    single = f"${_format_amount(high)}"
    return single if len(single) <= max_length else None


def rating_node(value: Any) -> Optional[dict[str, Any]]:
    """Rating on a 1-5 scale; out-of-range numbers are clamped."""
    number = as_number(value)
    if number is None:
        return None
    return {
        "@type": "Rating",
        "ratingValue": max(1.0, min(5.0, number)),
        "bestRating": 5,
        "worstRating": 1,
    }


def normalize_bcp47(locale: str) -> str:
    """``en_us`` -> ``en-US``; empty input means ``en-US``."""
    locale = (locale or "").strip()
    if not locale:
        return "en-US"
    parts = locale.replace("_", "-").split("-")
    parts[0] = parts[0].lower()
    if len(parts) > 1 and len(parts[1]) == 2:
        parts[1] = parts[1].upper()
    return "-".join(parts)


def slugify(text: str) -> str:
    ascii_text = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii")
    return _SLUG_STRIP_RE.sub("-", ascii_text.lower()).strip("-")


def is_allowed_image_url(url: str, site_host: str) -> bool:
    """http(s) jpg/jpeg/png/webp served by the site itself or Wikimedia."""
    url = (url or "").strip()
    if not url:
        return False
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    if parsed.scheme.lower() not in ("http", "https") or not host:
        return False
    if not _IMAGE_PATH_RE.search(parsed.path.lower()):
        return False
    if site_host and host == site_host:
        return True
    return host in WIKIMEDIA_HOSTS


def pick_allowed_image(candidates: Iterable[Optional[str]], site_host: str) -> str:
    for candidate in candidates:
        if candidate and is_allowed_image_url(candidate, site_host):
            return candidate.strip()
    return ""


def normalize_same_as(value: Any) -> Optional[list[str]]:
    """List of distinct non-empty URLs from a list or a comma-separated string."""
    if isinstance(value, str):
        items: Sequence[Any] = re.split(r"\s*,\s*", value)
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return None
    out: list[str] = []
    for item in items:
        text = "" if item is None else str(item).strip()
        if text and text not in out:
            out.append(text)
    return out or None


def image_object_inline(url: Optional[str]) -> Optional[dict[str, str]]:
    url = (url or "").strip()
    return {"@type": "ImageObject", "url": url} if url else None


def _field(details: Any, name: str) -> Any:
    return getattr(details, name, None) if details is not None else None


def apply_common_thing_props(node: dict[str, Any], details: Any) -> dict[str, Any]:
    """Copy ``url`` and a non-empty ``sameAs`` list from `details` onto `node`."""
    url = (_field(details, "url") or "").strip()
    if url:
        node["url"] = url
    same_as = _field(details, "same_as")
    if isinstance(same_as, list) and same_as:
        node["sameAs"] = list(same_as)
    return node


def apply_place_like_props(
    node: dict[str, Any],
    details: Any,
    allow_hours: bool = True,
    allow_price: bool = True,
) -> dict[str, Any]:
    """Decorate a place-like node with contact, hours, geo, links and price range.

    A structured opening-hours specification wins over free-text opening
    hours; only one of the two is ever emitted.
    """
    node = apply_common_thing_props(node, details)
    telephone = (_field(details, "telephone") or "").strip()
    if telephone:
        node["telephone"] = telephone

    if allow_hours:
        spec = opening_hours_spec_node(_field(details, "opening_hours_spec"))
        if spec is not None:
            node["openingHoursSpecification"] = spec
        else:
            opening = opening_hours_node(_field(details, "opening_hours"))
            if opening is not None:
                node["openingHours"] = opening

    geo = geo_node(_field(details, "geo"))
    if geo is not None:
        node["geo"] = geo

    same_as = normalize_same_as(_field(details, "same_as"))
    if same_as:
        node["sameAs"] = same_as

    price = normalize_price_range(_field(details, "price_range")) if allow_price else None
    if price:
        node["priceRange"] = price
    else:
        node.pop("priceRange", None)

    if not node.get("image") and _field(details, "image"):
        node["image"] = _field(details, "image")
    if _field(details, "has_map"):
        node["hasMap"] = _field(details, "has_map")
    if _field(details, "amenity_feature"):
        node["amenityFeature"] = _field(details, "amenity_feature")
    return node
