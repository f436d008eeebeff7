"""Deterministic JSON-LD graph construction.

`GraphBuilder.build_graph` turns a content record plus its classification
into a schema.org ``@graph``:

1. A fixed backbone: Organization (with its logo when configured), WebSite
   (when enabled or on the front page), the primary ImageObject, WebPage,
   BreadcrumbList, the author Person and the primary creative work.
2. At most one secondary entity chosen by the classification's type.
3. Cross-links from the WebPage and the primary work to that entity.
4. A recursive prune of empty values.

Article types (BlogPosting, Article, NewsArticle) are the primary work
itself and add no secondary entity; any other supported type is attached to
a BlogPosting; unsupported types yield the backbone only.
"""

import html
import logging
from datetime import datetime
from typing import Any, Optional

from schemaai.classification import (
    ARTICLE_TYPES,
    SUPPORTED_TYPES,
    Classification,
)
from schemaai.content import ContentRecord
from schemaai.graph.context import BuildContext
from schemaai.graph.model import SCHEMA_CONTEXT, Graph
from schemaai.graph.normalize import image_object_inline, normalize_bcp47, pick_allowed_image
from schemaai.graph.secondary import build_secondary
from schemaai.graph.values import add_linked, prune, ref
from schemaai.settings import SiteSettings
from schemaai.text import first_local_image, host_of, trim_words

logger = logging.getLogger(__name__)

DEFAULT_TYPE = "BlogPosting"
EXCERPT_WORDS = 35
ARTICLE_BODY_WORDS = 300
DETAIL_IMAGE_SOURCES = ("lounge", "hotel", "restaurant", "product", "software")


def _iso(value: datetime) -> str:
    return value.replace(microsecond=0).isoformat()


class GraphBuilder:
    """Builds graphs for one site; holds nothing but the site settings."""

    def __init__(self, site: SiteSettings):
        self.site = site

    @property
    def home_url(self) -> str:
        return self.site.url.rstrip("/") + "/"

    def resolve_template(self, classification: Classification) -> str:
        if classification.primary_type in SUPPORTED_TYPES:
            return classification.primary_type
        if classification.primary_type:
            logger.info("Unsupported type %r, falling back to %s", classification.primary_type, DEFAULT_TYPE)
        return DEFAULT_TYPE

    def primary_image_url(self, record: ContentRecord, classification: Classification) -> str:
        """Featured image, else first local body image, else an allowed image from the details."""
        if record.featured_image_url:
            return record.featured_image_url
        site_host = host_of(self.site.url)
        local = first_local_image(record.body, self.site.url)
        if local:
            return local
        details = classification.details
        candidates: list[Optional[str]] = []
        for source in DETAIL_IMAGE_SOURCES:
            sub = getattr(details, source, None)
            candidates.append(getattr(sub, "image", None))
        candidates.append(getattr(details, "image", None))
        return pick_allowed_image(candidates, site_host)

    def build_context(self, record: ContentRecord, classification: Classification) -> BuildContext:
        home = self.home_url
        post_url = record.permalink
        image_url = self.primary_image_url(record, classification)
        excerpt = record.excerpt if record.excerpt.strip() else trim_words(record.body, EXCERPT_WORDS)
        website_id = f"{home}#website" if (self.site.emit_website or record.is_front_page) else ""
        return BuildContext(
            site_url=home,
            site_name=self.site.name,
            post_url=post_url,
            title=html.unescape(record.title),
            excerpt=html.unescape(excerpt),
            summary=html.unescape(classification.summary),
            published=_iso(record.published_at),
            modified=_iso(record.modified_at),
            language=normalize_bcp47(self.site.language),
            image_url=image_url,
            primary_image_id=f"{post_url}#primaryimage" if image_url else "",
            organization_id=f"{home}#organization",
            author_id=f"{record.author.url}#author",
            website_id=website_id,
        )

    def backbone(self, record: ContentRecord, ctx: BuildContext, primary_type: str) -> list[dict[str, Any]]:
        nodes: list[dict[str, Any]] = []
        logo_id = ""
        if self.site.logo_url:
            logo_id = ctx.site_node_id("logo")
            nodes.append({"@type": "ImageObject", "@id": logo_id, "url": self.site.logo_url})

        nodes.append(
            {
                "@type": "Organization",
                "@id": ctx.organization_id,
                "name": ctx.site_name,
                "url": ctx.site_url,
                "logo": ref(logo_id) if logo_id else None,
            }
        )
        if ctx.website_id:
            nodes.append(
                {
                    "@type": "WebSite",
                    "@id": ctx.website_id,
                    "url": ctx.site_url,
                    "name": ctx.site_name,
                    "publisher": ctx.publisher_ref,
                }
            )
        if ctx.image_url:
            nodes.append({"@type": "ImageObject", "@id": ctx.primary_image_id, "url": ctx.image_url})

        nodes.append(
            {
                "@type": "WebPage",
                "@id": ctx.node_id("webpage"),
                "url": ctx.post_url,
                "name": ctx.title,
                "isPartOf": ctx.website_ref,
                "primaryImageOfPage": ctx.image_ref,
                "datePublished": ctx.published,
                "dateModified": ctx.modified,
                "description": ctx.excerpt,
                "breadcrumb": ref(ctx.node_id("breadcrumb")),
                "inLanguage": ctx.language,
            }
        )
        nodes.append(
            {
                "@type": "BreadcrumbList",
                "@id": ctx.node_id("breadcrumb"),
                "itemListElement": [
                    {"@type": "ListItem", "position": 1, "name": "Home", "item": ctx.site_url},
                    {"@type": "ListItem", "position": 2, "name": ctx.title, "item": ctx.post_url},
                ],
            }
        )
        nodes.append(
            {
                "@type": "Person",
                "@id": ctx.author_id,
                "name": record.author.display_name,
                "url": record.author.url,
                "image": image_object_inline(record.author.avatar_url),
            }
        )
        nodes.append(
            {
                "@type": primary_type,
                "@id": ctx.node_id("primary"),
                "isPartOf": ctx.website_ref,
                "mainEntityOfPage": ref(ctx.node_id("webpage")),
                "author": ctx.author_ref,
                "headline": ctx.title,
                "datePublished": ctx.published,
                "dateModified": ctx.modified,
                "publisher": ctx.publisher_ref,
                "image": ctx.image_ref,
                "description": ctx.excerpt,
                "articleBody": trim_words(record.body, ARTICLE_BODY_WORDS),
            }
        )
        return nodes

    def build_graph(self, record: ContentRecord, classification: Classification) -> Graph:
        """Build the complete graph; never raises for missing or malformed details."""
        template = self.resolve_template(classification)
        primary_type = template if template in ARTICLE_TYPES else DEFAULT_TYPE
        secondary_type = "" if template in ARTICLE_TYPES else template

        ctx = self.build_context(record, classification)
        nodes = self.backbone(record, ctx, primary_type)
        webpage = next(n for n in nodes if n["@type"] == "WebPage")
        primary = nodes[-1]

        if secondary_type:
            extra = build_secondary(secondary_type, classification.details, ctx)
            if extra:
                nodes.extend(extra)
                link = ref(extra[-1]["@id"])
                if secondary_type == "VideoObject":
                    primary["video"] = link
                elif secondary_type == "Airline":
                    primary["mentions"] = add_linked(primary.get("mentions"), link)
                else:
                    primary["about"] = add_linked(primary.get("about"), link)
                webpage["about"] = add_linked(webpage.get("about"), link)

        if not webpage.get("mainEntity"):
            webpage["mainEntity"] = ref(primary["@id"])

        document = prune({"@context": SCHEMA_CONTEXT, "@graph": nodes})
        return Graph.from_jsonld(document)
