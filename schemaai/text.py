"""HTML helpers for turning CMS bodies into classifier input.

All parsing goes through BeautifulSoup with the stdlib ``html.parser`` backend.
"""

import html
import re
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

ALLOWED_HTML_TAGS = {
    "p", "br", "ul", "ol", "li", "strong", "em", "b", "i", "a",
    "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "code",
}
ALLOWED_LINK_ATTRS = ("href", "title")
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")

_SHORTCODE_RE = re.compile(r"\[[^\]]+\]")
_WHITESPACE_RE = re.compile(r"\s+")


def _soup_without_scripts(markup: str) -> BeautifulSoup:
    soup = BeautifulSoup(markup or "", "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def strip_tags(markup: str) -> str:
    """Plain text of an HTML fragment, whitespace collapsed."""
    if not markup:
        return ""
    return collapse_whitespace(_soup_without_scripts(markup).get_text(" "))


def trim_words(markup: str, num_words: int, more: str = "…") -> str:
    """Strip tags and keep the first `num_words` words, appending `more` when cut."""
    words = strip_tags(markup).split()
    if len(words) <= num_words:
        return " ".join(words)
    return " ".join(words[:num_words]) + more


def clean_content_text(markup: str) -> str:
    """Body text for the classifier: no scripts or styles, entities decoded."""
    return strip_tags(markup)


def clean_content_html(markup: str) -> str:
    """A reduced HTML rendition of the body that keeps structure but little else.

    Shortcodes (``[gallery ids="1,2"]``) are removed before parsing. Tags
    outside `ALLOWED_HTML_TAGS` are unwrapped so their text survives; links
    keep only ``href`` and ``title``.
    """
    if not markup:
        return ""
    soup = _soup_without_scripts(_SHORTCODE_RE.sub(" ", markup))
    for tag in soup.find_all(True):
        if tag.name not in ALLOWED_HTML_TAGS:
            tag.unwrap()
            continue
        keep = ALLOWED_LINK_ATTRS if tag.name == "a" else ()
        tag.attrs = {k: v for k, v in tag.attrs.items() if k in keep}
    cleaned = html.unescape(str(soup))
    cleaned = re.sub(r"[ \t]+", " ", cleaned)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    return cleaned.strip()


def _absolute_url(url: str, site_url: str) -> str:
    if url.startswith("/") and not url.startswith("//") and site_url:
        return urljoin(site_url.rstrip("/") + "/", url)
    return url


def extract_list_hints(markup: str, site_url: str = "", limit: int = 25) -> list[dict[str, str]]:
    """Entries of the first HTML list with at least three named items.

    Each entry is ``{"name": ..., "url": ...}``; the name comes from the
    item's link text when it has a link, otherwise from the item text.
    Site-relative links are resolved against `site_url`.
    """
    if not markup or not markup.strip():
        return []
    soup = BeautifulSoup(markup, "html.parser")
    for list_tag in soup.find_all(["ul", "ol"]):
        items = list_tag.find_all("li", recursive=False)
        if len(items) < 3:
            continue
        out: list[dict[str, str]] = []
        for item in items:
            url = ""
            name = ""
            link = item.find("a", href=True)
            if link is not None:
                url = link["href"].strip()
                name = collapse_whitespace(link.get_text(" "))
            if not name:
                name = collapse_whitespace(item.get_text(" "))
            if not name:
                continue
            out.append({"name": name, "url": _absolute_url(url, site_url)})
            if len(out) >= limit:
                break
        if len(out) >= 3:
            return out
    return []


def host_of(url: str) -> str:
    return (urlparse(url or "").hostname or "").lower()


def first_local_image(markup: str, site_url: str) -> str:
    """First ``<img>`` in the body served from the site's own host."""
    site_host = host_of(site_url)
    if not markup or not site_host:
        return ""
    soup = BeautifulSoup(markup, "html.parser")
    for img in soup.find_all("img", src=True):
        src = img["src"].strip()
        if not src:
            continue
        if src.startswith("//"):
            src = "https:" + src
        else:
            src = _absolute_url(src, site_url)
        parsed = urlparse(src)
        if parsed.scheme not in ("http", "https"):
            continue
        if host_of(src) == site_host and parsed.path.lower().endswith(IMAGE_EXTENSIONS):
            return src
    return ""
