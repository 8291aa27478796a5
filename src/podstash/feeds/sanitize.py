"""Sanitization of episode descriptions.

Descriptions are free-form HTML from the remote feed. They are reduced to a
small allow-list of tags and attributes, and every image is rewritten to point
at its archived copy so the republished feed never references the original
host.
"""

import logging
from collections.abc import Callable
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Comment, Tag

from podstash.feeds.models import MediaReference

logger = logging.getLogger(__name__)

ALLOWED_TAGS = frozenset({"a", "div", "span", "p", "em", "strong", "img"})
ALLOWED_ATTRIBUTES = frozenset({"alt", "height", "width", "href", "src", "rel", "target", "title"})

# Removed together with everything inside them
DROPPED_TAGS = frozenset({"script", "style", "iframe", "object", "embed", "noscript", "template"})

ImageResolver = Callable[[str], MediaReference]


def _unsafe_url(value: str) -> bool:
    return value.strip().lower().startswith(("javascript:", "vbscript:", "data:"))


def sanitize_description(
    html: str | None,
    resolve_image: ImageResolver,
    base_url: str | None = None,
) -> tuple[str, list[MediaReference]]:
    """Sanitize a description fragment.

    Args:
        html: Raw description HTML (may be None)
        resolve_image: Maps a remote image URL to its local MediaReference
        base_url: URL that relative image sources are resolved against

    Returns:
        Tuple of (sanitized HTML, images referenced by the description)
    """
    if not html:
        return "", []

    soup = BeautifulSoup(html, "html.parser")
    images: list[MediaReference] = []

    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    for tag in soup.find_all(True):
        if tag.decomposed:
            continue

        if tag.name in DROPPED_TAGS:
            tag.decompose()
            continue

        if tag.name not in ALLOWED_TAGS:
            tag.unwrap()
            continue

        tag.attrs = {
            name: value
            for name, value in tag.attrs.items()
            if name in ALLOWED_ATTRIBUTES
        }

        if tag.name == "img":
            _rewrite_image(tag, resolve_image, images, base_url)
        elif "href" in tag.attrs and _unsafe_url(str(tag["href"])):
            del tag["href"]

        # A dropped "src" on anything but img has no meaning here
        if tag.name != "img" and "src" in tag.attrs:
            del tag["src"]

    return str(soup), images


def _rewrite_image(
    tag: Tag,
    resolve_image: ImageResolver,
    images: list[MediaReference],
    base_url: str | None = None,
) -> None:
    src = str(tag.get("src") or "").strip()
    if not src or _unsafe_url(src):
        logger.debug(f"Dropping image without a usable src: {src!r}")
        tag.decompose()
        return

    if base_url:
        src = urljoin(base_url, src)

    # Only absolute http(s) URLs can be downloaded
    parsed = urlparse(src)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        logger.debug(f"Dropping image that cannot be fetched: {src!r}")
        tag.decompose()
        return

    reference = resolve_image(src)
    tag["src"] = reference.local_url
    if all(image.address != reference.address for image in images):
        images.append(reference)
