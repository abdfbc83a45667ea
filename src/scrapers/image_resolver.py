"""Best-effort lookup of a representative image for a feed item."""

import re

MEDIA_CONTENT_RE = re.compile(r"<media:content[^>]*url=[\"']([^\"']+)[\"'][^>]*>", re.IGNORECASE)
ENCLOSURE_RE = re.compile(
    r"<enclosure[^>]*url=[\"']([^\"']+)[\"'][^>]*type=[\"']image", re.IGNORECASE
)
MEDIA_THUMBNAIL_RE = re.compile(
    r"<media:thumbnail[^>]*url=[\"']([^\"']+)[\"'][^>]*>", re.IGNORECASE
)
CONTENT_ENCODED_RE = re.compile(
    r"<content:encoded[^>]*>(?:<!\[CDATA\[)?(.*?)(?:\]\]>)?</content:encoded>",
    re.IGNORECASE | re.DOTALL,
)
IMG_SRC_RE = re.compile(r"<img[^>]+src=[\"']([^\"']+)[\"']", re.IGNORECASE)


def first_inline_image(html: str | None) -> str | None:
    if not html:
        return None
    match = IMG_SRC_RE.search(html)
    return match.group(1) if match else None


def resolve_image_url(item_xml: str, raw_description: str | None = None) -> str | None:
    """
    Pick an image URL for an item, checking in fixed priority order:
    media:content, image enclosure, media:thumbnail, <img> inside
    content:encoded, then <img> inside the raw description.
    Returns None when the item carries no image.
    """
    for pattern in (MEDIA_CONTENT_RE, ENCLOSURE_RE, MEDIA_THUMBNAIL_RE):
        match = pattern.search(item_xml)
        if match:
            return match.group(1)

    encoded = CONTENT_ENCODED_RE.search(item_xml)
    if encoded:
        image = first_inline_image(encoded.group(1))
        if image:
            return image

    return first_inline_image(raw_description)
