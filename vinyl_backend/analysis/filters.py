"""Vinyl relevance filter and listing normalizer.

Browse API keyword searches return plenty of merchandise that merely
mentions an artist (posters, shirts, phone cases). ``is_vinyl`` keeps only
physical music formats; ``normalize_item`` maps a raw item summary into the
``VinylItem`` shape served to clients.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from vinyl_backend.data.models import VinylItem

BLOCK_WORDS = (
    "poster", "print", "tshirt", "shirt", "hoodie", "jacket", "sticker",
    "figure", "funko", "toy", "magnet", "patch", "keychain",
    "canvas", "digital", "template", "pdf", "ebook", "bundle",
    "frame", "painting", "lamp", "furniture", "case", "phone", "iphone",
)

FORMAT_WORDS = (
    "vinyl", "lp", "record", "album", "cassette", "tape", "cd",
    "compact disc", "limited edition", "first press", "remaster",
)


def is_vinyl(item: Optional[Mapping[str, Any]]) -> bool:
    """Return True if the listing looks like a record, cassette or CD.

    Any block word rejects the listing even when a format word is present.
    Matching is substring based on the lower-cased title.
    """
    if not item:
        return False
    title = item.get("title")
    if not title:
        return False
    lowered = str(title).lower()

    if any(word in lowered for word in BLOCK_WORDS):
        return False
    return any(word in lowered for word in FORMAT_WORDS)


def derive_artist(item: Mapping[str, Any]) -> Optional[str]:
    """Brand if present, else the title text before the first hyphen."""
    brand = item.get("brand")
    if brand:
        return brand
    title = item.get("title")
    if title:
        head = str(title).split("-")[0].strip()
        if head:
            return head
    return None


def _image_url(item: Mapping[str, Any]) -> Optional[str]:
    thumbnails = item.get("thumbnailImages") or []
    if thumbnails and isinstance(thumbnails[0], Mapping) and thumbnails[0].get("imageUrl"):
        return thumbnails[0]["imageUrl"]
    image = item.get("image")
    if isinstance(image, Mapping) and image.get("imageUrl"):
        return image["imageUrl"]
    return None


def normalize_item(item: Mapping[str, Any]) -> VinylItem:
    """Map a raw Browse API item summary to a ``VinylItem``."""
    return VinylItem(
        item_id=item.get("itemId"),
        title=item.get("title"),
        artist=derive_artist(item),
        price=item.get("price") or None,
        image=_image_url(item),
        url=item.get("itemWebUrl"),
        condition=item.get("condition") or None,
    )


def filter_vinyl(items: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    return [item for item in items if is_vinyl(item)]


def dedupe_by_title(items: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    """Drop listings whose exact title was already seen (first one wins)."""
    seen: dict[Any, Mapping[str, Any]] = {}
    for item in items:
        title = item.get("title")
        if title not in seen:
            seen[title] = item
    return list(seen.values())
