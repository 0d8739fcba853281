"""Pure catalog rules: slugs and product image URLs."""

import re
from collections.abc import Iterable
from typing import Any
from urllib.parse import urlsplit

MAX_IMAGE_URL_LENGTH = 2048

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """Lowercase, collapse non-alphanumerics to '-', strip leading/trailing '-'."""
    return _NON_ALNUM.sub("-", value.lower()).strip("-")


def next_free_slug(base: str, taken: Iterable[str], start: int = 1) -> tuple[str, int]:
    """First of base, base-1, base-2, ... not in `taken`.

    Returns (slug, next suffix) so a caller retrying after a unique violation
    can continue the sequence.
    """
    taken_set = set(taken)
    slug = base
    suffix = start
    while slug in taken_set:
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug, suffix


def is_valid_image_url(url: str) -> bool:
    """http(s) URL with a host, or a root-relative path (not protocol-relative)."""
    if not url or len(url) > MAX_IMAGE_URL_LENGTH:
        return False
    if url.startswith("/"):
        return not url.startswith("//")
    parts = urlsplit(url)
    return parts.scheme.lower() in ("http", "https") and bool(parts.hostname)


def normalize_image_urls(raw: Any) -> list[str] | None:
    """Accept a string or a list; None if empty or any entry is invalid."""
    values = raw if isinstance(raw, list) else ([] if raw is None else [raw])
    urls = [v.strip() for v in values if isinstance(v, str) and v.strip()]
    if not urls or not all(is_valid_image_url(u) for u in urls):
        return None
    return urls
