"""
PLE Platform - Slug Utilities
=============================
URL-safe identifiers derived from titles and tag names.
"""

import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

DEFAULT_SLUG = "content"
MAX_BASE_LENGTH = 280


def slugify(text: str, *, fallback: str = DEFAULT_SLUG) -> str:
    """Lowercase, collapse every non [a-z0-9] run to '-', trim dashes."""
    slug = _NON_ALNUM.sub("-", (text or "").lower()).strip("-")
    slug = slug[:MAX_BASE_LENGTH].rstrip("-")
    return slug or fallback


def with_suffix(base: str, n: int) -> str:
    """Collision candidate: n=1 is the bare base, then base-2, base-3, ..."""
    return base if n <= 1 else f"{base}-{n}"


def first_free_slug(base: str, taken: set[str]) -> str:
    n = 1
    while with_suffix(base, n) in taken:
        n += 1
    return with_suffix(base, n)
