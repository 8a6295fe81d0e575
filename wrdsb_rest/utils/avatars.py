"""
avatars.py — Avatar URL Builder

Gravatar URLs keyed by the md5 of the trimmed, lowercased email address.
"""

import hashlib
from typing import Dict, Iterable
from urllib.parse import urlencode

GRAVATAR_BASE = "https://secure.gravatar.com/avatar/"


def get_avatar_url(email: str, size: int, default: str = "mm", rating: str = "g") -> str:
    email_hash = hashlib.md5((email or "").strip().lower().encode("utf-8")).hexdigest()
    query = urlencode({"s": size, "d": default, "r": rating})
    return f"{GRAVATAR_BASE}{email_hash}?{query}"


def get_avatar_urls(
    email: str,
    sizes: Iterable[int],
    default: str = "mm",
    rating: str = "g",
) -> Dict[str, str]:
    """One URL per pixel size; keys are the sizes as strings."""
    return {str(size): get_avatar_url(email, size, default, rating) for size in sizes}
