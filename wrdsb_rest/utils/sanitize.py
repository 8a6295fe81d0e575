"""
sanitize.py — Input Sanitizers and Format Checks

Purpose:
- Clean request values before they reach the directory:
    * sanitize_user        → login names
    * sanitize_text_field  → single-line plain text (names, nickname)
    * strip_unsafe_html    → free-text description (allow-listed markup only)
    * sanitize_slug        → URL-safe slugs
- Validate `email` (pydantic EmailStr) and `uri` formatted fields.

Usage:
    from wrdsb_rest.utils.sanitize import sanitize_slug

    sanitize_slug("Jane Doe!")  → "jane-doe"
"""

import re
import unicodedata
from urllib.parse import urlparse

import nh3
from pydantic import EmailStr, TypeAdapter, ValidationError

_TAG_RE = re.compile(r"<[^>]*>")
_SCRIPT_STYLE_RE = re.compile(r"<(script|style)[^>]*?>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_OCTET_RE = re.compile(r"%[a-fA-F0-9]{2}")
_ENTITY_RE = re.compile(r"&.+?;")
_WHITESPACE_RE = re.compile(r"\s+")

# Markup a user description may keep; everything else is stripped
_DESCRIPTION_TAGS = {
    "a", "abbr", "acronym", "b", "blockquote", "cite", "code",
    "del", "em", "i", "q", "s", "strike", "strong",
}
_DESCRIPTION_ATTRIBUTES = {
    "a": {"href", "title"},
    "abbr": {"title"},
    "acronym": {"title"},
    "blockquote": {"cite"},
    "del": {"datetime"},
    "q": {"cite"},
}
_URL_SCHEMES = {"http", "https", "mailto"}

_EMAIL_ADAPTER = TypeAdapter(EmailStr)


def remove_accents(value: str) -> str:
    """Fold accented characters to their ASCII base letter."""
    normalized = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in normalized if not unicodedata.combining(ch))


def strip_all_tags(value: str) -> str:
    """Drop every tag, plus the contents of script/style blocks."""
    value = _SCRIPT_STYLE_RE.sub("", value)
    return _TAG_RE.sub("", value)


def sanitize_user(value: str, strict: bool = False) -> str:
    """
    Clean a login name: no tags, accents, octets or entities; whitespace
    collapsed. In strict mode only `a-z 0-9 space _ . - @` survive.
    """
    raw = str(value)
    username = strip_all_tags(raw)
    username = remove_accents(username)
    username = _OCTET_RE.sub("", username)
    username = _ENTITY_RE.sub("", username)
    if strict:
        username = re.sub(r"[^a-zA-Z0-9 _.\-@]", "", username)
    username = username.strip()
    return _WHITESPACE_RE.sub(" ", username)


def sanitize_text_field(value: str) -> str:
    """
    Single-line plain text: tags removed, line breaks / tabs / runs of
    whitespace collapsed, percent-encoded octets dropped.
    """
    text = str(value)
    if "<" in text:
        text = strip_all_tags(text)
    text = _OCTET_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text)
    return text.strip()


def strip_unsafe_html(value: str) -> str:
    """
    Keep the allow-listed formatting markup and drop everything else:
    script and style blocks with their content, other elements (their text
    is kept), unlisted attributes and links outside http, https and mailto.
    """
    return nh3.clean(
        str(value),
        tags=_DESCRIPTION_TAGS,
        attributes=_DESCRIPTION_ATTRIBUTES,
        url_schemes=_URL_SCHEMES,
        link_rel=None,
    )


def sanitize_slug(value: str) -> str:
    """
    Lowercase, dash-separated slug made of `a-z 0-9 _ -`.
    """
    title = strip_all_tags(str(value))
    title = remove_accents(title)
    title = _ENTITY_RE.sub("", title)
    title = title.lower().replace(".", "-")
    title = re.sub(r"[^a-z0-9 _-]", "", title)
    title = re.sub(r"\s+", "-", title)
    title = re.sub(r"-+", "-", title)
    return title.strip("-")


# -----------------------------------------------------------------------------
# Format checks
# -----------------------------------------------------------------------------

def is_email(value: str) -> bool:
    """
    Bare address valid under EmailStr rules that fits the 6..100 character
    column. The `Name <address>` form is refused.
    """
    if not isinstance(value, str) or len(value) < 6 or len(value) > 100 or "<" in value:
        return False
    try:
        _EMAIL_ADAPTER.validate_python(value)
    except ValidationError:
        return False
    return True


def is_uri(value: str) -> bool:
    """Absolute http(s) URL, or the empty string (clears the field)."""
    if value == "":
        return True
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
