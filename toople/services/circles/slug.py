"""
Slug generation for circles.

A slug is a human-readable identifier: accents are stripped from letters
that decompose into a base letter plus marks (é -> e). Letters with no such
decomposition (ß, ø, Cyrillic, CJK) are dropped, not transliterated, so
"Straße" gives "strae". Everything is then lower-cased, characters outside
[a-z0-9 _-] are dropped and whitespace runs become single dashes.
"""

import re
import unicodedata

_INVALID_SLUG_PATTERN = re.compile(r"[^a-z0-9 _-]")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def slugify(text: str) -> str:
    """
    Generate a slug from a string.

    Examples:
        >>> slugify("Café  Crème Club")
        'cafe-creme-club'
        >>> slugify("  --Hello, World!--  ")
        'hello-world'
    """
    text = unicodedata.normalize("NFKD", text or "")
    text = text.encode("ascii", "ignore").decode("ascii")
    text = text.lower()
    text = _INVALID_SLUG_PATTERN.sub("", text)
    text = _WHITESPACE_PATTERN.sub("-", text.strip())
    return text.strip("-")
