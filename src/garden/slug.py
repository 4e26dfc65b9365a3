"""Title → slug conversion shared by every Garden component."""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")
# Anything but letters, digits and hyphens (``\w`` also admits ``_``).
_DISALLOWED_RE = re.compile(r"[^\w-]|_")
_HYPHENS_RE = re.compile(r"-+")


def title_to_slug(title: str) -> str:
    """Return the URL-safe slug for *title*.

    Japanese (and any other script) letters and digits are kept as-is; ASCII is
    lowercased and whitespace runs become single hyphens.  The result may be an
    empty string when *title* has no letters or digits.
    """
    slug = title.strip().lower()
    slug = _WHITESPACE_RE.sub("-", slug)
    slug = _DISALLOWED_RE.sub("", slug)
    slug = _HYPHENS_RE.sub("-", slug)
    return slug.strip("-")
