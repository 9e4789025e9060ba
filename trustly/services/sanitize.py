from __future__ import annotations

import html
import re

_BLOCK_PATTERN = re.compile(r"<(script|style|iframe|object|embed|noscript)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_TAG_PATTERN = re.compile(r"</?[a-zA-Z!][^>]*>")
_COMMENT_PATTERN = re.compile(r"<!--.*?-->", re.DOTALL)


def sanitize_text(value: str | None) -> str:
    """Trim and strip markup from free text, keeping the readable content."""
    if not value:
        return ""
    text = value.strip()
    text = _COMMENT_PATTERN.sub("", text)
    text = _BLOCK_PATTERN.sub("", text)
    text = _TAG_PATTERN.sub("", text)
    text = html.unescape(text)
    # Unescaping can reveal tags that were entity-encoded.
    text = _TAG_PATTERN.sub("", text)
    return text.strip()
