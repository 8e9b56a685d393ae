"""
Input Sanitization Utilities

Strips markup from free-text request fields before structural validation.

Sanitization never rejects input. Each named top-level field holding a string
has every tag-like ``<...>`` substring removed and surrounding whitespace
trimmed; non-string and absent fields pass through unchanged. The transform
is idempotent: sanitizing already-sanitized text leaves it as is, since no
``<`` that survives the first pass has a ``>`` after it.
"""

import re
from typing import Any, Dict, Iterable, Mapping, Pattern

import structlog

logger = structlog.get_logger("utils.sanitizers")

TAG_PATTERN: Pattern[str] = re.compile(r'<[^>]*>')


def strip_markup(text: str) -> str:
    """
    Remove tag-like substrings and trim surrounding whitespace.

    Example:
        strip_markup("  <b>Desk</b> lamp<script>x()</script> ")
        # Result: "Desk lampx()"
    """
    return TAG_PATTERN.sub('', text).strip()


def sanitize_fields(data: Any, field_names: Iterable[str]) -> Any:
    """
    Return a copy of ``data`` with the named string fields sanitized.

    Args:
        data: Request body; anything but a mapping is returned unchanged
        field_names: Top-level keys to sanitize

    Returns:
        New dict with sanitized values, or ``data`` itself when it is not a mapping
    """
    if not isinstance(data, Mapping):
        return data

    sanitized: Dict[str, Any] = dict(data)
    changed = []
    for name in field_names:
        value = sanitized.get(name)
        if isinstance(value, str):
            clean = strip_markup(value)
            if clean != value:
                sanitized[name] = clean
                changed.append(name)

    if changed:
        logger.debug("Sanitized input fields", fields=changed)
    return sanitized


__all__ = ['TAG_PATTERN', 'strip_markup', 'sanitize_fields']
