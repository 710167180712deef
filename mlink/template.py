"""
Href templates.

A linked action's ``href`` may contain ``{name}`` placeholders. Values are
substituted percent-encoded with ``encodeURIComponent`` rules, so a
resolved href is byte-identical to what a browser client would build.

Placeholders without a value stay in the output verbatim, and values
without a placeholder are ignored. Whether the two sets must agree is the
caller's decision.
"""

from __future__ import annotations

import re
from typing import Mapping, Sequence, Union
from urllib.parse import quote

# Characters encodeURIComponent leaves unescaped (besides alphanumerics).
_URI_COMPONENT_SAFE = "-_.!~*'()"

_PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")

TemplateValue = Union[str, Sequence[str]]


def encode_component(value: str) -> str:
    """Percent-encode a value the way encodeURIComponent does."""
    return quote(value, safe=_URI_COMPONENT_SAFE)


def build_href(template: str, values: Mapping[str, TemplateValue]) -> str:
    """Substitute every ``{key}`` occurrence for every key in ``values``.

    List values are comma-joined before encoding (multi-select).

    Example:
        >>> build_href("/api/swap?amount={amount}&token={token}",
        ...            {"amount": "100", "token": "0x1"})
        '/api/swap?amount=100&token=0x1'
    """
    href = template
    for key, value in values.items():
        if isinstance(value, str):
            raw = value
        else:
            raw = ",".join(value)
        href = href.replace("{" + key + "}", encode_component(raw))
    return href


def extract_params(template: str) -> list[str]:
    """Placeholder names in order of occurrence, duplicates included."""
    return _PLACEHOLDER_RE.findall(template)
