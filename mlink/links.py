"""
Sharable action links.

A sharable link wraps an action URL in a page URL:

    <base>/<path>?action=<percent-encoded action URL>

``parse_blink_url`` reverses ``create_blink_url`` losslessly for any
well-formed absolute URL, and returns None for anything else.
"""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

from mlink.template import encode_component

MLINK_BASE_URL = "https://www.m-links.xyz"
BLINK_PATH = "blink"
ACTION_QUERY_PARAM = "action"


def is_absolute_url(url: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def create_blink_url(
    action_url: str,
    base_url: str = MLINK_BASE_URL,
    path: str = BLINK_PATH,
) -> str:
    """Wrap ``action_url`` into a sharable link.

    Raises:
        ValueError: If ``action_url`` is not an absolute http(s) URL.
    """
    if not is_absolute_url(action_url):
        raise ValueError(f"Invalid action URL: {action_url!r}")
    return f"{base_url.rstrip('/')}/{path.strip('/')}?{ACTION_QUERY_PARAM}={encode_component(action_url)}"


def parse_blink_url(blink_url: str) -> str | None:
    """Extract the action URL from a sharable link, or None."""
    if not is_absolute_url(blink_url):
        return None
    values = parse_qs(urlsplit(blink_url).query).get(ACTION_QUERY_PARAM)
    if not values:
        return None
    action_url = values[0]
    if not is_absolute_url(action_url):
        return None
    return action_url


def is_blink_url(url: str) -> bool:
    return parse_blink_url(url) is not None
