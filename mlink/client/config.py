"""
Client configuration.

Passed explicitly to ActionController. DEFAULT_CLIENT_CONFIG applies only
when a controller is built without one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from mlink.chains import DEFAULT_CHAIN, ChainConfig

# Metadata refresh interval: 10 minutes.
DEFAULT_REFRESH_INTERVAL_S = 10 * 60.0

DEFAULT_TIMEOUT_S = 30.0


@dataclass(frozen=True)
class ClientConfig:
    """
    Attributes:
        refresh_interval_s: Seconds between background metadata refreshes.
            None or 0 disables the timer (initial fetch still happens).
        timeout_s: Per-request timeout for the default transport.
        headers: Extra headers sent with every request.
        default_chain: Chain used for explorer links when a transaction's
            chain is not in the supported table.
    """

    refresh_interval_s: float | None = DEFAULT_REFRESH_INTERVAL_S
    timeout_s: float = DEFAULT_TIMEOUT_S
    headers: Mapping[str, str] = field(default_factory=dict)
    default_chain: ChainConfig = DEFAULT_CHAIN


DEFAULT_CLIENT_CONFIG = ClientConfig()
