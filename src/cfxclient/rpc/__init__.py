"""
RPC transport layer.

``dial`` builds a plain HTTP transport, wrapped in a RetryingTransport when
a non-zero retry budget is requested.
"""

from __future__ import annotations

from typing import Optional

from .retry import DEFAULT_RETRY_INTERVAL, RetryingTransport
from .transport import DEFAULT_TIMEOUT, BatchElem, HttpTransport, Transport

__all__ = [
    "BatchElem",
    "DEFAULT_RETRY_INTERVAL",
    "DEFAULT_TIMEOUT",
    "HttpTransport",
    "RetryingTransport",
    "Transport",
    "dial",
]


def dial(
    url: str,
    retry_count: int = 0,
    retry_interval: Optional[float] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Transport:
    transport: Transport = HttpTransport(url, timeout=timeout)
    if retry_count > 0:
        transport = RetryingTransport(transport, retry_count, retry_interval)
    return transport
