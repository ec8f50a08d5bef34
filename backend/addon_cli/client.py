"""HTTP client construction for talking to a running addon from the CLI."""
from __future__ import annotations

import httpx

DEFAULT_TIMEOUT_SECONDS = 5.0


def create_client(
    base_url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Return an HTTPX client for the addon at ``base_url`` that asks for JSON."""

    return httpx.Client(
        base_url=base_url,
        timeout=timeout,
        transport=transport,
        headers={"Accept": "application/json"},
    )
