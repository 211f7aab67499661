"""Article page fetching: download and extract main content with trafilatura."""

from __future__ import annotations

import httpx
import trafilatura


def scrape_url(
    url: str,
    timeout: float = 15.0,
    transport: httpx.BaseTransport | None = None,
) -> str:
    """
    Fetch URL and return extracted main text (boilerplate removed).
    Raises on fetch errors; returns "" when nothing could be extracted.
    """
    with httpx.Client(follow_redirects=True, timeout=timeout, transport=transport) as client:
        response = client.get(url)
        response.raise_for_status()
        html = response.text
    return trafilatura.extract(html) or ""
