"""
Outbound HTTP client used to relay stored manifesto files.

One client per process: a streamed response outlives the request handler,
so the client cannot be scoped to a single dependency call.
"""
import logging
from typing import Optional

import httpx

from election_backend.config.settings import settings

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 5

_client: Optional[httpx.AsyncClient] = None


def get_http_client() -> httpx.AsyncClient:
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
            timeout=httpx.Timeout(settings.UPSTREAM_TIMEOUT_SECONDS),
        )
    return _client


async def close_http_client() -> None:
    global _client
    if _client is not None and not _client.is_closed:
        await _client.aclose()
        logger.info("Outbound HTTP client closed")
    _client = None
