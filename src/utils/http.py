"""
Process-wide outbound HTTP session.

One ``aiohttp.ClientSession`` is shared by every request so that connections
to the identity provider and Graph are pooled. Per-request credentials are
passed as request headers, never stored on the session.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import aiohttp

logger = logging.getLogger(__name__)

_session: Optional[aiohttp.ClientSession] = None


def get_http_session(timeout_seconds: float = 10.0) -> aiohttp.ClientSession:
    """Return the shared session, creating it inside the running event loop.

    Args:
        timeout_seconds: Total timeout applied when the session is created.
    """
    global _session
    if _session is None or _session.closed:
        _session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=timeout_seconds)
        )
        logger.debug("Shared HTTP session created")
    return _session


async def close_http_session() -> None:
    global _session
    if _session is not None and not _session.closed:
        await _session.close()
        logger.info("Shared HTTP session closed")
    _session = None


@asynccontextmanager
async def http_session_lifespan(server: Any) -> AsyncIterator[dict[str, Any]]:
    """Server lifespan that closes the shared session on shutdown."""
    try:
        yield {}
    finally:
        await close_http_session()
