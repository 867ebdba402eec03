"""
Microsoft Graph profile lookup with a delegated (OBO) token.
"""

import asyncio
import logging

import aiohttp

from core.exceptions import ProfileLookupError

logger = logging.getLogger(__name__)


async def get_display_name(
    session: aiohttp.ClientSession, access_token: str, profile_url: str
) -> str:
    """Resolve the signed-in user's display name from Graph.

    Args:
        session: Shared HTTP session. The bearer token is sent per request.
        access_token: Token issued by the OBO exchange.
        profile_url: Profile endpoint, e.g. ``/v1.0/me?$select=displayName``.

    Returns:
        The ``displayName`` of the profile.

    Raises:
        ProfileLookupError: On network errors, non-200 responses, or a
            response without a display name.
    """
    headers = {"Authorization": f"Bearer {access_token}"}
    try:
        async with session.get(profile_url, headers=headers) as resp:
            if resp.status != 200:
                error_text = await resp.text()
                raise ProfileLookupError(
                    f"Graph API failed: {resp.status} - {error_text}"
                )
            profile = await resp.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise ProfileLookupError(f"Graph API network error: {e!r}") from e
    except ValueError as e:
        raise ProfileLookupError("Graph API returned invalid JSON") from e

    display_name = profile.get("displayName") if isinstance(profile, dict) else None
    if not isinstance(display_name, str) or not display_name:
        raise ProfileLookupError("Graph profile response has no displayName")

    logger.debug("Resolved display name from Graph profile")
    return display_name
