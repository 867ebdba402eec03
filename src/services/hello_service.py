"""
Greeting tools service.

Provides the ``hello`` tool, which greets the caller and echoes identity
claims from their access token. When a token is present the service also
exchanges it through the On-Behalf-Of flow and asks Microsoft Graph for the
caller's display name. Every identity step is best-effort: failures are
logged and the greeting is still returned.
"""

import logging
from typing import Annotated, Any, Mapping, Optional

import aiohttp
from fastmcp import Context
from pydantic import Field

from auth.claims import decode_claims, summarize_claims
from auth.obo import OnBehalfOfTokenClient
from config.settings import HelloServerConfig
from core.exceptions import ClaimsFormatError
from core.factory import Domain, MCPToolBase
from services.graph_profile import get_display_name
from utils.auth_utils import get_request_headers, resolve_user_token
from utils.formatters import format_json_response
from utils.http import get_http_session

logger = logging.getLogger(__name__)

HELLO_TOOL_NAME = "hello"
HELLO_TOOL_DESCRIPTION = "Simple hello world MCP Tool that responses with a hello message."
DEFAULT_SUBJECT = "världen"
GREETING_TEMPLATE = "Tja {who}! Jag är Keen Test MCP‑verktyg."
MISSING_REQUEST_MESSAGE = "Could not resolve the HTTP request from the tool context."


def choose_subject(name: Optional[str], display_name: Optional[str]) -> str:
    """Pick who to greet: explicit name, then display name, then the default."""
    if name and name.strip():
        return name
    if display_name and display_name.strip():
        return display_name
    return DEFAULT_SUBJECT


class HelloService(MCPToolBase):
    """Greeting tools enriched with the caller's identity."""

    def __init__(
        self,
        config: HelloServerConfig,
        exchange_client: Optional[OnBehalfOfTokenClient] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """Initialize the hello service.

        Args:
            config: Server configuration.
            exchange_client: OBO client. Built from config when OBO is enabled
                and none is given.
            session: Optional HTTP session for Graph calls. Defaults to the
                shared session.
        """
        super().__init__(Domain.GREETING)
        self._config = config
        self._session = session
        if exchange_client is None and config.enable_obo:
            exchange_client = OnBehalfOfTokenClient(config, session=session)
        self._exchange_client = exchange_client

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None:
            return self._session
        return get_http_session(self._config.http_timeout_seconds)

    def _decode_claims_safe(self, token: Optional[str]) -> Mapping[str, str]:
        if not token:
            return {}
        try:
            return decode_claims(token)
        except ClaimsFormatError as e:
            logger.warning("Failed to decode JWT payload: %s", e)
            return {}

    async def _resolve_display_name(self, token: Optional[str]) -> Optional[str]:
        if not token or self._exchange_client is None:
            return None
        try:
            graph_token = await self._exchange_client.acquire_token_on_behalf_of(token)
            return await get_display_name(
                self._get_session(), graph_token, self._config.graph_profile_url
            )
        except Exception as e:
            logger.warning(
                "Failed to resolve user via Graph. Proceeding without user context: %s",
                e,
            )
            return None

    async def build_greeting(
        self, headers: Mapping[str, str], name: Optional[str] = None
    ) -> dict[str, Any]:
        """Build the greeting payload for a request.

        Args:
            headers: Inbound request headers.
            name: Optional name supplied by the tool caller.

        Returns:
            Dictionary with ``message``, ``resolvedUser``, ``providedName``
            and the ``token`` claim summary.
        """
        token = resolve_user_token(headers)
        claims = self._decode_claims_safe(token)
        display_name = await self._resolve_display_name(token)

        who = choose_subject(name, display_name)
        return {
            "message": GREETING_TEMPLATE.format(who=who),
            "resolvedUser": display_name,
            "providedName": name,
            "token": summarize_claims(claims),
        }

    async def say_hello(self, ctx: Any, name: Optional[str] = None) -> str:
        logger.info("Saying hello")

        headers = get_request_headers(ctx)
        if headers is None:
            return MISSING_REQUEST_MESSAGE

        greeting = await self.build_greeting(headers, name)
        return format_json_response(greeting)

    def register_tools(self, mcp) -> None:
        """Register greeting tools with the MCP server.

        Args:
            mcp: The FastMCP server instance to register tools with.
        """

        @mcp.tool(
            name=HELLO_TOOL_NAME,
            description=HELLO_TOOL_DESCRIPTION,
            tags={self.domain.value},
        )
        async def hello(
            ctx: Context,
            name: Annotated[
                Optional[str], Field(description="Person to greet")
            ] = None,
        ) -> str:
            return await self.say_hello(ctx, name)

    @property
    def tool_count(self) -> int:
        return 1
