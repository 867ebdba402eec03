"""
On-Behalf-Of (OBO) token exchange for downstream APIs.

This module implements the OAuth 2.0 On-Behalf-Of flow to exchange the caller's
access token for a token scoped to the configured downstream scopes (Microsoft
Graph by default).

Supports two client authentication methods:
1. Client Secret (works locally and in Azure) - posted to the token endpoint
   through the shared HTTP session.
2. Federated Identity Credential (Azure-only, secretless) - a managed identity
   token is used as the client assertion.

Failures raise TokenExchangeError and are never retried here. Cancellation of
the awaiting task propagates unchanged.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import aiohttp
from azure.identity.aio import ManagedIdentityCredential, OnBehalfOfCredential

from config.settings import HelloServerConfig
from core.exceptions import TokenExchangeError
from utils.http import get_http_session

logger = logging.getLogger(__name__)

OBO_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"

# Audience for managed identity token exchange (federated credential)
# See: https://learn.microsoft.com/en-us/entra/workload-id/workload-identity-federation-config-app-trust-managed-identity
MI_TOKEN_EXCHANGE_AUDIENCE = "api://AzureADTokenExchange"


def _elapsed_ms(start_time: datetime) -> float:
    return (datetime.now(timezone.utc) - start_time).total_seconds() * 1000


def _is_consent_error(error_text: str) -> bool:
    return "AADSTS65001" in error_text or "has not consented" in error_text


class OnBehalfOfTokenClient:
    """Confidential client performing the On-Behalf-Of exchange.

    Built once from configuration and shared by all requests. The instance
    holds no per-request state, so concurrent calls are safe.
    """

    def __init__(
        self,
        config: HelloServerConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Server configuration with tenant, client and scope settings.
            session: Optional HTTP session. Defaults to the shared session.
        """
        self._config = config
        self._session = session

    @property
    def scopes(self) -> list[str]:
        return list(self._config.downstream_scopes)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None:
            return self._session
        return get_http_session(self._config.http_timeout_seconds)

    async def acquire_token_on_behalf_of(self, user_token: str) -> str:
        """Exchange the caller's access token for a downstream access token.

        Authentication method priority:
        1. Client Secret (if CLIENT_SECRET is configured)
        2. Federated Identity Credential (if FEDERATED_CREDENTIAL_OID is configured)

        Args:
            user_token: The caller's access token (the OBO user assertion).

        Returns:
            Downstream access token string.

        Raises:
            TokenExchangeError: If the exchange fails or is not configured.
        """
        config = self._config

        if not config.tenant_id or not config.client_id:
            raise TokenExchangeError(
                "TENANT_ID and CLIENT_ID must be configured for the OBO flow"
            )

        if config.client_secret and config.client_secret.get_secret_value():
            logger.debug("Using client secret for OBO flow")
            return await self._acquire_with_client_secret(user_token)

        if config.federated_credential_oid:
            logger.debug("Using federated identity credential for OBO flow (Azure-only)")
            return await self._acquire_with_federated_credential(user_token)

        raise TokenExchangeError(
            "OBO flow not configured: Set CLIENT_SECRET (works locally and in Azure) "
            "or FEDERATED_CREDENTIAL_OID (Azure-only, secretless) in environment"
        )

    async def _acquire_with_client_secret(self, user_token: str) -> str:
        config = self._config
        scope = " ".join(config.downstream_scopes)

        data = {
            "client_id": config.client_id,
            "client_secret": config.client_secret.get_secret_value(),  # type: ignore[union-attr]
            "grant_type": OBO_GRANT_TYPE,
            "requested_token_use": "on_behalf_of",
            "scope": scope,
            "assertion": user_token,
        }

        logger.info(f"Initiating OBO token exchange using client secret for scope: {scope}")
        start_time = datetime.now(timezone.utc)

        try:
            async with self._get_session().post(config.token_endpoint, data=data) as resp:
                latency_ms = _elapsed_ms(start_time)
                try:
                    body = await resp.json(content_type=None)
                except ValueError as e:
                    logger.error(
                        f"OBO response was not valid JSON ({resp.status}, latency: {latency_ms:.0f}ms): {e}"
                    )
                    raise TokenExchangeError(
                        f"OBO response was not valid JSON (status {resp.status})"
                    ) from e
                if not isinstance(body, dict):
                    body = {}

                if resp.status == 200:
                    access_token = body.get("access_token")
                    if not access_token:
                        raise TokenExchangeError("OBO response missing access_token")

                    logger.info(
                        f"OBO token exchange successful using client secret (latency: {latency_ms:.0f}ms)"
                    )
                    return access_token

                error = body.get("error", "unknown")
                error_desc = body.get("error_description", "No description")

                if _is_consent_error(error_desc):
                    logger.error(
                        f"OBO exchange failed ({resp.status}): consent missing for downstream scopes {config.downstream_scopes}. "
                        f"Error: {error} - {error_desc}"
                    )
                    raise TokenExchangeError(
                        "OBO exchange failed: User consent required. Grant the app registration "
                        f"delegated permissions for {scope}, then re-authenticate."
                    )

                if resp.status == 429:
                    logger.error(
                        f"OBO exchange rate limited (429, latency: {latency_ms:.0f}ms): {error_desc}"
                    )
                else:
                    logger.error(
                        f"OBO exchange failed ({resp.status}, latency: {latency_ms:.0f}ms): {error} - {error_desc}"
                    )

                raise TokenExchangeError(f"OBO failed: {error}")

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Network error during OBO: {e!r}")
            raise TokenExchangeError(f"OBO network error: {e!r}") from e

    async def _acquire_with_federated_credential(self, user_token: str) -> str:
        config = self._config
        logger.info(
            f"Initiating OBO token exchange using federated credential for scopes: {config.downstream_scopes}"
        )
        start_time = datetime.now(timezone.utc)

        try:
            # ManagedIdentityCredential requires the MI client_id (not principal/object ID)
            async with ManagedIdentityCredential(
                client_id=config.federated_credential_oid
            ) as mi_credential:
                mi_token = await mi_credential.get_token(
                    f"{MI_TOKEN_EXCHANGE_AUDIENCE}/.default"
                )

            cached_mi_token = mi_token.token

            # OnBehalfOfCredential requires a sync callable
            def get_client_assertion() -> str:
                return cached_mi_token

            async with OnBehalfOfCredential(
                tenant_id=config.tenant_id,
                client_id=config.client_id,
                client_assertion_func=get_client_assertion,
                user_assertion=user_token,
                authority=config.authority_host,
            ) as obo_credential:
                access_token = await obo_credential.get_token(*config.downstream_scopes)

            logger.info(
                f"OBO token exchange successful using federated credential (latency: {_elapsed_ms(start_time):.0f}ms)"
            )
            return access_token.token

        except Exception as e:
            logger.error(
                f"OBO exchange with federated credential failed (latency: {_elapsed_ms(start_time):.0f}ms): {e}"
            )
            if _is_consent_error(str(e)):
                raise TokenExchangeError(
                    "OBO exchange failed: User consent required. Grant the app registration "
                    f"delegated permissions for {' '.join(config.downstream_scopes)}, then re-authenticate."
                ) from e
            raise TokenExchangeError(f"OBO failed with federated credential: {e}") from e
