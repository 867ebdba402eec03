"""
Test configuration for Hello MCP Server tests.

Provides shared fixtures for:
- RSA key pairs for signing test JWTs
- Test token generation
- Mock identity provider / Graph API responses and aiohttp sessions
- Mock FastMCP contexts and servers
"""

import os
import sys
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock, Mock

import jwt
import pytest
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

# =============================================================================
# Pre-collection environment setup (runs BEFORE test modules are imported)
# =============================================================================


def pytest_configure(config):
    """Set required environment variables before test collection."""
    # Disable the OBO exchange by default for tests
    os.environ.setdefault("ENABLE_OBO", "false")


# Add the server sources to path
hello_mcp_server_path = Path(__file__).parent.parent
sys.path.insert(0, str(hello_mcp_server_path))


# =============================================================================
# Test Constants
# =============================================================================

TEST_TENANT_ID = "test-tenant-12345"
TEST_CLIENT_ID = "test-client-67890"
TEST_CLIENT_SECRET = "test-secret-abcdef"
TEST_KID = "test-key-id-001"
TEST_GRAPH_TOKEN = "mock-graph-access-token-xyz"


# =============================================================================
# Auto-use fixture to prevent .env file loading
# =============================================================================


@pytest.fixture(autouse=True)
def prevent_dotenv_loading(monkeypatch, tmp_path):
    """Prevent Pydantic settings from reading a developer .env file."""
    original_cwd = os.getcwd()

    empty_env = tmp_path / ".env"
    empty_env.write_text("")

    os.chdir(tmp_path)

    yield

    os.chdir(original_cwd)


@pytest.fixture(autouse=True)
def reset_global_config():
    """Clear the config singleton between tests."""
    from config.settings import reset_config

    reset_config()
    yield
    reset_config()


# =============================================================================
# RSA Key Pair Fixtures (for JWT signing)
# =============================================================================


@pytest.fixture(scope="session")
def rsa_key_pair() -> Tuple[rsa.RSAPrivateKey, rsa.RSAPublicKey]:
    """Generate RSA key pair for test token signing."""
    private_key = rsa.generate_private_key(
        public_exponent=65537, key_size=2048, backend=default_backend()
    )
    return private_key, private_key.public_key()


@pytest.fixture(scope="session")
def private_key_pem(rsa_key_pair) -> bytes:
    private_key, _ = rsa_key_pair
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


# =============================================================================
# Token Generation Fixtures
# =============================================================================


@pytest.fixture
def create_test_token(private_key_pem):
    """Factory fixture to create signed test JWTs.

    Usage:
        token = create_test_token({"sub": "user123", "name": "Ada"})
    """

    def _create_token(
        claims: Dict[str, Any],
        kid: str = TEST_KID,
        expires_in: int = 3600,
    ) -> str:
        now = int(time.time())
        default_claims = {
            "iss": f"https://login.microsoftonline.com/{TEST_TENANT_ID}/v2.0",
            "aud": TEST_CLIENT_ID,
            "iat": now,
            "nbf": now,
            "exp": now + expires_in,
            "sub": "test-user-subject",
        }
        default_claims.update(claims)

        return jwt.encode(
            default_claims, private_key_pem, algorithm="RS256", headers={"kid": kid}
        )

    return _create_token


@pytest.fixture
def valid_test_token(create_test_token) -> str:
    """Create a delegated user token with display claims."""
    return create_test_token(
        {
            "name": "Ada Lovelace",
            "preferred_username": "ada@example.com",
            "oid": "test-oid-67890",
            "tid": TEST_TENANT_ID,
            "scp": "User.Read profile",
        }
    )


@pytest.fixture
def token_with_roles(create_test_token) -> str:
    """Create a token with 'roles' claim instead of 'scp'."""
    return create_test_token({"sub": "app-user", "roles": ["Admin", "Reader"]})


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def obo_config():
    """Configuration with client secret OBO credentials."""
    from config.settings import HelloServerConfig

    return HelloServerConfig(
        enable_obo=True,
        tenant_id=TEST_TENANT_ID,
        client_id=TEST_CLIENT_ID,
        client_secret=TEST_CLIENT_SECRET,
    )


def _clear_obo_env(monkeypatch):
    for var in [
        "TENANT_ID",
        "CLIENT_ID",
        "CLIENT_SECRET",
        "ENABLE_OBO",
        "FEDERATED_CREDENTIAL_OID",
        "DOWNSTREAM_SCOPES",
        "AUTHORITY_HOST",
        "GRAPH_PROFILE_URL",
    ]:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def mock_env_full_obo(monkeypatch):
    """Set all environment variables required for the OBO exchange."""
    _clear_obo_env(monkeypatch)
    monkeypatch.setenv("ENABLE_OBO", "true")
    monkeypatch.setenv("TENANT_ID", TEST_TENANT_ID)
    monkeypatch.setenv("CLIENT_ID", TEST_CLIENT_ID)
    monkeypatch.setenv("CLIENT_SECRET", TEST_CLIENT_SECRET)


@pytest.fixture
def mock_env_obo_disabled(monkeypatch):
    _clear_obo_env(monkeypatch)
    monkeypatch.setenv("ENABLE_OBO", "false")


@pytest.fixture
def mock_env_missing_secret(monkeypatch):
    """OBO enabled with tenant and client but no credential."""
    _clear_obo_env(monkeypatch)
    monkeypatch.setenv("ENABLE_OBO", "true")
    monkeypatch.setenv("TENANT_ID", TEST_TENANT_ID)
    monkeypatch.setenv("CLIENT_ID", TEST_CLIENT_ID)


# =============================================================================
# Mock HTTP Response / Session Fixtures
# =============================================================================


def create_mock_response(
    status: int = 200, json_body: Any = None, text_body: str = ""
) -> AsyncMock:
    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.json = AsyncMock(return_value=json_body)
    mock_response.text = AsyncMock(return_value=text_body)
    return mock_response


def create_mock_session(
    post_response: Optional[AsyncMock] = None,
    get_response: Optional[AsyncMock] = None,
    captured: Optional[Dict[str, Any]] = None,
) -> MagicMock:
    """Create a mock aiohttp.ClientSession whose post/get are async context managers.

    When ``captured`` is given, the URL and keyword arguments of each call are
    recorded under ``captured["post"]`` / ``captured["get"]``.
    """

    @asynccontextmanager
    async def mock_post(url, **kwargs):
        if captured is not None:
            captured["post"] = {"url": url, **kwargs}
        yield post_response

    @asynccontextmanager
    async def mock_get(url, **kwargs):
        if captured is not None:
            captured["get"] = {"url": url, **kwargs}
        yield get_response

    mock_session = MagicMock()
    mock_session.post = mock_post
    mock_session.get = mock_get
    return mock_session


@pytest.fixture
def mock_obo_success_response():
    return create_mock_response(
        200,
        {
            "token_type": "Bearer",
            "access_token": TEST_GRAPH_TOKEN,
            "expires_in": 3600,
            "scope": "User.Read",
        },
    )


@pytest.fixture
def mock_obo_error_response():
    return create_mock_response(
        400,
        {
            "error": "invalid_grant",
            "error_description": "AADSTS50013: Assertion is not within its valid time range.",
        },
    )


@pytest.fixture
def mock_graph_me_response():
    return create_mock_response(
        200,
        {
            "@odata.context": "https://graph.microsoft.com/v1.0/$metadata#users(displayName)/$entity",
            "displayName": "Grace Hopper",
        },
    )


# =============================================================================
# Mock Context Fixtures
# =============================================================================


def create_mock_context(headers: Optional[Dict[str, str]] = None):
    """Create a mock FastMCP Context whose HTTP request carries ``headers``."""
    ctx = Mock()
    ctx.request_context = Mock()
    ctx.request_context.request = Mock()
    ctx.request_context.request.headers = headers or {}
    return ctx


# =============================================================================
# MCP Server Fixtures
# =============================================================================


@pytest.fixture
def mock_mcp_server():
    """Mock MCP server recording registered tools."""

    class MockMCP:
        def __init__(self):
            self.tools = []

        def tool(self, name=None, description=None, tags=None):
            def decorator(func):
                self.tools.append(
                    {
                        "func": func,
                        "name": name,
                        "description": description,
                        "tags": tags or [],
                    }
                )
                return func

            return decorator

    return MockMCP()
