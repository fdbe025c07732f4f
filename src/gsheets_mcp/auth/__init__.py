"""Authentication for gsheets-mcp.

Resolves a service account key or an OAuth user token into authorized
Sheets/Drive clients.

Quick Start:
    ```python
    from gsheets_mcp.auth import CredentialResolver
    from gsheets_mcp.api import create_http_client
    from gsheets_mcp.config import Settings

    resolver = CredentialResolver(Settings.from_env(), create_http_client())
    context = await resolver.resolve()
    ```
"""

from gsheets_mcp.auth.credential_resolver import CredentialError, CredentialResolver
from gsheets_mcp.auth.models import (
    ConfigurationError,
    OAuthClientConfig,
    OAuthToken,
    StoredToken,
    TokenMetadata,
    TokenStatus,
)
from gsheets_mcp.auth.oauth_manager import SHEETS_SCOPES, OAuthManager, prompt_for_code
from gsheets_mcp.auth.token_storage import TokenStorage

__all__ = [
    "CredentialError",
    "CredentialResolver",
    "ConfigurationError",
    "OAuthClientConfig",
    "OAuthManager",
    "OAuthToken",
    "StoredToken",
    "TokenMetadata",
    "TokenStatus",
    "TokenStorage",
    "SHEETS_SCOPES",
    "prompt_for_code",
]
