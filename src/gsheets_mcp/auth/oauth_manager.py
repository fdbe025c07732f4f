"""OAuth manager for the installed/web client flow.

Generates the consent URL, exchanges the operator-supplied authorization
code for tokens using google-auth-oauthlib, and keeps the token file in sync
with the credentials the server is using.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

import click
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from gsheets_mcp.auth.models import OAuthClientConfig, OAuthToken, TokenMetadata
from gsheets_mcp.auth.token_storage import TokenStorage

logger = logging.getLogger(__name__)

# Scopes required by every tool
SHEETS_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/drive.file",
]

SERVICE_NAME = "gsheets-mcp"

CodeProvider = Callable[[str], str]


def prompt_for_code(auth_url: str) -> str:
    """Show the consent URL to the operator and read back the code.

    Everything goes through stderr so that stdout stays free for the
    MCP transport.

    Args:
        auth_url: Authorization URL the operator must visit.

    Returns:
        The authorization code typed by the operator.
    """
    click.echo("Authorize this app by visiting this URL:", err=True)
    click.echo(auth_url, err=True)
    code: str = click.prompt("Enter the code from that page here", err=True)
    return code.strip()


class OAuthManager:
    """OAuth authentication manager for the Sheets/Drive scopes.

    Attributes:
        client_config: Parsed OAuth client descriptor.
        storage: Token storage used to persist issued and refreshed tokens.

    Example:
        ```python
        manager = OAuthManager(OAuthClientConfig.from_file(path), TokenStorage(token_path))

        credentials = manager.load_credentials()
        if credentials is None:
            credentials = await manager.authenticate(prompt_for_code)
        ```
    """

    def __init__(self, client_config: OAuthClientConfig, storage: TokenStorage) -> None:
        """Initialize OAuth manager.

        Args:
            client_config: OAuth client descriptor.
            storage: Token storage instance.
        """
        self.client_config = client_config
        self.storage = storage
        self._service_name = SERVICE_NAME

    @property
    def token_path(self) -> Path:
        """Path of the persisted token file."""
        return self.storage.token_path

    def _credentials_to_token(self, credentials: Credentials, scopes: list[str]) -> OAuthToken:
        """Convert google-auth Credentials to OAuthToken.

        Args:
            credentials: Google OAuth2 credentials.
            scopes: List of granted scopes.

        Returns:
            OAuthToken with all credential data.
        """
        if credentials.expiry:
            expires_at = credentials.expiry
            # google-auth uses naive UTC datetimes
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
        else:
            # Default to 1 hour expiration
            expires_at = datetime.now(timezone.utc) + timedelta(hours=1)

        return OAuthToken(  # nosec B106 - "Bearer" is OAuth token type, not a password
            access_token=credentials.token,
            refresh_token=credentials.refresh_token,
            expires_at=expires_at,
            scopes=scopes,
            token_type="Bearer",
        )

    def _token_to_credentials(self, token: OAuthToken) -> Credentials:
        """Convert OAuthToken to google-auth Credentials able to refresh themselves.

        Args:
            token: OAuth token to convert.

        Returns:
            Google OAuth2 credentials.
        """
        expiry = token.expires_at
        if expiry.tzinfo is not None:
            expiry = expiry.astimezone(timezone.utc).replace(tzinfo=None)

        return Credentials(
            token=token.access_token,
            refresh_token=token.refresh_token,
            token_uri=self.client_config.token_uri,
            client_id=self.client_config.client_id,
            client_secret=self.client_config.client_secret,
            scopes=token.scopes,
            expiry=expiry,
        )

    def load_credentials(self) -> Credentials | None:
        """Load credentials from the persisted token file.

        Returns:
            Google OAuth2 credentials, or None if no usable token is stored.
        """
        stored = self.storage.retrieve()
        if stored is None:
            return None

        return self._token_to_credentials(stored.token)

    def save_credentials(self, credentials: Credentials) -> None:
        """Persist credentials, overwriting the previous token.

        Called after a code exchange and after every silent refresh.

        Args:
            credentials: Credentials holding the current token.
        """
        scopes = list(credentials.scopes or SHEETS_SCOPES)
        token = self._credentials_to_token(credentials, scopes)

        previous = self.storage.retrieve()
        if previous is not None:
            metadata = previous.metadata
            metadata.last_refreshed = datetime.now(timezone.utc)
        else:
            metadata = TokenMetadata(service_name=self._service_name, provider="google")

        self.storage.store(token, metadata)

    def authorization_url(self, scopes: list[str] | None = None) -> tuple[str, Flow]:
        """Build the consent URL requesting offline access.

        Args:
            scopes: OAuth scopes to request. Uses SHEETS_SCOPES if not specified.

        Returns:
            Tuple of (authorization URL, flow to complete the exchange with).
        """
        flow = Flow.from_client_config(
            self.client_config.to_client_config(),
            scopes=scopes or SHEETS_SCOPES,
            redirect_uri=self.client_config.redirect_uri,
        )

        # offline access + consent so Google issues a refresh token
        auth_url, _ = flow.authorization_url(
            access_type="offline",
            prompt="consent",
        )
        return auth_url, flow

    def exchange_code(self, flow: Flow, code: str) -> Credentials:
        """Exchange an authorization code for tokens (blocking operation).

        Args:
            flow: Flow that produced the authorization URL.
            code: Authorization code supplied by the operator.

        Returns:
            Google OAuth2 credentials.
        """
        flow.fetch_token(code=code)
        credentials: Credentials = flow.credentials
        return credentials

    async def authenticate(
        self,
        code_provider: CodeProvider = prompt_for_code,
        scopes: list[str] | None = None,
    ) -> Credentials:
        """Run the interactive consent flow and persist the resulting token.

        Args:
            code_provider: Callable receiving the authorization URL and returning
                the code the operator obtained from it.
            scopes: OAuth scopes to request. Uses SHEETS_SCOPES if not specified.

        Returns:
            Freshly issued Google OAuth2 credentials.

        Raises:
            ValueError: If no authorization code was supplied.
        """
        auth_url, flow = self.authorization_url(scopes)

        # Both waiting on the operator and the token exchange block
        loop = asyncio.get_event_loop()
        code = await loop.run_in_executor(None, code_provider, auth_url)
        if not code:
            raise ValueError("No authorization code provided")

        credentials = await loop.run_in_executor(None, self.exchange_code, flow, code)
        self.save_credentials(credentials)
        return credentials
