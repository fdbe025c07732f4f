"""Credential resolution for the server process.

Picks an authentication mode and produces the SessionContext, in strict
priority order:

1. Service account key from CREDENTIALS_CONFIG (base64-encoded JSON).
   Any failure here is logged and resolution falls through.
2. OAuth client descriptor on disk:
   a. a persisted token that passes a one-file Drive listing probe;
   b. otherwise an interactive consent exchange whose token is persisted.
3. Neither: CredentialError, which the entry point treats as fatal.
"""

import asyncio
import base64
import binascii
import json
import logging

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from gsheets_mcp.auth.models import ConfigurationError, OAuthClientConfig
from gsheets_mcp.auth.oauth_manager import (
    SHEETS_SCOPES,
    CodeProvider,
    OAuthManager,
    prompt_for_code,
)
from gsheets_mcp.auth.token_storage import TokenStorage
from gsheets_mcp.config import Settings
from gsheets_mcp.context import SessionContext, build_context

logger = logging.getLogger(__name__)


class CredentialError(RuntimeError):
    """No credential source produced an authorized session."""


def decode_service_account_key(blob: str) -> dict:
    """Decode a base64-encoded service account JSON key.

    Whitespace is ignored, so line-wrapped output of the ``base64`` tool works.

    Raises:
        ValueError: If the blob is not base64 or not a JSON object with
            ``client_email`` and ``private_key``.
    """
    try:
        decoded = base64.b64decode("".join(blob.split()), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ValueError(f"CREDENTIALS_CONFIG is not valid base64: {e}") from e

    key = json.loads(decoded)
    if not isinstance(key, dict) or not key.get("client_email") or not key.get("private_key"):
        raise ValueError("CREDENTIALS_CONFIG does not contain a service account key")
    return key


class CredentialResolver:
    """Builds the SessionContext from the first usable credential source.

    Attributes:
        settings: Process configuration.
        http_client: HTTP client shared by the resulting API clients.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        code_provider: CodeProvider = prompt_for_code,
    ) -> None:
        self.settings = settings
        self.http_client = http_client
        self._code_provider = code_provider

    async def resolve(self) -> SessionContext:
        """Resolve credentials and build the session context.

        Returns:
            Authorized SessionContext.

        Raises:
            CredentialError: If no credential source could be used.
        """
        if self.settings.credentials_config:
            try:
                context = await self._from_service_account(self.settings.credentials_config)
                logger.info("Authenticated with service account from environment")
                return context
            except Exception as e:
                # Never fatal on its own; fall through to OAuth
                logger.error(f"Error with credentials from environment: {e}")

        if self.settings.credentials_path.exists():
            logger.info(f"Using OAuth credentials from {self.settings.credentials_path}")
            try:
                return await self._from_oauth()
            except CredentialError:
                raise
            except Exception as e:
                raise CredentialError(f"Authentication failed: OAuth process error: {e}") from e

        raise CredentialError("No valid authentication method available")

    def _build(self, credentials, on_refresh=None) -> SessionContext:
        return build_context(
            credentials,
            self.http_client,
            folder_id=self.settings.drive_folder_id,
            grantee_email=self.settings.grantee_email,
            on_refresh=on_refresh,
        )

    async def _from_service_account(self, blob: str) -> SessionContext:
        key = decode_service_account_key(blob)
        credentials = service_account.Credentials.from_service_account_info(
            key, scopes=SHEETS_SCOPES
        )

        # Explicit handshake: mint a token now so a bad key fails here
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, credentials.refresh, Request())

        return self._build(credentials)

    async def _from_oauth(self) -> SessionContext:
        try:
            client_config = OAuthClientConfig.from_file(self.settings.credentials_path)
        except ConfigurationError as e:
            raise CredentialError(str(e)) from e

        manager = OAuthManager(client_config, TokenStorage(self.settings.token_path))

        if manager.storage.exists():
            context = await self._from_saved_token(manager)
            if context is not None:
                return context

        credentials = await manager.authenticate(self._code_provider)
        return self._build(credentials, on_refresh=manager.save_credentials)

    async def _from_saved_token(self, manager: OAuthManager) -> SessionContext | None:
        """Probe the persisted token with a cheap read-only call.

        Returns:
            SessionContext if the token works, None if a new one is needed.
        """
        logger.info("Using saved token")
        credentials = manager.load_credentials()
        if credentials is None:
            logger.warning(f"Saved token at {manager.token_path} is unreadable")
            return None

        context = self._build(credentials, on_refresh=manager.save_credentials)
        try:
            await context.drive.list_files(page_size=1)
        except (GoogleAuthError, httpx.HTTPError) as e:
            logger.warning(f"Saved token is invalid, generating new one: {e}")
            return None

        logger.info("OAuth authentication successful with saved token")
        return context
