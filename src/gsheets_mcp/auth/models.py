"""Data models for OAuth client descriptors and persisted tokens."""

import json
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"  # nosec B105


class ConfigurationError(RuntimeError):
    """Raised when a credential file is present but unusable."""


class TokenStatus(str, Enum):
    """State of the persisted token file."""

    VALID = "valid"
    EXPIRED = "expired"
    MISSING = "missing"
    INVALID = "invalid"


class OAuthToken(BaseModel):
    """OAuth2 token issued for the installed or web client."""

    access_token: str
    refresh_token: str | None = None
    expires_at: datetime
    scopes: list[str] = Field(default_factory=list)
    token_type: str = "Bearer"  # nosec B105

    def is_expired(self, buffer_seconds: int = 60) -> bool:
        """Check whether the access token is expired or about to expire.

        Args:
            buffer_seconds: Treat tokens expiring within this window as expired.

        Returns:
            True if the token should be refreshed before use.
        """
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) + timedelta(seconds=buffer_seconds) >= expires_at


class TokenMetadata(BaseModel):
    """Bookkeeping stored alongside a token."""

    service_name: str
    provider: str = "google"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_refreshed: datetime | None = None


class StoredToken(BaseModel):
    """Versioned envelope written to the token file."""

    version: int = 1
    metadata: TokenMetadata
    token: OAuthToken


class OAuthClientConfig(BaseModel):
    """OAuth client descriptor as downloaded from the Google Cloud console."""

    client_type: str = "installed"
    client_id: str
    client_secret: str
    redirect_uris: list[str] = Field(default_factory=lambda: ["urn:ietf:wg:oauth:2.0:oob"])
    auth_uri: str = GOOGLE_AUTH_URI
    token_uri: str = GOOGLE_TOKEN_URI

    @property
    def redirect_uri(self) -> str:
        """First configured redirect URI."""
        return self.redirect_uris[0]

    @classmethod
    def from_file(cls, path: Path) -> "OAuthClientConfig":
        """Load a client descriptor, accepting the ``installed`` or ``web`` variant.

        Args:
            path: Path to the descriptor JSON file.

        Returns:
            Parsed client configuration.

        Raises:
            ConfigurationError: If the file is unreadable or has neither variant.
        """
        try:
            with open(path) as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read OAuth client file {path}: {e}") from e

        for client_type in ("installed", "web"):
            if isinstance(raw, dict) and client_type in raw:
                try:
                    return cls(client_type=client_type, **raw[client_type])
                except (TypeError, ValueError) as e:
                    raise ConfigurationError(f"Malformed OAuth client file {path}: {e}") from e

        raise ConfigurationError(
            "Invalid credentials format - missing installed or web configuration"
        )

    def to_client_config(self) -> dict[str, dict]:
        """Render in the shape google-auth-oauthlib expects."""
        return {
            self.client_type: {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uris": self.redirect_uris,
                "auth_uri": self.auth_uri,
                "token_uri": self.token_uri,
            }
        }
