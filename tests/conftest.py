"""Shared pytest fixtures for gsheets-mcp tests.

This module provides reusable fixtures for token storage, OAuth client
descriptors, mocked Google API clients and the session context.
"""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from gsheets_mcp.api.client import DriveClient, SheetsClient
from gsheets_mcp.auth.models import OAuthClientConfig, OAuthToken, TokenMetadata
from gsheets_mcp.context import SessionContext

# =============================================================================
# Token Fixtures
# =============================================================================


@pytest.fixture
def valid_token() -> OAuthToken:
    """Create a valid, non-expired OAuth token."""
    return OAuthToken(
        access_token="test_access_token_abc123",
        refresh_token="test_refresh_token_xyz789",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        scopes=[
            "https://www.googleapis.com/auth/spreadsheets",
            "https://www.googleapis.com/auth/drive",
            "https://www.googleapis.com/auth/drive.file",
        ],
        token_type="Bearer",
    )


@pytest.fixture
def expired_token() -> OAuthToken:
    """Create an expired OAuth token."""
    return OAuthToken(
        access_token="expired_access_token",
        refresh_token="test_refresh_token",
        expires_at=datetime.now(timezone.utc) - timedelta(hours=1),
        scopes=["https://www.googleapis.com/auth/spreadsheets"],
        token_type="Bearer",
    )


@pytest.fixture
def token_metadata() -> TokenMetadata:
    """Create token metadata for testing."""
    return TokenMetadata(
        service_name="gsheets-mcp",
        provider="google",
        created_at=datetime.now(timezone.utc) - timedelta(days=1),
    )


# =============================================================================
# Storage and OAuth Fixtures
# =============================================================================


@pytest.fixture
def token_path(tmp_path: Path) -> Path:
    """Path for a temporary token file."""
    return tmp_path / "token.json"


@pytest.fixture
def token_storage(token_path: Path):
    """Create a TokenStorage instance backed by a temporary file."""
    from gsheets_mcp.auth.token_storage import TokenStorage

    return TokenStorage(token_path)


@pytest.fixture
def client_config() -> OAuthClientConfig:
    """OAuth client descriptor for an installed app."""
    return OAuthClientConfig(
        client_type="installed",
        client_id="test-client-id.apps.googleusercontent.com",
        client_secret="test-client-secret",  # pragma: allowlist secret
        redirect_uris=["http://localhost"],
    )


@pytest.fixture
def credentials_file(tmp_path: Path) -> Path:
    """Write an installed-app OAuth client file and return its path."""
    path = tmp_path / "credentials.json"
    path.write_text(
        json.dumps(
            {
                "installed": {
                    "client_id": "test-client-id.apps.googleusercontent.com",
                    "client_secret": "test-client-secret",  # pragma: allowlist secret
                    "redirect_uris": ["http://localhost"],
                    "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                    "token_uri": "https://oauth2.googleapis.com/token",
                    "project_id": "test-project",
                }
            }
        )
    )
    return path


@pytest.fixture
def oauth_manager(client_config: OAuthClientConfig, token_storage):
    """Create an OAuthManager with temporary storage."""
    from gsheets_mcp.auth.oauth_manager import OAuthManager

    return OAuthManager(client_config, token_storage)


@pytest.fixture
def mock_google_credentials() -> MagicMock:
    """Create a mock Google OAuth2 Credentials object."""
    mock_creds = MagicMock()
    mock_creds.token = "mock_access_token"
    mock_creds.refresh_token = "mock_refresh_token"
    mock_creds.expiry = datetime.now(timezone.utc) + timedelta(hours=1)
    mock_creds.expired = False
    mock_creds.valid = True
    mock_creds.scopes = ["https://www.googleapis.com/auth/spreadsheets"]
    return mock_creds


# =============================================================================
# Session Context Fixtures
# =============================================================================


@pytest.fixture
def mock_sheets() -> AsyncMock:
    """Mock Sheets client; every API method is an AsyncMock."""
    return AsyncMock(spec=SheetsClient)


@pytest.fixture
def mock_drive() -> AsyncMock:
    """Mock Drive client; every API method is an AsyncMock."""
    return AsyncMock(spec=DriveClient)


@pytest.fixture
def context(mock_sheets: AsyncMock, mock_drive: AsyncMock) -> SessionContext:
    """Session context without folder or grantee configured."""
    return SessionContext(sheets=mock_sheets, drive=mock_drive)


@pytest.fixture
def spreadsheet_meta() -> dict:
    """Spreadsheet metadata with two sheets."""
    return {
        "sheets": [
            {
                "properties": {
                    "sheetId": 0,
                    "title": "Sheet1",
                    "index": 0,
                    "gridProperties": {"rowCount": 1000, "columnCount": 26},
                }
            },
            {
                "properties": {
                    "sheetId": 1234,
                    "title": "Budget 2025",
                    "index": 1,
                    "gridProperties": {"rowCount": 50, "columnCount": 8},
                }
            },
        ]
    }


# =============================================================================
# CLI Test Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
