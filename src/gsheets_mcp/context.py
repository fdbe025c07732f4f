"""Session context shared read-only by every tool handler."""

from dataclasses import dataclass

import httpx
from google.auth.credentials import Credentials

from gsheets_mcp.api.client import DriveClient, RefreshCallback, SheetsClient


@dataclass(frozen=True)
class SessionContext:
    """Authorized API clients plus the configuration handlers need.

    Built once during startup and passed explicitly to each handler.

    Attributes:
        sheets: Sheets v4 client.
        drive: Drive v3 client.
        folder_id: Folder new spreadsheets are moved into, if configured.
        grantee_email: Identity granted writer access by ``create``, if configured.
    """

    sheets: SheetsClient
    drive: DriveClient
    folder_id: str | None = None
    grantee_email: str | None = None


def build_context(
    credentials: Credentials,
    http_client: httpx.AsyncClient,
    folder_id: str | None = None,
    grantee_email: str | None = None,
    on_refresh: RefreshCallback | None = None,
) -> SessionContext:
    """Create a SessionContext whose clients share credentials and HTTP pool."""
    return SessionContext(
        sheets=SheetsClient(credentials, http_client, on_refresh=on_refresh),
        drive=DriveClient(credentials, http_client, on_refresh=on_refresh),
        folder_id=folder_id or None,
        grantee_email=grantee_email or None,
    )
