"""Async REST clients for the Google Sheets v4 and Drive v3 APIs.

Both clients share one httpx.AsyncClient and one google-auth credentials
object. Access tokens are refreshed on demand; when the credentials are
OAuth user credentials the refreshed token is handed to ``on_refresh`` so it
can be written back to disk.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any
from urllib.parse import quote

import httpx
from google.auth.credentials import Credentials
from google.auth.transport.requests import Request

logger = logging.getLogger(__name__)

# Google API base URLs
SHEETS_API_BASE = "https://sheets.googleapis.com/v4"
DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"

SPREADSHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"

# User-entered values are parsed as if typed into the UI (formulas evaluate)
VALUE_INPUT_OPTION = "USER_ENTERED"

RefreshCallback = Callable[[Credentials], None]


def create_http_client() -> httpx.AsyncClient:
    """Create the shared HTTP client with connection pooling."""
    return httpx.AsyncClient(
        http2=True,
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
        timeout=httpx.Timeout(30.0, connect=10.0),
    )


def a1_range(sheet_name: str, cell_range: str | None = None) -> str:
    """Build an A1 notation range scoped to a sheet.

    The sheet name is always quoted so names with spaces or punctuation work.

    Args:
        sheet_name: Title of the sheet.
        cell_range: Cell range such as ``A1:C10``. Whole sheet if omitted.

    Returns:
        Range like ``'Sheet 1'!A1:C10``.
    """
    quoted = "'" + sheet_name.replace("'", "''") + "'"
    if cell_range:
        return f"{quoted}!{cell_range}"
    return quoted


def describe_http_error(error: httpx.HTTPStatusError) -> str:
    """Extract Google's error message from a failed response.

    Args:
        error: Error raised by ``raise_for_status``.

    Returns:
        The API's own message when the body carries one, else httpx's message.
    """
    try:
        body = error.response.json()
    except ValueError:
        return str(error)

    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        message = body["error"].get("message")
        if message:
            return str(message)
    return str(error)


class GoogleApiClient:
    """Base class for authenticated Google REST clients.

    Attributes:
        credentials: google-auth credentials used to mint bearer tokens.
        http_client: Shared httpx.AsyncClient.
    """

    def __init__(
        self,
        credentials: Credentials,
        http_client: httpx.AsyncClient,
        on_refresh: RefreshCallback | None = None,
    ) -> None:
        self.credentials = credentials
        self.http_client = http_client
        self._on_refresh = on_refresh

    async def _get_access_token(self) -> str:
        """Get a valid access token, refreshing if necessary.

        Returns:
            Valid access token string.

        Raises:
            google.auth.exceptions.RefreshError: If the token cannot be refreshed.
        """
        if not self.credentials.valid:
            logger.info("Access token missing or expired, refreshing...")
            # Refresh is a blocking HTTP call
            loop = asyncio.get_event_loop()
            await loop.run_in_executor(None, self.credentials.refresh, Request())
            if self._on_refresh is not None:
                self._on_refresh(self.credentials)

        token: str = self.credentials.token
        return token

    async def _make_request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated HTTP request to a Google API.

        Args:
            method: HTTP method (GET, POST, etc.).
            url: Full URL to request.
            params: Optional query parameters.
            json_data: Optional JSON body data.

        Returns:
            JSON response as a dictionary (empty for bodiless responses).

        Raises:
            httpx.HTTPStatusError: If the request fails.
        """
        access_token = await self._get_access_token()

        response = await self.http_client.request(
            method=method,
            url=url,
            params=params,
            json=json_data,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
        )
        response.raise_for_status()
        if not response.content:
            return {}
        result: dict[str, Any] = response.json()
        return result


class SheetsClient(GoogleApiClient):
    """Client for the Google Sheets v4 API."""

    async def get_spreadsheet(
        self, spreadsheet_id: str, fields: str | None = None
    ) -> dict[str, Any]:
        """Fetch spreadsheet metadata (no cell data)."""
        url = f"{SHEETS_API_BASE}/spreadsheets/{spreadsheet_id}"
        params = {"fields": fields} if fields else None
        return await self._make_request("GET", url, params=params)

    async def create_spreadsheet(self, title: str) -> dict[str, Any]:
        """Create a spreadsheet with the given title."""
        url = f"{SHEETS_API_BASE}/spreadsheets"
        params = {"fields": "spreadsheetId,properties,sheets,spreadsheetUrl"}
        body = {"properties": {"title": title}}
        return await self._make_request("POST", url, params=params, json_data=body)

    async def batch_update(
        self, spreadsheet_id: str, requests: list[dict[str, Any]]
    ) -> dict[str, Any]:
        """Apply structural updates (add/rename sheets, insert dimensions...)."""
        url = f"{SHEETS_API_BASE}/spreadsheets/{spreadsheet_id}:batchUpdate"
        return await self._make_request("POST", url, json_data={"requests": requests})

    async def get_values(self, spreadsheet_id: str, range_notation: str) -> dict[str, Any]:
        """Read the values of a range."""
        url = f"{SHEETS_API_BASE}/spreadsheets/{spreadsheet_id}/values/{quote(range_notation, safe='')}"
        return await self._make_request("GET", url)

    async def update_values(
        self, spreadsheet_id: str, range_notation: str, values: list[list[Any]]
    ) -> dict[str, Any]:
        """Write a grid of values into a range."""
        url = f"{SHEETS_API_BASE}/spreadsheets/{spreadsheet_id}/values/{quote(range_notation, safe='')}"
        params = {"valueInputOption": VALUE_INPUT_OPTION}
        body = {"range": range_notation, "values": values}
        return await self._make_request("PUT", url, params=params, json_data=body)

    async def batch_update_values(
        self, spreadsheet_id: str, data: list[dict[str, Any]]
    ) -> dict[str, Any]:
        """Write several ranges in a single request.

        Args:
            spreadsheet_id: Target spreadsheet.
            data: List of ``{"range": ..., "values": [[...]]}`` entries.
        """
        url = f"{SHEETS_API_BASE}/spreadsheets/{spreadsheet_id}/values:batchUpdate"
        body = {"valueInputOption": VALUE_INPUT_OPTION, "data": data}
        return await self._make_request("POST", url, json_data=body)

    async def copy_sheet_to(
        self, spreadsheet_id: str, sheet_id: int, destination_spreadsheet_id: str
    ) -> dict[str, Any]:
        """Copy one sheet into another spreadsheet; returns the new sheet's properties."""
        url = f"{SHEETS_API_BASE}/spreadsheets/{spreadsheet_id}/sheets/{sheet_id}:copyTo"
        body = {"destinationSpreadsheetId": destination_spreadsheet_id}
        return await self._make_request("POST", url, json_data=body)


class DriveClient(GoogleApiClient):
    """Client for the subset of the Google Drive v3 API the tools use."""

    async def list_files(
        self,
        query: str | None = None,
        page_size: int | None = None,
        order_by: str | None = None,
        fields: str = "files(id, name)",
        page_token: str | None = None,
    ) -> dict[str, Any]:
        """List one page of files visible to the authenticated identity.

        Include ``nextPageToken`` in ``fields`` to be able to request the next page.
        """
        url = f"{DRIVE_API_BASE}/files"
        params: dict[str, Any] = {"spaces": "drive", "fields": fields}
        if query:
            params["q"] = query
        if page_size is not None:
            params["pageSize"] = page_size
        if order_by:
            params["orderBy"] = order_by
        if page_token:
            params["pageToken"] = page_token
        return await self._make_request("GET", url, params=params)

    async def get_file(self, file_id: str, fields: str = "id, name, parents") -> dict[str, Any]:
        """Fetch file metadata."""
        url = f"{DRIVE_API_BASE}/files/{file_id}"
        return await self._make_request("GET", url, params={"fields": fields})

    async def move_file(
        self, file_id: str, add_parents: str, remove_parents: str = ""
    ) -> dict[str, Any]:
        """Replace a file's parents."""
        url = f"{DRIVE_API_BASE}/files/{file_id}"
        params = {
            "addParents": add_parents,
            "removeParents": remove_parents,
            "fields": "id, parents",
        }
        return await self._make_request("PATCH", url, params=params, json_data={})

    async def create_permission(
        self,
        file_id: str,
        email_address: str,
        role: str,
        send_notification_email: bool = True,
    ) -> dict[str, Any]:
        """Grant a user a role on a file."""
        url = f"{DRIVE_API_BASE}/files/{file_id}/permissions"
        params = {
            "sendNotificationEmail": "true" if send_notification_email else "false",
            "fields": "id",
        }
        permission = {"type": "user", "role": role, "emailAddress": email_address}
        return await self._make_request("POST", url, params=params, json_data=permission)
