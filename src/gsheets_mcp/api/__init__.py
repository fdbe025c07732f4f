"""Authenticated REST clients for Google Sheets and Drive."""

from gsheets_mcp.api.client import (
    DRIVE_API_BASE,
    SHEETS_API_BASE,
    SPREADSHEET_MIME_TYPE,
    DriveClient,
    GoogleApiClient,
    SheetsClient,
    a1_range,
    create_http_client,
    describe_http_error,
)

__all__ = [
    "DRIVE_API_BASE",
    "SHEETS_API_BASE",
    "SPREADSHEET_MIME_TYPE",
    "DriveClient",
    "GoogleApiClient",
    "SheetsClient",
    "a1_range",
    "create_http_client",
    "describe_http_error",
]
