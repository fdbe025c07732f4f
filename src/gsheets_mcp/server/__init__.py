"""MCP server implementation for Google Sheets.

Provides 13 tools across Sheets and Drive:

Spreadsheet Tools:
- create, listSpreadsheets, spreadsheetInfo, shareSpreadsheet

Sheet Tools:
- listSheets, createSheet, renameSheet, copySheet, addRows, addColumns

Cell Tools:
- sheetData, updateCells, batchUpdate

Transport: Stdio
Authentication: service account key or OAuth 2.0 with token persistence
"""

from gsheets_mcp.server.registry import ToolDescriptor, ToolRegistry
from gsheets_mcp.server.sheets_server import GoogleSheetsServer, main
from gsheets_mcp.server.tools import build_registry


def create_server() -> GoogleSheetsServer:
    """Create and configure a Google Sheets MCP server.

    Returns:
        GoogleSheetsServer: Configured server instance ready to run.

    Example:
        >>> server = create_server()
        >>> asyncio.run(server.run())
    """
    return GoogleSheetsServer()


__all__ = [
    "create_server",
    "build_registry",
    "GoogleSheetsServer",
    "ToolDescriptor",
    "ToolRegistry",
    "main",
]
