"""Google Sheets MCP server.

Resolves credentials once at startup, then serves the tool catalog over
stdio. Every tool call is routed through the ToolRegistry, so each request
gets exactly one text response and no failure ends the serving loop.
"""

import asyncio
import logging
import sys
from typing import Any

import httpx
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from gsheets_mcp.__version__ import __version__
from gsheets_mcp.api.client import create_http_client
from gsheets_mcp.auth import CredentialError, CredentialResolver, prompt_for_code
from gsheets_mcp.auth.oauth_manager import CodeProvider
from gsheets_mcp.config import Settings
from gsheets_mcp.context import SessionContext
from gsheets_mcp.server.registry import ToolRegistry, render
from gsheets_mcp.server.results import UpstreamError
from gsheets_mcp.server.tools import build_registry

# Configure logging (stderr; stdout carries the MCP transport)
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SERVER_NAME = "gsheets-mcp"


class GoogleSheetsServer:
    """MCP server exposing Google Sheets and Drive tools.

    Attributes:
        server: MCP Server instance.
        settings: Process configuration.
        registry: Tool catalog and dispatcher.
        context: Session context, available once ``initialize`` has run.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        registry: ToolRegistry | None = None,
    ) -> None:
        """Initialize the Google Sheets MCP server."""
        self.settings = settings or Settings.from_env()
        self.server = Server(SERVER_NAME, version=__version__)
        self.registry = registry or build_registry()
        self.context: SessionContext | None = None
        self._http_client: httpx.AsyncClient | None = None
        # Requests run one at a time, in arrival order
        self._dispatch_lock = asyncio.Lock()
        self._setup_handlers()

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._http_client is None:
            self._http_client = create_http_client()
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and release resources."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def initialize(self, code_provider: CodeProvider = prompt_for_code) -> SessionContext:
        """Resolve credentials and build the session context (once).

        Raises:
            CredentialError: If no credential source could be used.
        """
        if self.context is None:
            resolver = CredentialResolver(
                self.settings, self._get_http_client(), code_provider=code_provider
            )
            self.context = await resolver.resolve()
        return self.context

    async def handle_call(self, name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        """Dispatch a tool call against the session context."""
        if self.context is None:
            return render(UpstreamError("Server is not authenticated yet"))

        async with self._dispatch_lock:
            return await self.registry.dispatch(name, arguments, self.context)

    def _setup_handlers(self) -> None:
        """Register MCP tool handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            """Return list of available tools."""
            return self.registry.tools()

        # Arguments are validated by the registry so errors share one envelope
        @self.server.call_tool(validate_input=False)
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            """Handle tool calls."""
            return await self.handle_call(name, arguments)

    async def run(self) -> None:
        """Authenticate, then run the MCP server using stdio transport."""
        try:
            await self.initialize()
            logger.info(f"Serving {len(self.registry.names())} tools over stdio")
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            await self.close()


def main(settings: Settings | None = None) -> None:
    """Entry point for the Google Sheets MCP server.

    Exits with status 1 if no credentials can be resolved.
    """
    settings = settings or Settings.from_env()
    logging.getLogger().setLevel(getattr(logging, settings.log_level, logging.INFO))

    server = GoogleSheetsServer(settings)
    try:
        asyncio.run(server.run())
    except CredentialError as e:
        logger.error(f"Failed to initialize context: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
