"""Tool registry and dispatcher.

Maps tool names to their argument model and handler, validates incoming
arguments and converts every outcome, including failures, into MCP text
content so that a failed call never escapes the serving loop.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx
from mcp.types import TextContent, Tool
from pydantic import BaseModel, ValidationError

from gsheets_mcp.api.client import describe_http_error
from gsheets_mcp.context import SessionContext
from gsheets_mcp.server.results import (
    BatchOutcome,
    DispatchResult,
    InvalidArguments,
    NotFound,
    Success,
    ToolResult,
    UnknownTool,
    UpstreamError,
)

logger = logging.getLogger(__name__)

Handler = Callable[[Any, SessionContext], Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolDescriptor:
    """A named tool: its description, argument model and handler."""

    name: str
    description: str
    arguments_model: type[BaseModel]
    handler: Handler

    def to_tool(self) -> Tool:
        """Build the MCP Tool definition advertised to clients."""
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.arguments_model.model_json_schema(by_alias=True),
        )


def _text(payload: Any) -> list[TextContent]:
    if isinstance(payload, (str, int, float, bool)):
        text = str(payload)
    else:
        text = json.dumps(payload, indent=2, default=str)
    return [TextContent(type="text", text=text)]


def render(result: DispatchResult) -> list[TextContent]:
    """Convert a result variant into the text content returned to the client.

    Args:
        result: Outcome of a dispatched call.

    Returns:
        A single-element list of text content.
    """
    if isinstance(result, Success):
        return _text(result.value)
    if isinstance(result, NotFound):
        return _text({"status": "not_found", "message": result.message})
    if isinstance(result, BatchOutcome):
        return _text(
            {
                "status": "partial" if result.failures else "ok",
                "successes": result.successes,
                "failures": result.failures,
            }
        )
    if isinstance(result, InvalidArguments):
        return _text({"status": "error", "error": result.message, "fields": result.fields})
    if isinstance(result, UnknownTool):
        return _text(
            {
                "status": "error",
                "error": f"Unknown tool: {result.name}",
                "available_tools": result.available,
            }
        )
    if isinstance(result, UpstreamError):
        payload: dict[str, Any] = {"status": "error", "error": result.message}
        if result.status_code is not None:
            payload["status_code"] = result.status_code
        return _text(payload)
    raise TypeError(f"Unhandled result type: {type(result).__name__}")


def _invalid_arguments(error: ValidationError) -> InvalidArguments:
    fields = []
    problems = []
    for detail in error.errors():
        loc = ".".join(str(part) for part in detail["loc"]) or "arguments"
        fields.append(loc)
        problems.append(f"{loc}: {detail['msg']}")
    return InvalidArguments(message="Invalid arguments: " + "; ".join(problems), fields=fields)


class ToolRegistry:
    """Registry of tools keyed by unique name.

    Tools are registered during startup, before the transport starts
    accepting requests, and are immutable afterwards.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}

    def register(self, descriptor: ToolDescriptor) -> None:
        """Register a tool.

        Raises:
            ValueError: If a tool with the same name is already registered.
        """
        if descriptor.name in self._tools:
            raise ValueError(f"Tool already registered: {descriptor.name}")
        self._tools[descriptor.name] = descriptor

    def get(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        """Tool names in registration order."""
        return list(self._tools)

    def tools(self) -> list[Tool]:
        """MCP Tool definitions in registration order."""
        return [descriptor.to_tool() for descriptor in self._tools.values()]

    async def execute(
        self, name: str, arguments: dict[str, Any] | None, context: SessionContext
    ) -> DispatchResult:
        """Validate arguments and run the named tool's handler.

        Never raises: unknown tools, invalid arguments and handler exceptions
        come back as result variants.
        """
        descriptor = self._tools.get(name)
        if descriptor is None:
            return UnknownTool(name=name, available=list(self._tools))

        try:
            parsed = descriptor.arguments_model.model_validate(arguments or {})
        except ValidationError as e:
            return _invalid_arguments(e)

        try:
            return await descriptor.handler(parsed, context)
        except httpx.HTTPStatusError as e:
            logger.exception(f"Google API error calling tool {name}")
            return UpstreamError(
                message=describe_http_error(e), status_code=e.response.status_code
            )
        except Exception as e:
            logger.exception(f"Error calling tool {name}")
            return UpstreamError(message=str(e) or type(e).__name__)

    async def dispatch(
        self, name: str, arguments: dict[str, Any] | None, context: SessionContext
    ) -> list[TextContent]:
        """Run a tool and wrap its outcome in text content."""
        result = await self.execute(name, arguments, context)
        return render(result)
