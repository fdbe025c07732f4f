"""Unit tests for ToolRegistry and result rendering.

Tests cover registration, schema advertisement, argument validation and the
guarantee that dispatch turns every failure into a single text response.
"""

import json
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
from pydantic import Field

from gsheets_mcp.context import SessionContext
from gsheets_mcp.server.registry import ToolDescriptor, ToolRegistry, render
from gsheets_mcp.server.results import (
    BatchOutcome,
    InvalidArguments,
    NotFound,
    Success,
    UnknownTool,
    UpstreamError,
)
from gsheets_mcp.server.tools import TOOLS, SpreadsheetArgs, ToolArguments, build_registry


class EchoArgs(ToolArguments):
    spreadsheet_id: str = Field(alias="spreadsheetId")
    count: int = Field(default=1, ge=1)


def make_descriptor(name: str = "echo", handler: Any = None) -> ToolDescriptor:
    async def echo(args: EchoArgs, context: SessionContext) -> Success:
        return Success({"spreadsheet_id": args.spreadsheet_id, "count": args.count})

    return ToolDescriptor(
        name=name,
        description="Echo the arguments back",
        arguments_model=EchoArgs,
        handler=handler or echo,
    )


def payload(content: list) -> Any:
    assert len(content) == 1
    assert content[0].type == "text"
    return json.loads(content[0].text)


@pytest.mark.unit
class TestRegistration:
    """Tests for register() and the advertised catalog."""

    def test_should_register_and_lookup(self) -> None:
        registry = ToolRegistry()
        descriptor = make_descriptor()
        registry.register(descriptor)

        assert registry.get("echo") is descriptor
        assert registry.get("missing") is None
        assert registry.names() == ["echo"]

    def test_should_reject_duplicate_name(self) -> None:
        registry = ToolRegistry()
        registry.register(make_descriptor())

        with pytest.raises(ValueError, match="already registered: echo"):
            registry.register(make_descriptor())

    def test_should_advertise_alias_names_in_schema(self) -> None:
        registry = ToolRegistry()
        registry.register(make_descriptor())

        (tool,) = registry.tools()
        assert tool.name == "echo"
        assert "spreadsheetId" in tool.inputSchema["properties"]
        assert "spreadsheet_id" not in tool.inputSchema["properties"]
        assert tool.inputSchema["required"] == ["spreadsheetId"]

    def test_catalog_should_hold_thirteen_tools_in_order(self) -> None:
        registry = build_registry()

        assert registry.names() == [
            "create",
            "listSheets",
            "renameSheet",
            "createSheet",
            "spreadsheetInfo",
            "listSpreadsheets",
            "shareSpreadsheet",
            "sheetData",
            "updateCells",
            "batchUpdate",
            "addRows",
            "addColumns",
            "copySheet",
        ]
        assert len({d.name for d in TOOLS}) == len(TOOLS)

    def test_catalog_should_have_descriptions_and_object_schemas(self) -> None:
        for tool in build_registry().tools():
            assert tool.description
            assert tool.inputSchema["type"] == "object"


@pytest.mark.unit
class TestExecute:
    """Tests for execute() and dispatch()."""

    @pytest.mark.asyncio
    async def test_should_run_handler_with_validated_arguments(
        self, context: SessionContext
    ) -> None:
        registry = ToolRegistry()
        registry.register(make_descriptor())

        result = await registry.execute("echo", {"spreadsheetId": "abc", "count": 3}, context)

        assert result == Success({"spreadsheet_id": "abc", "count": 3})

    @pytest.mark.asyncio
    async def test_should_report_unknown_tool(self, context: SessionContext) -> None:
        handler = AsyncMock()
        registry = ToolRegistry()
        registry.register(make_descriptor(handler=handler))

        result = await registry.execute("nonexistent", {}, context)

        assert result == UnknownTool(name="nonexistent", available=["echo"])
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_should_name_invalid_fields(self, context: SessionContext) -> None:
        handler = AsyncMock()
        registry = ToolRegistry()
        registry.register(make_descriptor(handler=handler))

        result = await registry.execute("echo", {"count": 0}, context)

        assert isinstance(result, InvalidArguments)
        assert result.message.startswith("Invalid arguments: ")
        assert "spreadsheetId" in result.fields
        assert "count" in result.fields
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_should_treat_missing_arguments_as_empty(
        self, context: SessionContext
    ) -> None:
        registry = ToolRegistry()
        registry.register(make_descriptor())

        result = await registry.execute("echo", None, context)

        assert isinstance(result, InvalidArguments)
        assert result.fields == ["spreadsheetId"]

    @pytest.mark.asyncio
    async def test_should_convert_handler_exception(self, context: SessionContext) -> None:
        handler = AsyncMock(side_effect=RuntimeError("boom"))
        registry = ToolRegistry()
        registry.register(make_descriptor(handler=handler))

        result = await registry.execute("echo", {"spreadsheetId": "abc"}, context)

        assert result == UpstreamError(message="boom")

    @pytest.mark.asyncio
    async def test_should_use_type_name_for_blank_exception(
        self, context: SessionContext
    ) -> None:
        handler = AsyncMock(side_effect=KeyError())
        registry = ToolRegistry()
        registry.register(make_descriptor(handler=handler))

        result = await registry.execute("echo", {"spreadsheetId": "abc"}, context)

        assert isinstance(result, UpstreamError)
        assert result.message

    @pytest.mark.asyncio
    async def test_should_convert_google_api_error(self, context: SessionContext) -> None:
        request = httpx.Request("GET", "https://sheets.googleapis.com/v4/spreadsheets/abc")
        response = httpx.Response(
            404,
            request=request,
            json={"error": {"code": 404, "message": "Requested entity was not found."}},
        )
        handler = AsyncMock(
            side_effect=httpx.HTTPStatusError("404 Not Found", request=request, response=response)
        )
        registry = ToolRegistry()
        registry.register(make_descriptor(handler=handler))

        content = await registry.dispatch("echo", {"spreadsheetId": "abc"}, context)

        assert payload(content) == {
            "status": "error",
            "error": "Requested entity was not found.",
            "status_code": 404,
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "name,arguments",
        [
            ("listSheets", {}),
            ("listSheets", {"spreadsheetId": 42}),
            ("addRows", {"spreadsheetId": "abc", "sheet": "Sheet1", "count": "many"}),
            ("addRows", {"spreadsheetId": "abc", "sheet": "Sheet1", "count": -1}),
            ("batchUpdate", {"spreadsheetId": "abc", "sheet": "Sheet1", "ranges": []}),
            ("batchUpdate", {"spreadsheetId": "abc", "sheet": "Sheet1", "ranges": [[]]}),
            ("updateCells", {"spreadsheetId": "abc", "sheet": "S", "range": "A1", "data": "x"}),
            ("shareSpreadsheet", {"spreadsheetId": "abc", "recipients": "everyone"}),
            ("copySheet", {"srcSpreadsheet": "a"}),
            ("noSuchTool", {"anything": True}),
        ],
    )
    async def test_dispatch_should_never_raise(
        self, context: SessionContext, name: str, arguments: dict
    ) -> None:
        """Verify malformed calls produce exactly one error response."""
        content = await build_registry().dispatch(name, arguments, context)

        body = payload(content)
        assert body["status"] == "error"
        assert body["error"]

    @pytest.mark.asyncio
    async def test_should_accept_snake_case_field_names(
        self, context: SessionContext, mock_sheets: AsyncMock
    ) -> None:
        mock_sheets.get_spreadsheet.return_value = {"sheets": []}

        result = await build_registry().execute(
            "listSheets", {"spreadsheet_id": "abc"}, context
        )

        assert result == Success([])
        assert SpreadsheetArgs.model_validate({"spreadsheet_id": "abc"}).spreadsheet_id == "abc"


@pytest.mark.unit
class TestRender:
    """Tests for render()."""

    def test_should_render_string_success_as_text(self) -> None:
        (content,) = render(Success("done"))
        assert content.text == "done"

    def test_should_render_structured_success_as_json(self) -> None:
        assert payload(render(Success(["Sheet1", "Sheet2"]))) == ["Sheet1", "Sheet2"]

    def test_should_render_not_found(self) -> None:
        assert payload(render(NotFound("Cannot find the sheet 'X'"))) == {
            "status": "not_found",
            "message": "Cannot find the sheet 'X'",
        }

    def test_should_render_partial_batch(self) -> None:
        outcome = BatchOutcome(
            successes=[{"email_address": "a@example.com"}],
            failures=[{"email_address": "", "error": "Missing email address"}],
        )

        body = payload(render(outcome))

        assert body["status"] == "partial"
        assert len(body["successes"]) == 1
        assert len(body["failures"]) == 1

    def test_should_render_complete_batch_as_ok(self) -> None:
        body = payload(render(BatchOutcome(successes=[{"email_address": "a@example.com"}])))
        assert body["status"] == "ok"
        assert body["failures"] == []

    def test_should_render_invalid_arguments(self) -> None:
        body = payload(render(InvalidArguments("Invalid arguments: count", fields=["count"])))
        assert body == {"status": "error", "error": "Invalid arguments: count", "fields": ["count"]}

    def test_should_omit_missing_status_code(self) -> None:
        assert payload(render(UpstreamError("network down"))) == {
            "status": "error",
            "error": "network down",
        }

    def test_should_render_unknown_tool_without_fields(self) -> None:
        body = payload(render(UnknownTool(name="deleteEverything", available=["create"])))

        assert body == {
            "status": "error",
            "error": "Unknown tool: deleteEverything",
            "available_tools": ["create"],
        }
