"""Google Sheets tools: argument models, handlers and the tool catalog.

Each handler receives its validated argument model and the SessionContext,
performs a short sequence of Sheets/Drive calls and returns a result variant
from ``gsheets_mcp.server.results``.
"""

import logging
from typing import Annotated, Any, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field

from gsheets_mcp.api.client import SPREADSHEET_MIME_TYPE, a1_range, describe_http_error
from gsheets_mcp.context import SessionContext
from gsheets_mcp.server.registry import ToolDescriptor, ToolRegistry
from gsheets_mcp.server.results import BatchOutcome, NotFound, Success, ToolResult

logger = logging.getLogger(__name__)

SHARE_ROLES = ("reader", "commenter", "writer")


def _error_message(error: Exception) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        return describe_http_error(error)
    return str(error) or type(error).__name__


# =============================================================================
# Argument models
# =============================================================================


class ToolArguments(BaseModel):
    """Base for tool arguments; fields are exposed under their camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True)


class CreateArgs(ToolArguments):
    title: str = Field(description="Title of the new spreadsheet")


class SpreadsheetArgs(ToolArguments):
    spreadsheet_id: str = Field(alias="spreadsheetId", description="Spreadsheet ID")


class RenameSheetArgs(SpreadsheetArgs):
    sheet_title: str = Field(alias="sheetTitle", description="Current title of the sheet")
    new_sheet_name: str = Field(alias="newSheetName", description="New title for the sheet")


class CreateSheetArgs(SpreadsheetArgs):
    title: str = Field(description="Title of the sheet to add")


class ListSpreadsheetsArgs(ToolArguments):
    pass


class Recipient(BaseModel):
    email_address: str = Field(default="", description="Email address to share with")
    role: str = Field(default="", description="One of: reader, commenter, writer")


class ShareSpreadsheetArgs(SpreadsheetArgs):
    recipients: list[Recipient] = Field(description="Recipients and the role to grant each")


class SheetDataArgs(SpreadsheetArgs):
    sheet_name: str = Field(alias="sheetName", description="Title of the sheet to read")
    range: str | None = Field(
        default=None, description="A1 range such as 'A1:C10'. Whole sheet if omitted."
    )


class UpdateCellsArgs(SpreadsheetArgs):
    sheet: str = Field(description="Title of the sheet to write")
    range: str = Field(description="A1 range such as 'A1:C2'")
    data: list[list[str]] = Field(description="Row-major grid of values")


class RangeValues(BaseModel):
    range: str = Field(description="A1 range within the sheet")
    values: list[list[str]] = Field(description="Row-major grid of values")


# A bare list is [range, cell, cell, ...] describing one row
RangeEntry = Union[RangeValues, Annotated[list[str], Field(min_length=1)]]


class BatchUpdateArgs(SpreadsheetArgs):
    sheet: str = Field(description="Title of the sheet to write")
    ranges: list[RangeEntry] = Field(
        min_length=1,
        description=(
            "Ranges to write. Each entry is either {range, values} or a list "
            "[range, value, value, ...] writing a single row."
        ),
    )


class AddRowsArgs(SpreadsheetArgs):
    sheet: str = Field(description="Title of the sheet")
    count: int = Field(ge=1, description="Number of rows to insert")
    start_row: int = Field(default=0, ge=0, alias="startRow", description="Zero-based index")


class AddColumnsArgs(SpreadsheetArgs):
    sheet: str = Field(description="Title of the sheet")
    count: int = Field(ge=1, description="Number of columns to insert")
    start_column: int = Field(
        default=0, ge=0, alias="startColumn", description="Zero-based index"
    )


class CopySheetArgs(ToolArguments):
    src_spreadsheet: str = Field(alias="srcSpreadsheet", description="Source spreadsheet ID")
    src_sheet: str = Field(alias="srcSheet", description="Title of the sheet to copy")
    dst_spreadsheet: str = Field(
        alias="dstSpreadsheet", description="Destination spreadsheet ID"
    )
    dst_sheet: str | None = Field(
        default=None,
        alias="dstSheet",
        description="Title for the copy. Keeps Google's default title if omitted.",
    )


# =============================================================================
# Shared helpers
# =============================================================================


async def find_sheet(
    context: SessionContext, spreadsheet_id: str, title: str
) -> dict[str, Any] | None:
    """Resolve a sheet by title.

    Matching is exact and case-sensitive; the first sheet with that title wins.

    Returns:
        The sheet's properties, or None if no sheet has that title.
    """
    meta = await context.sheets.get_spreadsheet(spreadsheet_id, fields="sheets.properties")
    for sheet in meta.get("sheets", []):
        props = sheet.get("properties", {})
        if props.get("title") == title:
            return props
    return None


def _sheet_not_found(title: str, spreadsheet_id: str) -> NotFound:
    return NotFound(f"Cannot find the sheet '{title}' in spreadsheet {spreadsheet_id}")


async def _insert_dimension(
    context: SessionContext,
    spreadsheet_id: str,
    sheet_title: str,
    dimension: str,
    count: int,
    start_index: int,
) -> ToolResult:
    props = await find_sheet(context, spreadsheet_id, sheet_title)
    if props is None:
        return _sheet_not_found(sheet_title, spreadsheet_id)

    end_index = start_index + count
    # Inserting after existing rows/columns copies their formatting
    inherit = start_index > 0
    request = {
        "insertDimension": {
            "range": {
                "sheetId": props.get("sheetId"),
                "dimension": dimension,
                "startIndex": start_index,
                "endIndex": end_index,
            },
            "inheritFromBefore": inherit,
        }
    }
    await context.sheets.batch_update(spreadsheet_id, [request])

    return Success(
        {
            "spreadsheet_id": spreadsheet_id,
            "sheet": sheet_title,
            "sheet_id": props.get("sheetId"),
            "dimension": dimension,
            "start_index": start_index,
            "end_index": end_index,
            "inherit_from_before": inherit,
        }
    )


async def _grant_creator_access(context: SessionContext, spreadsheet_id: str) -> dict[str, Any]:
    if not context.grantee_email:
        return {"status": "skipped", "reason": "no grantee configured"}

    try:
        permission = await context.drive.create_permission(
            spreadsheet_id, context.grantee_email, "writer"
        )
    except Exception as e:
        logger.warning(f"Error granting permissions on {spreadsheet_id}: {_error_message(e)}")
        return {"status": "failed", "email_address": context.grantee_email, "error": _error_message(e)}

    return {
        "status": "granted",
        "email_address": context.grantee_email,
        "role": "writer",
        "permission_id": permission.get("id"),
    }


async def _move_to_folder(context: SessionContext, spreadsheet_id: str) -> dict[str, Any]:
    if not context.folder_id:
        return {"status": "skipped", "reason": "no folder configured"}

    try:
        file = await context.drive.get_file(spreadsheet_id, fields="parents")
        previous = ",".join(file.get("parents", []))
        await context.drive.move_file(spreadsheet_id, context.folder_id, previous)
    except Exception as e:
        logger.warning(f"Error moving {spreadsheet_id} to folder: {_error_message(e)}")
        return {"status": "failed", "folder_id": context.folder_id, "error": _error_message(e)}

    return {"status": "moved", "folder_id": context.folder_id}


# =============================================================================
# Handlers
# =============================================================================


async def create_spreadsheet(args: CreateArgs, context: SessionContext) -> ToolResult:
    """Create a spreadsheet, then grant access and move it as configured.

    Granting access and moving to the folder are best effort: their outcomes
    are reported next to the new spreadsheet instead of failing the call.
    """
    logger.info(f"Creating spreadsheet with title: {args.title}")
    spreadsheet = await context.sheets.create_spreadsheet(args.title)

    spreadsheet_id = spreadsheet.get("spreadsheetId")
    if not spreadsheet_id:
        raise RuntimeError("Failed to create spreadsheet: No spreadsheet ID returned")

    permission = await _grant_creator_access(context, spreadsheet_id)
    folder = await _move_to_folder(context, spreadsheet_id)

    return Success(
        {
            "spreadsheet_id": spreadsheet_id,
            "title": spreadsheet.get("properties", {}).get("title", args.title),
            "url": spreadsheet.get("spreadsheetUrl")
            or f"https://docs.google.com/spreadsheets/d/{spreadsheet_id}",
            "permission": permission,
            "folder": folder,
        }
    )


async def list_sheets(args: SpreadsheetArgs, context: SessionContext) -> ToolResult:
    meta = await context.sheets.get_spreadsheet(args.spreadsheet_id, fields="sheets.properties")
    titles = [s.get("properties", {}).get("title", "") for s in meta.get("sheets", [])]
    return Success(titles)


async def rename_sheet(args: RenameSheetArgs, context: SessionContext) -> ToolResult:
    props = await find_sheet(context, args.spreadsheet_id, args.sheet_title)
    if props is None:
        return _sheet_not_found(args.sheet_title, args.spreadsheet_id)

    request = {
        "updateSheetProperties": {
            "properties": {"sheetId": props.get("sheetId"), "title": args.new_sheet_name},
            "fields": "title",
        }
    }
    await context.sheets.batch_update(args.spreadsheet_id, [request])

    return Success(
        {
            "status": "renamed",
            "spreadsheet_id": args.spreadsheet_id,
            "sheet_id": props.get("sheetId"),
            "old_title": args.sheet_title,
            "new_title": args.new_sheet_name,
        }
    )


async def create_sheet(args: CreateSheetArgs, context: SessionContext) -> ToolResult:
    request = {"addSheet": {"properties": {"title": args.title}}}
    response = await context.sheets.batch_update(args.spreadsheet_id, [request])

    replies = response.get("replies") or [{}]
    props = replies[0].get("addSheet", {}).get("properties", {})
    return Success(
        {
            "spreadsheet_id": args.spreadsheet_id,
            "sheet_id": props.get("sheetId"),
            "title": props.get("title", args.title),
            "index": props.get("index"),
        }
    )


async def spreadsheet_info(args: SpreadsheetArgs, context: SessionContext) -> ToolResult:
    meta = await context.sheets.get_spreadsheet(
        args.spreadsheet_id, fields="spreadsheetId,properties.title,sheets.properties"
    )

    sheets = []
    for sheet in meta.get("sheets", []):
        props = sheet.get("properties", {})
        sheets.append(
            {
                "title": props.get("title"),
                "sheet_id": props.get("sheetId"),
                "grid_properties": props.get("gridProperties", {}),
            }
        )

    return Success(
        {
            "spreadsheet_id": args.spreadsheet_id,
            "title": meta.get("properties", {}).get("title"),
            "sheets": sheets,
        }
    )


async def list_spreadsheets(args: ListSpreadsheetsArgs, context: SessionContext) -> ToolResult:
    """List spreadsheets, newest modification first, limited to the folder if set."""
    query = f"mimeType='{SPREADSHEET_MIME_TYPE}' and trashed = false"
    if context.folder_id:
        query += f" and '{context.folder_id}' in parents"

    spreadsheets = []
    page_token = None
    while True:
        response = await context.drive.list_files(
            query=query,
            order_by="modifiedTime desc",
            fields="nextPageToken, files(id, name, modifiedTime)",
            page_token=page_token,
        )
        spreadsheets.extend(
            {"id": f.get("id"), "title": f.get("name"), "modified_time": f.get("modifiedTime")}
            for f in response.get("files", [])
        )
        page_token = response.get("nextPageToken")
        if not page_token:
            break

    return Success(spreadsheets)


async def share_spreadsheet(args: ShareSpreadsheetArgs, context: SessionContext) -> ToolResult:
    """Grant each recipient its role independently.

    Invalid entries are recorded as failures without calling the API, and a
    failed grant never stops the remaining recipients from being processed.
    """
    outcome = BatchOutcome()

    for recipient in args.recipients:
        email_address = recipient.email_address.strip()
        if not email_address:
            outcome.failures.append(
                {"email_address": recipient.email_address, "error": "Missing email address"}
            )
            continue
        if recipient.role not in SHARE_ROLES:
            outcome.failures.append(
                {
                    "email_address": email_address,
                    "error": f"Invalid role '{recipient.role}'. Must be one of: "
                    + ", ".join(SHARE_ROLES),
                }
            )
            continue

        try:
            permission = await context.drive.create_permission(
                args.spreadsheet_id, email_address, recipient.role
            )
        except Exception as e:
            logger.warning(f"Failed to share {args.spreadsheet_id} with {email_address}")
            outcome.failures.append({"email_address": email_address, "error": _error_message(e)})
            continue

        outcome.successes.append(
            {
                "email_address": email_address,
                "role": recipient.role,
                "permission_id": permission.get("id"),
            }
        )

    return outcome


async def sheet_data(args: SheetDataArgs, context: SessionContext) -> ToolResult:
    range_notation = a1_range(args.sheet_name, args.range)
    response = await context.sheets.get_values(args.spreadsheet_id, range_notation)

    # An empty range has no "values" key at all
    values = response.get("values", [])
    return Success(
        {
            "spreadsheet_id": args.spreadsheet_id,
            "range": response.get("range", range_notation),
            "values": values,
            "row_count": len(values),
        }
    )


async def update_cells(args: UpdateCellsArgs, context: SessionContext) -> ToolResult:
    range_notation = a1_range(args.sheet, args.range)
    response = await context.sheets.update_values(args.spreadsheet_id, range_notation, args.data)

    return Success(
        {
            "spreadsheet_id": args.spreadsheet_id,
            "updated_range": response.get("updatedRange", range_notation),
            "updated_rows": response.get("updatedRows", 0),
            "updated_columns": response.get("updatedColumns", 0),
            "updated_cells": response.get("updatedCells", 0),
        }
    )


async def batch_update(args: BatchUpdateArgs, context: SessionContext) -> ToolResult:
    data = []
    for entry in args.ranges:
        if isinstance(entry, RangeValues):
            data.append({"range": a1_range(args.sheet, entry.range), "values": entry.values})
        else:
            data.append({"range": a1_range(args.sheet, entry[0]), "values": [entry[1:]]})

    response = await context.sheets.batch_update_values(args.spreadsheet_id, data)

    return Success(
        {
            "spreadsheet_id": args.spreadsheet_id,
            "updated_ranges": [d["range"] for d in data],
            "total_updated_rows": response.get("totalUpdatedRows", 0),
            "total_updated_columns": response.get("totalUpdatedColumns", 0),
            "total_updated_cells": response.get("totalUpdatedCells", 0),
        }
    )


async def add_rows(args: AddRowsArgs, context: SessionContext) -> ToolResult:
    return await _insert_dimension(
        context, args.spreadsheet_id, args.sheet, "ROWS", args.count, args.start_row
    )


async def add_columns(args: AddColumnsArgs, context: SessionContext) -> ToolResult:
    return await _insert_dimension(
        context, args.spreadsheet_id, args.sheet, "COLUMNS", args.count, args.start_column
    )


async def copy_sheet(args: CopySheetArgs, context: SessionContext) -> ToolResult:
    """Copy a sheet into another spreadsheet, renaming the copy if asked to."""
    props = await find_sheet(context, args.src_spreadsheet, args.src_sheet)
    if props is None:
        return NotFound(
            f"Source sheet '{args.src_sheet}' not found in spreadsheet {args.src_spreadsheet}"
        )

    copy = await context.sheets.copy_sheet_to(
        args.src_spreadsheet, props["sheetId"], args.dst_spreadsheet
    )
    title = copy.get("title")

    renamed = False
    if args.dst_sheet and title != args.dst_sheet:
        request = {
            "updateSheetProperties": {
                "properties": {"sheetId": copy.get("sheetId"), "title": args.dst_sheet},
                "fields": "title",
            }
        }
        await context.sheets.batch_update(args.dst_spreadsheet, [request])
        title = args.dst_sheet
        renamed = True

    return Success(
        {
            "source_spreadsheet_id": args.src_spreadsheet,
            "source_sheet_id": props["sheetId"],
            "destination_spreadsheet_id": args.dst_spreadsheet,
            "sheet_id": copy.get("sheetId"),
            "title": title,
            "index": copy.get("index"),
            "renamed": renamed,
        }
    )


# =============================================================================
# Catalog
# =============================================================================

TOOLS: tuple[ToolDescriptor, ...] = (
    ToolDescriptor(
        name="create",
        description="Creates a spreadsheet by taking the new spreadsheet's title as input",
        arguments_model=CreateArgs,
        handler=create_spreadsheet,
    ),
    ToolDescriptor(
        name="listSheets",
        description="Lists all the sheets present in the spreadsheet. Accepts spreadsheet id as input argument",
        arguments_model=SpreadsheetArgs,
        handler=list_sheets,
    ),
    ToolDescriptor(
        name="renameSheet",
        description="Renames the provided sheet. Accepts spreadsheet id, old name and new name of the sheet as input arguments",
        arguments_model=RenameSheetArgs,
        handler=rename_sheet,
    ),
    ToolDescriptor(
        name="createSheet",
        description="Creates a new sheet in the spreadsheet. Accepts spreadsheet id and name of the sheet to be created",
        arguments_model=CreateSheetArgs,
        handler=create_sheet,
    ),
    ToolDescriptor(
        name="spreadsheetInfo",
        description="Gives the title of the spreadsheet and the title, id and grid size of every sheet",
        arguments_model=SpreadsheetArgs,
        handler=spreadsheet_info,
    ),
    ToolDescriptor(
        name="listSpreadsheets",
        description="Returns all spreadsheets in the configured folder (or visible to the account), most recently modified first",
        arguments_model=ListSpreadsheetsArgs,
        handler=list_spreadsheets,
    ),
    ToolDescriptor(
        name="shareSpreadsheet",
        description="Shares the spreadsheet with the recipients, given as a list of {email_address, role} where role is reader, commenter or writer. Recipients are notified by email.",
        arguments_model=ShareSpreadsheetArgs,
        handler=share_spreadsheet,
    ),
    ToolDescriptor(
        name="sheetData",
        description="Returns the data in the specified sheet and range. Returns the whole sheet if no range is given",
        arguments_model=SheetDataArgs,
        handler=sheet_data,
    ),
    ToolDescriptor(
        name="updateCells",
        description="Writes a grid of values into the given range of a sheet. Values are parsed as if typed by a user, so formulas are evaluated",
        arguments_model=UpdateCellsArgs,
        handler=update_cells,
    ),
    ToolDescriptor(
        name="batchUpdate",
        description="Writes several ranges of one sheet in a single request",
        arguments_model=BatchUpdateArgs,
        handler=batch_update,
    ),
    ToolDescriptor(
        name="addRows",
        description="Inserts count rows into the sheet starting at startRow (zero-based, default 0)",
        arguments_model=AddRowsArgs,
        handler=add_rows,
    ),
    ToolDescriptor(
        name="addColumns",
        description="Inserts count columns into the sheet starting at startColumn (zero-based, default 0)",
        arguments_model=AddColumnsArgs,
        handler=add_columns,
    ),
    ToolDescriptor(
        name="copySheet",
        description="Copies a sheet into another spreadsheet, optionally giving the copy a new title. Accepts srcSpreadsheet, srcSheet, dstSpreadsheet, dstSheet",
        arguments_model=CopySheetArgs,
        handler=copy_sheet,
    ),
)


def build_registry() -> ToolRegistry:
    """Create a registry holding the full tool catalog."""
    registry = ToolRegistry()
    for descriptor in TOOLS:
        registry.register(descriptor)
    return registry
