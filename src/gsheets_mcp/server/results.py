"""Result variants returned by tool handlers.

Handlers return ``Success``, ``NotFound`` or ``BatchOutcome``. The dispatcher
adds ``InvalidArguments``, ``UnknownTool`` and ``UpstreamError`` and is the
only place that turns any of them into text content.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Success:
    """The operation completed; ``value`` is its payload."""

    value: Any


@dataclass(frozen=True)
class NotFound:
    """A named sheet or spreadsheet does not exist."""

    message: str


@dataclass(frozen=True)
class BatchOutcome:
    """Per-item outcomes of an operation whose items succeed or fail independently."""

    successes: list[dict[str, Any]] = field(default_factory=list)
    failures: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class InvalidArguments:
    """Request arguments failed validation."""

    message: str
    fields: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class UnknownTool:
    """No tool is registered under the requested name."""

    name: str
    available: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class UpstreamError:
    """The handler raised, typically because a Google API call failed."""

    message: str
    status_code: int | None = None


ToolResult = Success | NotFound | BatchOutcome
DispatchResult = ToolResult | InvalidArguments | UnknownTool | UpstreamError
