"""Google Sheets MCP Server.

Lets an MCP client create, read, write and share Google Sheets through a
fixed set of tools.
"""

from gsheets_mcp.__version__ import __version__

__all__ = ["__version__"]
