"""Command-line interface for gsheets-mcp."""
