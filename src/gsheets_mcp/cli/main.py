"""Command-line interface for gsheets-mcp."""

import asyncio
import sys
from pathlib import Path

import click

from gsheets_mcp.__version__ import __version__
from gsheets_mcp.config import DEFAULT_CREDENTIALS_PATH, DEFAULT_TOKEN_PATH, Settings


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Google Sheets MCP Server - drive Google Sheets from an MCP client.

    Provides 13 tools for creating, reading, writing and sharing
    spreadsheets and their sheets.
    """
    pass


@main.command()
@click.option(
    "--credentials-path",
    envvar="GSHEETS_CREDENTIALS_PATH",
    default=DEFAULT_CREDENTIALS_PATH,
    show_default=True,
    type=click.Path(path_type=Path),
    help="OAuth client descriptor downloaded from Google Cloud",
)
@click.option(
    "--token-path",
    envvar="GSHEETS_TOKEN_PATH",
    default=DEFAULT_TOKEN_PATH,
    show_default=True,
    type=click.Path(path_type=Path),
    help="Where the OAuth token is stored",
)
def setup(credentials_path: Path, token_path: Path) -> None:
    """Authorize with Google using the OAuth client descriptor.

    This will:
    1. Print a consent URL to visit
    2. Ask for the code shown after granting access
    3. Store the token (with refresh token) at the token path
    """
    from gsheets_mcp.auth import (
        ConfigurationError,
        OAuthClientConfig,
        OAuthManager,
        TokenStatus,
        TokenStorage,
    )

    if not credentials_path.exists():
        click.echo(f"❌ Error: OAuth client file not found at {credentials_path}")
        click.echo("")
        click.echo("Download an OAuth client (Desktop app) from the Google Cloud console")
        click.echo("and set GSHEETS_CREDENTIALS_PATH or pass --credentials-path.")
        sys.exit(1)

    try:
        client_config = OAuthClientConfig.from_file(credentials_path)
    except ConfigurationError as e:
        click.echo(f"❌ Error: {e}")
        sys.exit(1)

    manager = OAuthManager(client_config, TokenStorage(token_path))

    if manager.storage.get_status() == TokenStatus.VALID:
        click.echo("✓ Already authenticated!")
        click.echo(f"Token stored at: {manager.token_path}")
        click.echo("")

        if not click.confirm("Re-authenticate?"):
            return

    click.echo("Starting OAuth authentication flow...")
    click.echo("")

    try:
        asyncio.run(manager.authenticate())
        click.echo("✓ Authentication successful!")
        click.echo(f"Token stored at: {manager.token_path}")
        click.echo("")
        click.echo("Run 'gsheets-mcp doctor' to verify setup.")
    except Exception as e:
        click.echo(f"❌ Authentication failed: {e}")
        sys.exit(1)


@main.command()
def mcp() -> None:
    """Start the MCP server over stdio.

    Credentials are resolved before serving: the CREDENTIALS_CONFIG service
    account first, then the OAuth client descriptor and its saved token.
    """
    from gsheets_mcp.server import main as server_main

    try:
        click.echo("Starting Google Sheets MCP server...", err=True)
        server_main(Settings.from_env())
    except KeyboardInterrupt:
        click.echo("\nServer stopped.", err=True)


@main.command()
def doctor() -> None:
    """Check configuration and authentication status.

    Verifies:
    1. Python dependencies installed
    2. Which credential sources are configured
    3. Saved token validity
    """
    from gsheets_mcp.auth import TokenStatus, TokenStorage

    settings = Settings.from_env()

    click.echo("Google Sheets MCP Status:")
    click.echo("")

    # Check dependencies
    click.echo("Dependencies:")
    try:
        import google.auth  # noqa: F401
        import google_auth_oauthlib  # noqa: F401

        click.echo("  ✓ google-auth installed")
        click.echo("  ✓ google-auth-oauthlib installed")
    except ImportError as e:
        click.echo(f"  ❌ Missing dependency: {e}")
        sys.exit(1)

    click.echo("")
    click.echo("Credential sources (in priority order):")

    has_service_account = bool(settings.credentials_config)
    if has_service_account:
        click.echo("  ✓ CREDENTIALS_CONFIG service account key set")
    else:
        click.echo("  - CREDENTIALS_CONFIG not set")

    has_client = settings.credentials_path.exists()
    if has_client:
        click.echo(f"  ✓ OAuth client file: {settings.credentials_path}")
    else:
        click.echo(f"  - OAuth client file not found: {settings.credentials_path}")

    status = TokenStorage(settings.token_path).get_status()
    click.echo(f"  Token file: {settings.token_path} ({status.value})")

    click.echo("")
    click.echo("Configuration:")
    click.echo(f"  Drive folder: {settings.drive_folder_id or '(none)'}")
    click.echo(f"  Grantee for new spreadsheets: {settings.grantee_email or '(none)'}")
    click.echo("")

    if not has_service_account and not has_client:
        click.echo("❌ No credentials configured. Set CREDENTIALS_CONFIG or run 'gsheets-mcp setup'.")
        sys.exit(1)

    if not has_service_account and status in (TokenStatus.MISSING, TokenStatus.INVALID):
        click.echo("⚠️  No usable token; the server will ask for an authorization code on start.")
        click.echo("Run 'gsheets-mcp setup' to authorize ahead of time.")
        return

    click.echo("✓ Ready to use!")


if __name__ == "__main__":
    main()
