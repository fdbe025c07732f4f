"""Environment-sourced configuration for gsheets-mcp.

Environment Variables:
    CREDENTIALS_CONFIG: Base64-encoded service account JSON key (optional).
    GSHEETS_CREDENTIALS_PATH: OAuth client descriptor (default: credentials.json).
    GSHEETS_TOKEN_PATH: Persisted OAuth token (default: token.json).
    DRIVE_FOLDER_ID: Folder that new spreadsheets are moved into (optional).
    EMAIL_ID: Identity granted writer access on every created spreadsheet (optional).
    GSHEETS_LOG_LEVEL: Logging level for the server (default: INFO).
"""

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_CREDENTIALS_PATH = "credentials.json"
DEFAULT_TOKEN_PATH = "token.json"


class Settings(BaseModel):
    """Process configuration, read once at startup.

    Attributes:
        credentials_config: Encoded service account key, if configured.
        credentials_path: Path to the OAuth client descriptor file.
        token_path: Path to the persisted OAuth token file.
        drive_folder_id: Destination folder for created spreadsheets.
        grantee_email: Identity granted writer access by ``create``.
        log_level: Name of the logging level.
    """

    model_config = {"frozen": True}

    credentials_config: str | None = None
    credentials_path: Path = Field(default=Path(DEFAULT_CREDENTIALS_PATH))
    token_path: Path = Field(default=Path(DEFAULT_TOKEN_PATH))
    drive_folder_id: str | None = None
    grantee_email: str | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        Empty values are treated as unset.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            Settings populated from the environment.
        """
        env = os.environ if environ is None else environ

        def _get(name: str) -> str | None:
            value = env.get(name, "").strip()
            return value or None

        return cls(
            credentials_config=_get("CREDENTIALS_CONFIG"),
            credentials_path=Path(_get("GSHEETS_CREDENTIALS_PATH") or DEFAULT_CREDENTIALS_PATH),
            token_path=Path(_get("GSHEETS_TOKEN_PATH") or DEFAULT_TOKEN_PATH),
            drive_folder_id=_get("DRIVE_FOLDER_ID"),
            grantee_email=_get("EMAIL_ID"),
            log_level=(_get("GSHEETS_LOG_LEVEL") or "INFO").upper(),
        )
