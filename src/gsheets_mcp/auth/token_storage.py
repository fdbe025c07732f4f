"""JSON-based persistence for the OAuth token.

Storage Location: ./token.json by default, overridable with GSHEETS_TOKEN_PATH.

The file holds a single versioned token envelope. It is rewritten in place
whenever a new token is issued or an access token is silently refreshed, and
is never deleted by the server.
"""

import json
import logging
from pathlib import Path

from gsheets_mcp.auth.models import OAuthToken, StoredToken, TokenMetadata, TokenStatus

logger = logging.getLogger(__name__)


class TokenStorage:
    """Simple JSON-based storage for the OAuth token.

    Attributes:
        token_path: Path to the token file.

    Example:
        ```python
        storage = TokenStorage(Path("token.json"))
        storage.store(token, TokenMetadata(service_name="gsheets-mcp"))

        stored = storage.retrieve()
        if stored:
            print(f"Token expires at: {stored.token.expires_at}")
        ```
    """

    def __init__(self, token_path: Path) -> None:
        """Initialize token storage.

        Args:
            token_path: Path of the token file. The parent directory is created on
                first write if it does not exist.
        """
        self.token_path = token_path

    def _ensure_parent_dir(self) -> None:
        """Create the parent directory with owner-only permissions if needed."""
        parent = self.token_path.parent
        if not parent.exists():
            parent.mkdir(parents=True, mode=0o700)

    def _load_raw(self) -> dict | None:
        """Load the raw JSON content of the token file.

        Returns:
            Parsed JSON object, or None if the file is missing or unreadable.
        """
        if not self.token_path.exists():
            return None

        try:
            with open(self.token_path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read token file {self.token_path}: {e}")
            return None

        return data if isinstance(data, dict) else None

    def exists(self) -> bool:
        """Check whether a token file is present on disk."""
        return self.token_path.exists()

    def store(self, token: OAuthToken, metadata: TokenMetadata) -> None:
        """Persist a token, overwriting any previous copy.

        Args:
            token: OAuth token data to store.
            metadata: Token metadata including provider info.
        """
        stored_token = StoredToken(version=1, metadata=metadata, token=token)

        self._ensure_parent_dir()
        with open(self.token_path, "w") as f:
            f.write(stored_token.model_dump_json(indent=2))

        # Owner read/write only (600)
        self.token_path.chmod(0o600)
        logger.info(f"Token stored to {self.token_path}")

    def retrieve(self) -> StoredToken | None:
        """Retrieve the persisted token.

        Returns:
            StoredToken if present and well-formed, None otherwise.
        """
        raw = self._load_raw()
        if raw is None:
            return None

        try:
            return StoredToken.model_validate(raw)
        except ValueError:
            # Token is corrupted or in an unknown format
            return None

    def get_status(self) -> TokenStatus:
        """Get the status of the persisted token.

        Returns:
            TokenStatus indicating the token's current state.
        """
        if not self.exists():
            return TokenStatus.MISSING

        stored = self.retrieve()
        if stored is None:
            return TokenStatus.INVALID

        if stored.token.is_expired():
            return TokenStatus.EXPIRED

        return TokenStatus.VALID
