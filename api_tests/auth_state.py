"""
Persisted bearer token shared between the setup step and the tests.

The setup step writes {"token": ...} once; any number of later tests or
processes read it back. Writes go through a temporary sibling file and a
rename so a reader never sees a half-written file.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

from api_tests.config import settings

logger = logging.getLogger(__name__)


class CredentialStore:
    """Single-entry, file-backed token cache.

    Last writer wins. No freshness or expiry checks: whatever token was
    saved is handed back until it is overwritten or cleared.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        """
        Args:
            path: Token file (default: settings.auth_file,
                playwright/.auth/user.json unless overridden)
        """
        self.path = Path(path) if path is not None else settings.auth_file

    def __repr__(self) -> str:
        return f"CredentialStore(path={str(self.path)!r})"

    def save(self, token: str) -> Path:
        """Write the token as the sole content of the store file.

        Args:
            token: Non-empty access token

        Returns:
            Path of the written file

        Raises:
            ValueError: If token is empty
            OSError: If the file or its directory cannot be written
        """
        if not token:
            raise ValueError("Refusing to persist an empty token")

        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Write atomically (write to temp, then rename)
        temp_file = self.path.with_name(f".{self.path.name}.{os.getpid()}.tmp")
        try:
            temp_file.write_text(
                json.dumps({"token": token}, indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            temp_file.replace(self.path)
        except BaseException:
            temp_file.unlink(missing_ok=True)
            raise

        logger.info("Saved auth token to %s", self.path)
        return self.path

    def load(self) -> str:
        """Read the persisted token.

        Returns:
            The token, or "" when the file has no string ``token`` field

        Raises:
            FileNotFoundError: If the setup step never wrote the file
            json.JSONDecodeError: If the file is not valid JSON
        """
        with open(self.path, encoding="utf-8") as f:
            state = json.load(f)

        token = state.get("token") if isinstance(state, dict) else None
        if not isinstance(token, str):
            return ""
        return token

    def exists(self) -> bool:
        return self.path.exists()

    def clear(self) -> None:
        """Delete the persisted token, if any."""
        if self.path.exists():
            self.path.unlink()
            logger.info("Cleared auth token: %s", self.path)
