"""
Client-side session persistence.

One serialized Session under a well-known key. The stored session is only a
cache of the server-verifiable bearer token; clearing it logs the client out
but is not a security control.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from hazard_hub.models.user import Session

logger = logging.getLogger(__name__)

SESSION_STORAGE_KEY = "hazard_session"


class SessionStore:

    def __init__(self, directory: Union[str, Path], key: str = SESSION_STORAGE_KEY):
        self.directory = Path(directory)
        self.key = key

    @property
    def path(self) -> Path:
        return self.directory / f"{self.key}.json"

    def save(self, session: Session) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(session.model_dump_json(), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def load(self) -> Optional[Session]:
        """
        Read the persisted session.

        Missing data means logged out. Corrupt data is logged, purged and
        also treated as logged out; this method never raises for it.
        """
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return None

        try:
            return Session.model_validate(json.loads(raw.decode("utf-8")))
        except (ValueError, ValidationError, TypeError) as e:
            logger.warning(f"Corrupt session data under '{self.key}', clearing it: {e}")
            self.clear()
            return None

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
