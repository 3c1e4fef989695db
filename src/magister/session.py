"""Persisted Playwright session for Magister.

SessionStore saves the browser storage state (cookies, localStorage) together
with the resolved subject id and bearer token, so a restart can skip the
interactive login. Losing the file only costs a re-login, so every I/O
failure degrades to "no session" instead of raising.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from src.magister.errors import PersistenceError
from src.magister.logging import get_logger
from src.magister.models import SessionExtension, SessionSnapshot

logger = get_logger(__name__)

# Key under which the extension record sits inside the storage-state JSON.
EXTENSION_KEY = "_magister"


class SessionStore:
    """Reads and writes the session snapshot file."""

    def __init__(self, path: Path) -> None:
        """Initialize SessionStore.

        Args:
            path: JSON file holding the storage state and extension record.
        """
        self.path = Path(path)

    def load(self) -> SessionSnapshot | None:
        """Load the saved snapshot.

        Returns:
            The snapshot, or None if the file is missing, unreadable, or lacks
            a valid extension record. A snapshot is never partially restored.
        """
        if not self.path.exists():
            logger.debug("session_load", result="missing", path=str(self.path))
            return None

        try:
            raw = self._read()
            extension_data = raw.pop(EXTENSION_KEY, None)
            if extension_data is None:
                logger.info("session_load", result="no_extension", path=str(self.path))
                return None
            extension = SessionExtension.model_validate(extension_data)
        except (PersistenceError, ValidationError) as e:
            logger.warning("session_load", result="corrupt", path=str(self.path), error=str(e))
            return None

        logger.info(
            "session_load",
            result="restored",
            subject_id=extension.subject_id,
            has_token=bool(extension.bearer_token),
        )
        return SessionSnapshot(storage_state=raw, extension=extension)

    def save(self, snapshot: SessionSnapshot) -> bool:
        """Write the snapshot to disk.

        Returns:
            True on success, False if the write failed (logged, not raised).
        """
        payload: dict[str, Any] = dict(snapshot.storage_state)
        payload[EXTENSION_KEY] = snapshot.extension.model_dump(mode="json", by_alias=True)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("session_save_failed", path=str(self.path), error=str(e))
            return False

        logger.info("session_saved", path=str(self.path), subject_id=snapshot.extension.subject_id)
        return True

    def clear(self) -> None:
        """Delete the saved snapshot, forcing a fresh login next time."""
        try:
            self.path.unlink()
            logger.info("session_cleared", path=str(self.path))
        except FileNotFoundError:
            logger.debug("session_clear_skipped", reason="file_not_found")
        except OSError as e:
            logger.warning("session_clear_failed", path=str(self.path), error=str(e))

    def _read(self) -> dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"{self.path} does not hold a JSON object")
        return data


def build_snapshot(
    storage_state: dict[str, Any], subject_id: int | None, bearer_token: str | None
) -> SessionSnapshot:
    """Stamp a storage state with the current subject and token."""
    return SessionSnapshot(
        storage_state=storage_state,
        extension=SessionExtension(
            subject_id=subject_id,
            bearer_token=bearer_token,
            saved_at=datetime.now(timezone.utc),
        ),
    )
