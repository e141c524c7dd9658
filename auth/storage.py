"""
Per-user key/value session storage persisted as JSON files.

Each Telegram user gets one file holding string values under the same keys
the web client kept in localStorage ("token", "user").
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class SessionStorage:
    """String key/value store namespaced by Telegram user ID."""

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, user_id: int) -> Path:
        return self.directory / f"{int(user_id)}.json"

    def _read(self, user_id: int) -> dict[str, str]:
        path = self._path(user_id)
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable session file for user {user_id}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, user_id: int, data: dict[str, str]) -> None:
        path = self._path(user_id)
        if not data:
            path.unlink(missing_ok=True)
            return

        fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get_item(self, user_id: int, key: str) -> Optional[str]:
        value = self._read(user_id).get(key)
        return None if value is None else str(value)

    def set_item(self, user_id: int, key: str, value: str) -> None:
        data = self._read(user_id)
        data[key] = value
        self._write(user_id, data)

    def remove_item(self, user_id: int, key: str) -> None:
        data = self._read(user_id)
        if key in data:
            del data[key]
            self._write(user_id, data)

    def user_ids(self) -> list[int]:
        """IDs of users with a stored session."""
        ids = []
        for path in self.directory.glob("*.json"):
            try:
                ids.append(int(path.stem))
            except ValueError:
                continue
        return sorted(ids)
