"""
Process-local key/value persistence.

Each key is one JSON file in the data directory. Writes replace the whole
value (temp file + os.replace), there are no partial updates.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from .logger import logger

SETUP_KEY = "ai_dict_setup"
NOTEBOOK_KEY = "ai_dict_notebook"


class LocalStore:
    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        """Raw stored text, or None if the key was never written."""
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"[DB] Could not read {path}: {e}")
            return None

    def set(self, key: str, value: str) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}_", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get_json(self, key: str) -> Optional[Any]:
        """Decoded value, or None when absent or not valid JSON."""
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"[DB] Ignoring unreadable '{key}' blob: {e.msg}")
            return None

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value, ensure_ascii=False))
