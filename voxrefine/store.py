"""
JSON persistence for settings-like state (dictionary, history, app styles).
"""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any


logger = logging.getLogger(__name__)


def parse_timestamp(value: str) -> datetime:
    """
    Read an ISO-8601 timestamp as naive local time.

    Stored entries are naive local times. Timestamps carrying an offset
    (including a trailing "Z") are converted so they compare with them.
    """
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


class JsonFileStore:
    """
    One JSON document on disk, rewritten atomically on every save.

    Usage:
        store = JsonFileStore(config.history_file)
        entries = store.load(default=[])
        store.save(entries)
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self, default: Any = None) -> Any:
        """
        Read the document, or `default` when it is missing or unreadable.

        A corrupt file is logged and treated as empty rather than aborting
        startup.
        """
        if not self.path.exists():
            return default
        try:
            with open(self.path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("[Store] Error loading %s: %s", self.path, e)
            return default

    def save(self, data: Any) -> None:
        """Write `data` via temp file + replace so readers never see half a file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".json.tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(temp_path, self.path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise


class MemoryStore:
    """Store double that keeps the document in memory."""

    def __init__(self, data: Any = None):
        self.data = data
        self.saves = 0

    def load(self, default: Any = None) -> Any:
        return default if self.data is None else json.loads(json.dumps(self.data))

    def save(self, data: Any) -> None:
        self.data = json.loads(json.dumps(data))
        self.saves += 1
