"""
Dictation history.

Every completed dictation is recorded newest-first, capped at a configurable
size, and can be searched, summarised or exported as JSON or CSV.
"""

import csv
import io
import json
import logging
import threading
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .errors import DecodingError
from .store import JsonFileStore, parse_timestamp


logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 100
CSV_HEADER = ["Timestamp", "Original Text", "Refined Text", "App", "Duration"]


@dataclass(frozen=True)
class DictationHistoryEntry:
    original_text: str
    refined_text: Optional[str] = None
    target_app_bundle_id: Optional[str] = None
    target_app_name: Optional[str] = None
    duration: Optional[float] = None    # Audio duration in seconds
    provider: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def final_text(self) -> str:
        """The text that was delivered: refined if available, otherwise original."""
        return self.refined_text if self.refined_text is not None else self.original_text

    @property
    def was_refined(self) -> bool:
        return self.refined_text is not None and self.refined_text != self.original_text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "original_text": self.original_text,
            "refined_text": self.refined_text,
            "target_app_bundle_id": self.target_app_bundle_id,
            "target_app_name": self.target_app_name,
            "duration": self.duration,
            "provider": self.provider,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DictationHistoryEntry":
        duration = data.get("duration")
        return cls(
            id=str(data["id"]),
            timestamp=parse_timestamp(data["timestamp"]),
            original_text=str(data["original_text"]),
            refined_text=data.get("refined_text"),
            target_app_bundle_id=data.get("target_app_bundle_id"),
            target_app_name=data.get("target_app_name"),
            duration=float(duration) if duration is not None else None,
            provider=data.get("provider"),
        )


@dataclass(frozen=True)
class HistoryStatistics:
    total_entries: int
    refined_count: int
    total_duration: float
    total_characters: int
    app_usage: Dict[str, int]
    daily_usage: Dict[date, int]

    @property
    def refinement_rate(self) -> float:
        return self.refined_count / self.total_entries if self.total_entries else 0.0

    @property
    def average_duration(self) -> float:
        return self.total_duration / self.total_entries if self.total_entries else 0.0

    @property
    def average_characters_per_entry(self) -> float:
        return self.total_characters / self.total_entries if self.total_entries else 0.0

    @property
    def top_apps(self) -> List[Tuple[str, int]]:
        """Five most used apps, most used first."""
        return Counter(self.app_usage).most_common(5)


def _parse_entries(raw: Any) -> List[DictationHistoryEntry]:
    if not isinstance(raw, list):
        raise DecodingError("Expected a list of history entries")
    try:
        return [DictationHistoryEntry.from_dict(item) for item in raw]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodingError(f"Invalid history entry: {e}") from e


class HistoryRecorder:
    """
    Newest-first dictation log, persisted on every change.

    Usage:
        history = HistoryRecorder(JsonFileStore(config.history_file), max_entries=100)
        history.add_entry("raw text", refined_text="Raw text.", duration=2.4)
        for entry in history.recent(5):
            print(entry.final_text)
    """

    def __init__(
        self,
        store: Optional[JsonFileStore] = None,
        enabled: bool = True,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], datetime] = datetime.now,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self.enabled = enabled
        self._store = store
        self._clock = clock
        self._on_change = on_change
        self._lock = threading.Lock()
        self._max_entries = max(0, int(max_entries))
        self._entries: List[DictationHistoryEntry] = self._load()[: self._max_entries]

    def _load(self) -> List[DictationHistoryEntry]:
        if self._store is None:
            return []
        try:
            return _parse_entries(self._store.load(default=[]))
        except DecodingError as e:
            logger.warning("[History] Ignoring unreadable history: %s", e)
            return []

    def _persist(self) -> None:
        if self._store is not None:
            self._store.save([entry.to_dict() for entry in self._entries])
        if self._on_change:
            self._on_change()

    @property
    def entries(self) -> List[DictationHistoryEntry]:
        """All entries, newest first."""
        with self._lock:
            return list(self._entries)

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @max_entries.setter
    def max_entries(self, value: int) -> None:
        with self._lock:
            self._max_entries = max(0, int(value))
            if len(self._entries) > self._max_entries:
                del self._entries[self._max_entries:]
                self._persist()

    def add_entry(
        self,
        original_text: str,
        refined_text: Optional[str] = None,
        target_app_bundle_id: Optional[str] = None,
        target_app_name: Optional[str] = None,
        duration: Optional[float] = None,
        provider: Optional[str] = None,
    ) -> Optional[DictationHistoryEntry]:
        """
        Record a dictation.

        Returns:
            The new entry, or None when history is disabled or the text is blank
        """
        if not self.enabled:
            return None
        if not original_text or not original_text.strip():
            return None

        entry = DictationHistoryEntry(
            original_text=original_text,
            refined_text=refined_text,
            target_app_bundle_id=target_app_bundle_id,
            target_app_name=target_app_name,
            duration=duration,
            provider=provider,
            timestamp=self._clock(),
        )

        with self._lock:
            self._entries.insert(0, entry)
            del self._entries[self._max_entries:]
            self._persist()
        return entry

    def recent(self, limit: int = 10) -> List[DictationHistoryEntry]:
        with self._lock:
            return self._entries[:limit]

    def entries_on(self, day: date) -> List[DictationHistoryEntry]:
        """Entries recorded on the given calendar day (local time)."""
        if isinstance(day, datetime):
            day = day.date()
        with self._lock:
            return [e for e in self._entries if e.timestamp.date() == day]

    def entries_between(self, start: datetime, end: datetime) -> List[DictationHistoryEntry]:
        """Entries with start <= timestamp <= end."""
        with self._lock:
            return [e for e in self._entries if start <= e.timestamp <= end]

    def search(self, query: str) -> List[DictationHistoryEntry]:
        """Case-insensitive substring search over original and refined text."""
        needle = query.lower()
        with self._lock:
            return [
                e for e in self._entries
                if needle in e.original_text.lower()
                or (e.refined_text is not None and needle in e.refined_text.lower())
            ]

    def delete_entry(self, entry_id: str) -> bool:
        with self._lock:
            remaining = [e for e in self._entries if e.id != entry_id]
            if len(remaining) == len(self._entries):
                return False
            self._entries = remaining
            self._persist()
            return True

    def clear_all(self) -> None:
        with self._lock:
            self._entries = []
            self._persist()

    def statistics(self) -> HistoryStatistics:
        entries = self.entries

        app_usage: Dict[str, int] = Counter(e.target_app_name or "Unknown" for e in entries)

        # Last 7 days only
        cutoff = self._clock() - timedelta(days=7)
        daily_usage: Dict[date, int] = Counter(
            e.timestamp.date() for e in entries if e.timestamp >= cutoff
        )

        return HistoryStatistics(
            total_entries=len(entries),
            refined_count=sum(1 for e in entries if e.was_refined),
            total_duration=sum(e.duration for e in entries if e.duration is not None),
            total_characters=sum(len(e.final_text) for e in entries),
            app_usage=dict(app_usage),
            daily_usage=dict(daily_usage),
        )

    def export_json(self) -> str:
        with self._lock:
            data = [entry.to_dict() for entry in self._entries]
        return json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False)

    def import_json(self, data: Union[str, bytes], merge: bool = True) -> int:
        """
        Load entries exported by `export_json`.

        Merging skips ids already present and keeps the list newest first
        within the size cap.

        Returns:
            Number of imported entries kept

        Raises:
            DecodingError: The data is not a valid entry list
        """
        try:
            raw = json.loads(data)
        except (ValueError, UnicodeDecodeError) as e:
            raise DecodingError(f"Invalid JSON: {e}") from e
        imported = _parse_entries(raw)

        with self._lock:
            if merge:
                known = {e.id for e in self._entries}
                new = [e for e in imported if e.id not in known]
                combined = self._entries + new
            else:
                new = imported
                combined = list(imported)
            combined.sort(key=lambda e: e.timestamp, reverse=True)
            self._entries = combined[: self._max_entries]
            self._persist()
            kept = {e.id for e in self._entries}
        return sum(1 for e in new if e.id in kept)

    def export_csv(self) -> str:
        """
        History as CSV, newest first.

        Fields containing commas, quotes or newlines are quoted, with inner
        quotes doubled.
        """
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for entry in self.entries:
            writer.writerow([
                entry.timestamp.isoformat(timespec="seconds"),
                entry.original_text,
                entry.refined_text or "",
                entry.target_app_name or "",
                f"{entry.duration:.1f}" if entry.duration is not None else "",
            ])
        return buffer.getvalue()
