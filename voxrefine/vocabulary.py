"""
Custom vocabulary.

Names, brands and jargon the user wants spelled a particular way. Terms are
passed to STT providers as keyword hints and to the refinement model as a
"preserve exactly" list.
"""

import json
import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from .errors import DecodingError
from .store import JsonFileStore, parse_timestamp


logger = logging.getLogger(__name__)


class EntryCategory(str, Enum):
    GENERAL = "General"
    NAME = "Name"
    BRAND = "Brand"
    TECHNICAL = "Technical"
    MEDICAL = "Medical"
    LEGAL = "Legal"
    CUSTOM = "Custom"

    @classmethod
    def parse(cls, value: str) -> "EntryCategory":
        """Accept "Brand", "brand" or "BRAND"."""
        for category in cls:
            if category.value.lower() == str(value).strip().lower():
                return category
        raise ValueError(f"Unknown category: {value}")


@dataclass(frozen=True)
class DictionaryEntry:
    term: str
    pronunciation: Optional[str] = None
    category: EntryCategory = EntryCategory.GENERAL
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def prompt_term(self) -> str:
        """Term with its pronunciation hint, e.g. "Nguyen (win)"."""
        if self.pronunciation:
            return f"{self.term} ({self.pronunciation})"
        return self.term

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "term": self.term,
            "pronunciation": self.pronunciation,
            "category": self.category.value,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DictionaryEntry":
        return cls(
            id=str(data["id"]),
            term=str(data["term"]),
            pronunciation=data.get("pronunciation") or None,
            category=EntryCategory.parse(data.get("category", EntryCategory.GENERAL.value)),
            created_at=parse_timestamp(data["created_at"]),
        )


def _parse_entries(raw: Any) -> List[DictionaryEntry]:
    if not isinstance(raw, list):
        raise DecodingError("Expected a list of dictionary entries")
    try:
        return [DictionaryEntry.from_dict(item) for item in raw]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodingError(f"Invalid dictionary entry: {e}") from e


class VocabularyManager:
    """
    The user's custom dictionary, persisted on every change.

    Usage:
        vocab = VocabularyManager(JsonFileStore(config.dictionary_file))
        vocab.add_entry("Kubernetes", category=EntryCategory.TECHNICAL)
        keywords = vocab.terms_for_prompt()
    """

    def __init__(
        self,
        store: Optional[JsonFileStore] = None,
        enabled: bool = True,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self.enabled = enabled
        self._store = store
        self._on_change = on_change
        self._lock = threading.Lock()
        self._entries: List[DictionaryEntry] = self._load()

    def _load(self) -> List[DictionaryEntry]:
        if self._store is None:
            return []
        try:
            return _parse_entries(self._store.load(default=[]))
        except DecodingError as e:
            logger.warning("[Vocabulary] Ignoring unreadable dictionary: %s", e)
            return []

    def _persist(self) -> None:
        if self._store is not None:
            self._store.save([entry.to_dict() for entry in self._entries])
        if self._on_change:
            self._on_change()

    def _contains_term(self, term: str) -> bool:
        lowered = term.lower()
        return any(entry.term.lower() == lowered for entry in self._entries)

    @property
    def entries(self) -> List[DictionaryEntry]:
        """Entries in insertion order."""
        with self._lock:
            return list(self._entries)

    def get(self, entry_id: str) -> Optional[DictionaryEntry]:
        with self._lock:
            return next((e for e in self._entries if e.id == entry_id), None)

    def add_entry(
        self,
        term: str,
        pronunciation: Optional[str] = None,
        category: EntryCategory = EntryCategory.GENERAL,
    ) -> Optional[DictionaryEntry]:
        """
        Add a term unless it is blank or already present (ignoring case).

        Returns:
            The new entry, or None if nothing was added
        """
        term = term.strip()
        if not term:
            return None

        pronunciation = pronunciation.strip() if pronunciation else None
        with self._lock:
            if self._contains_term(term):
                logger.debug("[Vocabulary] Skipping duplicate term: %s", term)
                return None
            entry = DictionaryEntry(term=term, pronunciation=pronunciation or None, category=category)
            self._entries.append(entry)
            self._persist()
        return entry

    def update_entry(self, entry: DictionaryEntry) -> bool:
        """Replace the entry with the same id. Returns False if there is none."""
        with self._lock:
            for index, existing in enumerate(self._entries):
                if existing.id == entry.id:
                    self._entries[index] = replace(entry, term=entry.term.strip())
                    self._persist()
                    return True
        return False

    def remove_entry(self, entry_id: str) -> bool:
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

    def prompt_terms(self) -> List[str]:
        """Terms with pronunciation hints; empty when disabled."""
        if not self.enabled:
            return []
        with self._lock:
            return [entry.prompt_term for entry in self._entries]

    def terms_for_prompt(self) -> Optional[str]:
        """Comma-joined terms for STT keyword hints; None when disabled or empty."""
        terms = self.prompt_terms()
        return ", ".join(terms) if terms else None

    def terms_by_category(self) -> Dict[EntryCategory, List[DictionaryEntry]]:
        grouped: Dict[EntryCategory, List[DictionaryEntry]] = {}
        with self._lock:
            for entry in self._entries:
                grouped.setdefault(entry.category, []).append(entry)
        return grouped

    def context_for_refinement(self) -> Optional[str]:
        """
        Vocabulary block for the refinement system prompt.

        Example:
            Custom vocabulary to preserve exactly as written:
            - Brand: OpenAI, Anthropic
            - Name: Nguyen
        """
        if not self.enabled:
            return None
        grouped = self.terms_by_category()
        if not grouped:
            return None

        lines = ["Custom vocabulary to preserve exactly as written:\n"]
        for category in sorted(grouped, key=lambda c: c.value):
            terms = ", ".join(entry.term for entry in grouped[category])
            lines.append(f"- {category.value}: {terms}\n")
        return "".join(lines)

    def export_json(self) -> str:
        with self._lock:
            data = [entry.to_dict() for entry in self._entries]
        return json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False)

    def import_json(self, data: Union[str, bytes], merge: bool = True) -> int:
        """
        Load entries exported by `export_json`.

        Args:
            data: JSON text
            merge: Append entries whose term and id are new; otherwise replace everything

        Returns:
            Number of entries added

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
                added = 0
                known_ids = {e.id for e in self._entries}
                for entry in imported:
                    if entry.id in known_ids or self._contains_term(entry.term):
                        continue
                    self._entries.append(entry)
                    known_ids.add(entry.id)
                    added += 1
            else:
                self._entries = imported
                added = len(imported)
            self._persist()
        return added
