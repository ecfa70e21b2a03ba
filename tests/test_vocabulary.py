"""
Tests for the custom vocabulary manager.
"""

import json

import pytest


def make_manager(store=None, enabled=True):
    from voxrefine.store import MemoryStore
    from voxrefine.vocabulary import VocabularyManager
    return VocabularyManager(store if store is not None else MemoryStore(), enabled=enabled)


class TestAddEntry:
    """Tests for adding and de-duplicating terms."""

    def test_case_insensitive_duplicates(self):
        vocab = make_manager()

        first = vocab.add_entry("OpenAI")
        second = vocab.add_entry("openai")

        assert first is not None
        assert second is None
        assert [e.term for e in vocab.entries] == ["OpenAI"]

    def test_trims_and_ignores_blank(self):
        vocab = make_manager()

        assert vocab.add_entry("   ") is None
        entry = vocab.add_entry("  Kubernetes  ", pronunciation=" koo-ber-net-eez ")

        assert entry.term == "Kubernetes"
        assert entry.pronunciation == "koo-ber-net-eez"
        assert len(entry.id) == 32

    def test_insertion_order_kept(self):
        vocab = make_manager()
        for term in ["Zed", "Alpha", "Mid"]:
            vocab.add_entry(term)

        assert [e.term for e in vocab.entries] == ["Zed", "Alpha", "Mid"]

    def test_persisted_on_change(self):
        from voxrefine.store import MemoryStore

        store = MemoryStore()
        vocab = make_manager(store)
        vocab.add_entry("Anthropic")

        assert store.saves == 1
        assert store.data[0]["term"] == "Anthropic"
        assert store.data[0]["category"] == "General"


class TestEditEntries:
    """Tests for update, remove and clear."""

    def test_update_by_id(self):
        from dataclasses import replace
        from voxrefine.vocabulary import EntryCategory

        vocab = make_manager()
        entry = vocab.add_entry("Nguyen")

        assert vocab.update_entry(replace(entry, pronunciation="win", category=EntryCategory.NAME))
        updated = vocab.get(entry.id)
        assert updated.pronunciation == "win"
        assert updated.category is EntryCategory.NAME

    def test_remove_and_clear(self):
        vocab = make_manager()
        a = vocab.add_entry("A")
        vocab.add_entry("B")

        assert vocab.remove_entry(a.id) is True
        assert vocab.remove_entry(a.id) is False
        assert [e.term for e in vocab.entries] == ["B"]

        vocab.clear_all()
        assert vocab.entries == []


class TestPromptGeneration:
    """Tests for STT hints and refinement context."""

    def test_terms_for_prompt(self):
        vocab = make_manager()
        vocab.add_entry("Nguyen", pronunciation="win")
        vocab.add_entry("Kubernetes")

        assert vocab.terms_for_prompt() == "Nguyen (win), Kubernetes"
        assert vocab.prompt_terms() == ["Nguyen (win)", "Kubernetes"]

    def test_none_when_disabled_or_empty(self):
        assert make_manager().terms_for_prompt() is None
        assert make_manager().context_for_refinement() is None

        vocab = make_manager(enabled=False)
        vocab.add_entry("Kubernetes")
        assert vocab.terms_for_prompt() is None
        assert vocab.context_for_refinement() is None
        assert vocab.prompt_terms() == []

    def test_context_grouped_and_sorted(self):
        from voxrefine.vocabulary import EntryCategory

        vocab = make_manager()
        vocab.add_entry("OpenAI", category=EntryCategory.BRAND)
        vocab.add_entry("Nguyen", category=EntryCategory.NAME)
        vocab.add_entry("Anthropic", category=EntryCategory.BRAND)
        vocab.add_entry("gRPC", category=EntryCategory.TECHNICAL)

        assert vocab.context_for_refinement() == (
            "Custom vocabulary to preserve exactly as written:\n"
            "- Brand: OpenAI, Anthropic\n"
            "- Name: Nguyen\n"
            "- Technical: gRPC\n"
        )

    def test_terms_by_category(self):
        from voxrefine.vocabulary import EntryCategory

        vocab = make_manager()
        vocab.add_entry("OpenAI", category=EntryCategory.BRAND)

        assert list(vocab.terms_by_category()) == [EntryCategory.BRAND]


class TestImportExport:
    """Tests for JSON import and export."""

    def test_export_format(self):
        vocab = make_manager()
        entry = vocab.add_entry("OpenAI")

        exported = json.loads(vocab.export_json())

        assert exported == [{
            "category": "General",
            "created_at": entry.created_at.isoformat(),
            "id": entry.id,
            "pronunciation": None,
            "term": "OpenAI",
        }]

    def test_merge_skips_duplicates(self):
        source = make_manager()
        source.add_entry("openai")
        source.add_entry("Anthropic")

        target = make_manager()
        target.add_entry("OpenAI")

        added = target.import_json(source.export_json(), merge=True)

        assert added == 1
        assert [e.term for e in target.entries] == ["OpenAI", "Anthropic"]

    def test_replace(self):
        source = make_manager()
        source.add_entry("Anthropic")

        target = make_manager()
        target.add_entry("OpenAI")
        target.import_json(source.export_json(), merge=False)

        assert [e.term for e in target.entries] == ["Anthropic"]
        assert target.entries[0].id == source.entries[0].id

    def test_merge_skips_existing_ids(self):
        vocab = make_manager()
        existing = vocab.add_entry("OpenAI")

        added = vocab.import_json(json.dumps([
            {"id": existing.id, "term": "Anthropic", "created_at": "2026-03-14T09:00:00"},
            {"id": "new-id", "term": "Mistral", "created_at": "2026-03-14T09:00:00"},
        ]))

        assert added == 1
        assert [e.term for e in vocab.entries] == ["OpenAI", "Mistral"]
        assert vocab.remove_entry(existing.id) is True
        assert [e.term for e in vocab.entries] == ["Mistral"]

    def test_import_utc_created_at(self):
        from datetime import datetime, timezone

        vocab = make_manager()
        vocab.import_json(json.dumps([
            {"id": "a", "term": "Anthropic", "created_at": "2026-03-14T08:00:00Z"},
        ]))

        expected = datetime(2026, 3, 14, 8, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        assert vocab.entries[0].created_at == expected

    @pytest.mark.parametrize("data", ["not json", '{"term": "x"}', '[{"term": "x"}]'])
    def test_malformed_import(self, data):
        from voxrefine.errors import DecodingError

        vocab = make_manager()
        vocab.add_entry("Keep")

        with pytest.raises(DecodingError):
            vocab.import_json(data)

        assert [e.term for e in vocab.entries] == ["Keep"]

    def test_reload_from_file(self, tmp_path):
        from voxrefine.store import JsonFileStore
        from voxrefine.vocabulary import EntryCategory, VocabularyManager

        path = tmp_path / "dictionary.json"
        VocabularyManager(JsonFileStore(path)).add_entry("Kubernetes", category=EntryCategory.TECHNICAL)

        reloaded = VocabularyManager(JsonFileStore(path))

        assert reloaded.entries[0].term == "Kubernetes"
        assert reloaded.entries[0].category is EntryCategory.TECHNICAL
