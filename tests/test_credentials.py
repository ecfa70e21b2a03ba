"""
Tests for API key lookup.
"""

import pytest


class TestEnvCredentialStore:
    """Tests for environment and .env file lookup."""

    def test_environment_beats_file(self, tmp_path):
        from voxrefine.credentials import EnvCredentialStore

        env_file = tmp_path / ".env"
        env_file.write_text("GROQ_API_KEY=from-file\nOPENAI_API_KEY=file-openai\n")

        store = EnvCredentialStore([env_file], environ={"GROQ_API_KEY": "from-env"})

        assert store.get_key("groq") == "from-env"
        assert store.get_key("openai") == "file-openai"

    def test_later_files_win(self, tmp_path):
        from voxrefine.credentials import EnvCredentialStore

        first = tmp_path / "first.env"
        second = tmp_path / "second.env"
        first.write_text("GROQ_API_KEY=one\n")
        second.write_text("GROQ_API_KEY=two\n")

        store = EnvCredentialStore([first, second, tmp_path / "missing.env"], environ={})

        assert store.get_key("groq") == "two"

    def test_missing_key(self):
        from voxrefine.credentials import CredentialNotFound, EnvCredentialStore

        with pytest.raises(CredentialNotFound, match="SILICONFLOW_API_KEY"):
            EnvCredentialStore(environ={"SILICONFLOW_API_KEY": ""}).get_key("siliconflow")


class TestParseEnvFile:
    """Tests for .env parsing."""

    def test_parses_common_forms(self, tmp_path):
        from voxrefine.credentials import parse_env_file

        env_file = tmp_path / ".env"
        env_file.write_text(
            "# comment\n"
            "\n"
            "PLAIN=abc\n"
            "export EXPORTED=def\n"
            "QUOTED=\"ghi\"\n"
            "SINGLE='jkl'\n"
            "WITH_EQUALS=a=b\n"
            "not a pair\n"
        )

        assert parse_env_file(env_file) == {
            "PLAIN": "abc",
            "EXPORTED": "def",
            "QUOTED": "ghi",
            "SINGLE": "jkl",
            "WITH_EQUALS": "a=b",
        }


class TestStaticCredentialStore:
    """Tests for the in-memory store."""

    def test_lookup_case_insensitive(self):
        from voxrefine.credentials import StaticCredentialStore

        store = StaticCredentialStore({"OpenAI": "sk-test"})

        assert store.get_key("openai") == "sk-test"

    def test_missing(self):
        from voxrefine.credentials import CredentialNotFound, StaticCredentialStore

        with pytest.raises(CredentialNotFound):
            StaticCredentialStore({}).get_key("groq")

    def test_key_name(self):
        from voxrefine.credentials import key_name

        assert key_name("siliconflow") == "SILICONFLOW_API_KEY"
