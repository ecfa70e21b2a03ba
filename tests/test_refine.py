"""
Tests for LLM refinement over chat completions.
"""

import pytest
import requests


def make_config(**overrides):
    from voxrefine.types import ProviderConfig

    values = {
        "api_key": "sk-test",
        "model": "Qwen/Qwen2.5-7B-Instruct",
        "endpoint": "https://api.siliconflow.cn/v1/chat/completions",
    }
    values.update(overrides)
    return ProviderConfig(**values)


def chat_body(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class TestRefinementProvider:
    """Tests for OpenAICompatibleRefinementProvider."""

    def test_refine_success(self, client, session, http_response):
        from voxrefine.refine import OpenAICompatibleRefinementProvider

        session.request.return_value = http_response(200, chat_body("  Hello, world.  "))
        provider = OpenAICompatibleRefinementProvider(client)

        result = provider.refine("um hello world", "Clean this up.", make_config())

        assert result == "Hello, world."
        args, kwargs = session.request.call_args
        assert args == ("POST", "https://api.siliconflow.cn/v1/chat/completions")
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["timeout"] == 10.0
        assert kwargs["json"] == {
            "model": "Qwen/Qwen2.5-7B-Instruct",
            "messages": [
                {"role": "system", "content": "Clean this up."},
                {"role": "user", "content": "um hello world"},
            ],
            "temperature": 0.3,
            "stream": False,
        }

    def test_default_model_when_config_has_none(self, client, session, http_response):
        from voxrefine.refine import OpenAICompatibleRefinementProvider

        session.request.return_value = http_response(200, chat_body("ok"))

        OpenAICompatibleRefinementProvider(client).refine("x", "p", make_config(model=""))

        assert session.request.call_args.kwargs["json"]["model"] == "Qwen/Qwen2.5-7B-Instruct"

    def test_missing_key(self, client, session):
        from voxrefine.errors import InvalidConfig
        from voxrefine.refine import OpenAICompatibleRefinementProvider

        with pytest.raises(InvalidConfig) as exc_info:
            OpenAICompatibleRefinementProvider(client).refine("x", "p", make_config(api_key=""))

        assert exc_info.value == InvalidConfig("API key is missing")
        session.request.assert_not_called()

    def test_invalid_url(self, client, session):
        from voxrefine.errors import InvalidConfig
        from voxrefine.refine import OpenAICompatibleRefinementProvider

        with pytest.raises(InvalidConfig) as exc_info:
            OpenAICompatibleRefinementProvider(client).refine("x", "p", make_config(endpoint="::nope"))

        assert exc_info.value == InvalidConfig("Invalid API URL")
        session.request.assert_not_called()

    def test_non_2xx(self, client, session, http_response):
        from voxrefine.errors import NetworkError
        from voxrefine.refine import OpenAICompatibleRefinementProvider

        session.request.return_value = http_response(429, content=b"rate limited")

        with pytest.raises(NetworkError) as exc_info:
            OpenAICompatibleRefinementProvider(client).refine("x", "p", make_config())

        assert exc_info.value.detail == "Server returned status code 429"
        assert session.request.call_count == 1

    @pytest.mark.parametrize("body", [
        {"choices": []},
        {"choices": [{"message": {"content": ""}}]},
        {"choices": [{"message": {"content": None}}]},
        {"error": "nope"},
    ])
    def test_missing_content(self, client, session, http_response, body):
        from voxrefine.errors import DecodingError
        from voxrefine.refine import OpenAICompatibleRefinementProvider

        session.request.return_value = http_response(200, body)

        with pytest.raises(DecodingError):
            OpenAICompatibleRefinementProvider(client).refine("x", "p", make_config())

    def test_transport_retried(self, client, session, http_response):
        from voxrefine.refine import OpenAICompatibleRefinementProvider

        session.request.side_effect = [requests.Timeout("slow"), http_response(200, chat_body("ok"))]

        assert OpenAICompatibleRefinementProvider(client).refine("x", "p", make_config()) == "ok"
        assert client.delays == [1.0]


class TestResolveConfig:
    """Tests for picking a refinement backend by available keys."""

    def test_preferred_backend(self):
        from voxrefine.credentials import StaticCredentialStore
        from voxrefine.refine import resolve_refinement_config

        store = StaticCredentialStore({"siliconflow": "sf-key", "openai": "oa-key"})

        config = resolve_refinement_config(store, "siliconflow", "Qwen/Qwen2.5-72B-Instruct")

        assert config.api_key == "sf-key"
        assert config.model == "Qwen/Qwen2.5-72B-Instruct"
        assert config.endpoint == "https://api.siliconflow.cn/v1/chat/completions"

    def test_falls_back_to_openai(self):
        from voxrefine.credentials import StaticCredentialStore
        from voxrefine.refine import resolve_refinement_config

        store = StaticCredentialStore({"openai": "oa-key"})

        config = resolve_refinement_config(store, "siliconflow", "Qwen/Qwen2.5-72B-Instruct")

        assert config.api_key == "oa-key"
        assert config.model == "gpt-3.5-turbo"
        assert config.endpoint == "https://api.openai.com/v1/chat/completions"

    def test_no_keys(self):
        from voxrefine.credentials import StaticCredentialStore
        from voxrefine.refine import resolve_refinement_config

        assert resolve_refinement_config(StaticCredentialStore({})) is None
