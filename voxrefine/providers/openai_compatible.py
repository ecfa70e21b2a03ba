"""
Providers speaking the OpenAI `/audio/transcriptions` wire format.

A multipart upload of a WAV file plus form fields, answered with
`{"text": "..."}`. SiliconFlow, BigModel, OpenAI and Groq differ only in
endpoint, models and which optional fields they accept.
"""

import json
from typing import Dict

from . import STTProvider
from .catalog import ProviderType
from ..audio import frame_wav
from ..errors import DecodingError
from ..network import HttpRequest
from ..types import ProviderConfig


class MultipartSTTProvider(STTProvider):
    """Shared request builder and parser for multipart transcription APIs."""

    supports_prompt = False
    supports_language = False
    supports_temperature = False

    def validate_config(self, config: ProviderConfig) -> None:
        self._validate_common(config)

    def build_request(self, pcm: bytes, config: ProviderConfig) -> HttpRequest:
        fields: Dict[str, str] = {"model": config.model}

        if self.supports_prompt:
            prompt = build_prompt(config)
            if prompt:
                fields["prompt"] = prompt
        if self.supports_language and config.language:
            fields["language"] = config.language
        if self.supports_temperature and config.temperature is not None:
            fields["temperature"] = str(config.temperature)

        return HttpRequest(
            method="POST",
            url=self.endpoint(config),
            headers={"Authorization": f"Bearer {config.api_key}"},
            data=fields,
            files={"file": ("audio.wav", frame_wav(pcm), "audio/wav")},
        )

    def parse_response(self, content: bytes) -> str:
        try:
            payload = json.loads(content)
        except (ValueError, UnicodeDecodeError) as e:
            raise DecodingError(f"Failed to decode response: {e}") from e

        text = payload.get("text") if isinstance(payload, dict) else None
        if not isinstance(text, str):
            raise DecodingError("Response has no 'text' field")
        return text.strip()


def build_prompt(config: ProviderConfig) -> str:
    """Combine the configured prompt with vocabulary hints."""
    parts = []
    if config.system_prompt and config.system_prompt.strip():
        parts.append(config.system_prompt.strip())
    if config.keywords:
        parts.append(", ".join(config.keywords))
    return "\n".join(parts)


class SiliconFlowProvider(MultipartSTTProvider):
    """SenseVoice / TeleSpeech models hosted by SiliconFlow."""

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.SILICONFLOW


class BigModelProvider(MultipartSTTProvider):
    """Zhipu AI's GLM ASR model. Accepts a context prompt."""

    supports_prompt = True

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.BIGMODEL


class OpenAIProvider(MultipartSTTProvider):
    supports_prompt = True
    supports_language = True
    supports_temperature = True

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.OPENAI


class GroqProvider(MultipartSTTProvider):
    """
    Cloud transcription using Groq's Whisper API.

    Fast cloud-based transcription with low latency.
    """

    supports_prompt = True
    supports_language = True
    supports_temperature = True

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.GROQ
