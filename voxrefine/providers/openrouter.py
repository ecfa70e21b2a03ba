"""
Gemini transcription via OpenRouter's chat completions API.

Multimodal model that handles audio passed inline as base64 WAV.
"""

import base64
import json

from . import STTProvider
from .catalog import ProviderType
from .openai_compatible import build_prompt
from ..audio import frame_wav
from ..errors import DecodingError
from ..network import HttpRequest
from ..types import ProviderConfig


DEFAULT_PROMPT = "Transcribe this speech exactly as spoken. Return only the transcription."


class OpenRouterProvider(STTProvider):

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.OPENROUTER

    def validate_config(self, config: ProviderConfig) -> None:
        self._validate_common(config)

    def build_request(self, pcm: bytes, config: ProviderConfig) -> HttpRequest:
        base64_audio = base64.b64encode(frame_wav(pcm)).decode("utf-8")

        prompt = build_prompt(config) or DEFAULT_PROMPT
        if config.language:
            prompt += f"\nThe speech is in language: {config.language}"

        data = {
            "model": config.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "input_audio",
                            "input_audio": {"data": base64_audio, "format": "wav"},
                        },
                    ],
                }
            ],
            "temperature": config.temperature if config.temperature is not None else 0.0,
            "max_tokens": 4000,
        }

        return HttpRequest(
            method="POST",
            url=self.endpoint(config),
            headers={
                "Authorization": f"Bearer {config.api_key}",
                "Content-Type": "application/json",
            },
            json=data,
        )

    def parse_response(self, content: bytes) -> str:
        try:
            result = json.loads(content)
            text = result["choices"][0]["message"]["content"]
        except (ValueError, UnicodeDecodeError, KeyError, IndexError, TypeError) as e:
            raise DecodingError(f"Failed to decode response: {e}") from e

        if not isinstance(text, str):
            raise DecodingError("Response message has no text content")
        return text.strip()
