"""
Static metadata about the supported STT vendors.

Which models each vendor accepts, where its endpoint lives and which
environment variable holds its key. Nothing here changes at runtime.
"""

from enum import Enum
from typing import Dict, Optional, Tuple, Union

from ..errors import InvalidConfig


class ProviderType(str, Enum):
    SILICONFLOW = "siliconflow"
    BIGMODEL = "bigmodel"
    OPENAI = "openai"
    GROQ = "groq"
    OPENROUTER = "openrouter"

    @classmethod
    def from_id(cls, value: Union[str, "ProviderType"]) -> "ProviderType":
        """Look up a provider by id, case-insensitively."""
        if isinstance(value, ProviderType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidConfig(f"Unknown provider: {value}") from None

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def default_endpoint(self) -> str:
        return _ENDPOINTS[self]

    @property
    def env_key(self) -> str:
        """Environment variable that holds this provider's API key."""
        return f"{self.name}_API_KEY"

    @property
    def rest_models(self) -> Tuple[str, ...]:
        return _REST_MODELS[self]

    @property
    def realtime_models(self) -> Tuple[str, ...]:
        # Streaming is not offered by any backend yet
        return ()

    @property
    def all_models(self) -> Tuple[str, ...]:
        return self.rest_models + self.realtime_models

    @property
    def default_model(self) -> str:
        return _DEFAULT_MODELS[self]

    def supports_realtime(self, model: str) -> bool:
        return model in self.realtime_models

    @property
    def supports_realtime_streaming(self) -> bool:
        return bool(self.realtime_models)


_DISPLAY_NAMES: Dict[ProviderType, str] = {
    ProviderType.SILICONFLOW: "SiliconFlow",
    ProviderType.BIGMODEL: "BigModel",
    ProviderType.OPENAI: "OpenAI",
    ProviderType.GROQ: "Groq",
    ProviderType.OPENROUTER: "OpenRouter",
}

_ENDPOINTS: Dict[ProviderType, str] = {
    ProviderType.SILICONFLOW: "https://api.siliconflow.cn/v1/audio/transcriptions",
    ProviderType.BIGMODEL: "https://api.z.ai/api/paas/v4/audio/transcriptions",
    ProviderType.OPENAI: "https://api.openai.com/v1/audio/transcriptions",
    ProviderType.GROQ: "https://api.groq.com/openai/v1/audio/transcriptions",
    ProviderType.OPENROUTER: "https://openrouter.ai/api/v1/chat/completions",
}

_REST_MODELS: Dict[ProviderType, Tuple[str, ...]] = {
    ProviderType.SILICONFLOW: ("TeleAI/TeleSpeechASR", "FunAudioLLM/SenseVoiceSmall"),
    ProviderType.BIGMODEL: ("glm-asr-2512",),
    ProviderType.OPENAI: ("whisper-1", "gpt-4o-transcribe", "gpt-4o-mini-transcribe"),
    ProviderType.GROQ: ("whisper-large-v3", "whisper-large-v3-turbo"),
    ProviderType.OPENROUTER: ("google/gemini-2.5-flash", "google/gemini-2.0-flash-001"),
}

# SenseVoiceSmall is the model verified against the transcriptions endpoint
_DEFAULT_MODELS: Dict[ProviderType, str] = {
    ProviderType.SILICONFLOW: "FunAudioLLM/SenseVoiceSmall",
    ProviderType.BIGMODEL: "glm-asr-2512",
    ProviderType.OPENAI: "whisper-1",
    ProviderType.GROQ: "whisper-large-v3",
    ProviderType.OPENROUTER: "google/gemini-2.5-flash",
}


class RecognitionLanguage(str, Enum):
    AUTO = "auto"
    CHINESE = "zh"
    ENGLISH = "en"
    CHINESE_ENGLISH = "zh-en"
    JAPANESE = "ja"
    KOREAN = "ko"

    @classmethod
    def from_id(cls, value: str) -> "RecognitionLanguage":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidConfig(f"Unknown recognition language: {value}") from None

    @property
    def display_name(self) -> str:
        return _LANGUAGE_NAMES[self]

    def api_code(self, provider: ProviderType) -> Optional[str]:
        """
        Language code to send to `provider`, or None to let it auto-detect.

        Mixed Chinese-English is sent as "zh" to the vendors whose models
        handle code-switching; Whisper-style models detect it better alone.
        """
        if self is RecognitionLanguage.AUTO:
            return None
        if self is RecognitionLanguage.CHINESE_ENGLISH:
            if provider in (ProviderType.SILICONFLOW, ProviderType.BIGMODEL):
                return "zh"
            return None
        return self.value


_LANGUAGE_NAMES: Dict[RecognitionLanguage, str] = {
    RecognitionLanguage.AUTO: "Auto Detect",
    RecognitionLanguage.CHINESE: "Chinese (中文)",
    RecognitionLanguage.ENGLISH: "English",
    RecognitionLanguage.CHINESE_ENGLISH: "Chinese-English Mix (中英混合)",
    RecognitionLanguage.JAPANESE: "Japanese (日本語)",
    RecognitionLanguage.KOREAN: "Korean (한국어)",
}
