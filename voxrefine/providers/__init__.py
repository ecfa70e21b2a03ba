"""
Speech-to-text providers.

Each provider is a request builder and a response parser for one vendor.
The shared `transcribe` template drains the audio stream, sends the request
through the retrying NetworkClient and turns failures into STTErrors.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Union
from urllib.parse import urlparse

from ..errors import (
    AudioProcessingError,
    Cancelled,
    InvalidAPIKey,
    InvalidConfig,
    InvalidModel,
    TranscriptionError,
)
from ..metrics import MetricsWriter, log_transcription
from ..network import HttpRequest, NetworkClient, stt_timeout
from ..types import AudioStream, ProviderConfig
from .catalog import ProviderType, RecognitionLanguage


logger = logging.getLogger(__name__)

__all__ = [
    "ProviderRegistry",
    "ProviderType",
    "RecognitionLanguage",
    "STTProvider",
    "collect_audio",
    "default_registry",
    "is_valid_endpoint",
]


def is_valid_endpoint(url: Optional[str]) -> bool:
    """True when `url` is an absolute http(s) URL."""
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def collect_audio(stream: AudioStream, cancel: Optional[threading.Event] = None) -> bytes:
    """
    Drain an utterance's chunk stream into one buffer.

    Raises:
        AudioProcessingError: The stream failed or produced no audio
        Cancelled: The cancel event was set while reading
    """
    buffer = bytearray()
    try:
        for chunk in stream:
            if cancel is not None and cancel.is_set():
                raise Cancelled("Audio stream cancelled")
            buffer.extend(chunk)
    except Cancelled:
        raise
    except Exception as e:  # noqa: BLE001 - any source failure aborts the utterance
        raise AudioProcessingError(f"Audio stream failed: {e}") from e

    if not buffer:
        raise AudioProcessingError("No audio data captured")
    return bytes(buffer)


class STTProvider(ABC):
    """
    Base class for transcription providers.

    Subclasses must implement:
    - provider_type: Which vendor this is
    - validate_config(): Reject unusable configuration before any I/O
    - build_request(): Turn PCM audio into the vendor's HTTP request
    - parse_response(): Extract plain text from a 2xx response body
    """

    def __init__(
        self,
        client: Optional[NetworkClient] = None,
        metrics: Optional[MetricsWriter] = None,
    ):
        self.client = client if client is not None else NetworkClient()
        self.metrics = metrics

    @property
    @abstractmethod
    def provider_type(self) -> ProviderType:
        pass

    @abstractmethod
    def validate_config(self, config: ProviderConfig) -> None:
        """
        Raise InvalidAPIKey, InvalidModel or InvalidConfig for unusable settings.
        """
        pass

    @abstractmethod
    def build_request(self, pcm: bytes, config: ProviderConfig) -> HttpRequest:
        """
        Build the vendor request for one utterance.

        Args:
            pcm: Raw 24 kHz mono PCM16 audio
            config: Validated provider configuration
        """
        pass

    @abstractmethod
    def parse_response(self, content: bytes) -> str:
        """
        Extract the transcript from a successful response body.

        Raises:
            DecodingError: The body is not what the vendor documents
        """
        pass

    @property
    def name(self) -> str:
        return self.provider_type.display_name

    def endpoint(self, config: ProviderConfig) -> str:
        return config.endpoint or self.provider_type.default_endpoint

    def transcribe(
        self,
        stream: AudioStream,
        config: ProviderConfig,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        """
        Transcribe one utterance.

        Args:
            stream: PCM chunks, consumed exactly once
            config: Per-call provider configuration
            cancel: Optional event to abandon the call

        Returns:
            Transcript text
        """
        self.validate_config(config)
        pcm = collect_audio(stream, cancel)

        start = time.perf_counter()
        request = self.build_request(pcm, config)
        timeout = stt_timeout(len(pcm))
        logger.info("[%s] Calculated timeout: %.0fs for audio size: %d bytes", self.name, timeout, len(pcm))

        response = self.client.execute(request, timeout=timeout, label=self.name, cancel=cancel)
        if not response.ok:
            raise TranscriptionError(f"API Error ({response.status}): {response.text()}")

        text = self.parse_response(response.content)
        latency_ms = (time.perf_counter() - start) * 1000
        logger.info("[%s] %d bytes -> %.2fs", self.name, len(pcm), latency_ms / 1000)
        log_transcription(self.metrics, self.provider_type.value, len(pcm), latency_ms, text)
        return text

    def _validate_common(self, config: ProviderConfig) -> None:
        if not config.api_key or not config.api_key.strip():
            raise InvalidAPIKey()
        if not config.model or not config.model.strip():
            raise InvalidModel()
        if config.endpoint is not None and not is_valid_endpoint(config.endpoint):
            raise InvalidConfig(f"Invalid endpoint URL: {config.endpoint}")
        # Custom endpoints may serve models we don't know about
        if config.endpoint is None and config.model not in self.provider_type.all_models:
            raise InvalidModel()


class ProviderRegistry:
    """
    Holds one provider instance per vendor.

    Usage:
        registry = ProviderRegistry()
        registry.register(SiliconFlowProvider(client))
        provider = registry.get("siliconflow")
    """

    def __init__(self):
        self.providers: Dict[ProviderType, STTProvider] = {}
        self._lock = threading.Lock()

    def register(self, provider: STTProvider) -> None:
        with self._lock:
            self.providers[provider.provider_type] = provider

    def get(self, provider: Union[str, ProviderType]) -> STTProvider:
        """
        Get a provider by type or id.

        Raises:
            InvalidConfig: No provider is registered under that id
        """
        provider_type = ProviderType.from_id(provider)
        with self._lock:
            found = self.providers.get(provider_type)
        if found is None:
            raise InvalidConfig(f"Provider not registered: {provider_type.value}")
        return found

    def values(self) -> List[STTProvider]:
        with self._lock:
            return list(self.providers.values())

    def types(self) -> List[ProviderType]:
        with self._lock:
            return list(self.providers)


def default_registry(
    client: Optional[NetworkClient] = None,
    metrics: Optional[MetricsWriter] = None,
) -> ProviderRegistry:
    """Registry with every built-in provider sharing one NetworkClient."""
    from .openai_compatible import (
        BigModelProvider,
        GroqProvider,
        OpenAIProvider,
        SiliconFlowProvider,
    )
    from .openrouter import OpenRouterProvider

    client = client if client is not None else NetworkClient(metrics=metrics)
    registry = ProviderRegistry()
    for provider_cls in (
        SiliconFlowProvider,
        BigModelProvider,
        OpenAIProvider,
        GroqProvider,
        OpenRouterProvider,
    ):
        registry.register(provider_cls(client, metrics))
    return registry
