"""
The dictation pipeline.

One run takes an utterance's audio to finished text: transcription, then the
text transform chain (filler filter, voice commands, context-aware
refinement), then a history record. Delivery is up to the caller.
"""

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional

from .audio import pcm_duration
from .commands import VoiceCommandProcessor
from .config import Config
from .context import MacAppInspector, StyleSelector
from .credentials import CredentialNotFound, CredentialStore, EnvCredentialStore
from .errors import Cancelled, InvalidAPIKey
from .filler import FillerWordFilter
from .history import HistoryRecorder
from .metrics import MetricsWriter, log_pipeline_complete, log_refinement
from .network import NetworkClient
from .providers import ProviderRegistry, RecognitionLanguage, default_registry
from .refine import OpenAICompatibleRefinementProvider, resolve_refinement_config
from .store import JsonFileStore
from .types import (
    AppIdentity, AppInspector, AudioStream, ConfigSnapshot, PipelineResult,
    ProviderConfig, TranscriptionResult,
)
from .vocabulary import VocabularyManager


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainResult:
    text: str               # Final text
    filtered_text: str      # After stages 1 and 2
    refined: bool           # Stage 3 produced different text


class TextTransformChain:
    """
    Filler filter -> voice commands -> context-aware refinement.

    Stages 1 and 2 are local and configured per run from the snapshot.
    Stage 3 calls an LLM; if it fails for any reason the text from stage 2
    is returned unchanged.

    Usage:
        chain = TextTransformChain(refiner, styles, vocabulary, credentials)
        result = chain.run("um hello comma world", config.snapshot(), app)
    """

    def __init__(
        self,
        refiner: Optional[OpenAICompatibleRefinementProvider] = None,
        styles: Optional[StyleSelector] = None,
        vocabulary: Optional[VocabularyManager] = None,
        credentials: Optional[CredentialStore] = None,
        metrics: Optional[MetricsWriter] = None,
    ):
        self.refiner = refiner
        self.styles = styles
        self.vocabulary = vocabulary
        self.credentials = credentials
        self.metrics = metrics

    def run(
        self,
        text: str,
        snapshot: ConfigSnapshot,
        app: Optional[AppIdentity] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ChainResult:
        filler = FillerWordFilter(snapshot.filler_filter_enabled, snapshot.filler_aggressiveness)
        commands = VoiceCommandProcessor(snapshot.voice_commands_enabled)

        filtered = filler.filter(text)
        if filtered != text:
            logger.debug("[Chain] Filler words removed: %r -> %r", text, filtered)

        with_commands = commands.process(filtered)
        if with_commands != filtered:
            logger.debug("[Chain] Voice commands applied: %r -> %r", filtered, with_commands)

        if not snapshot.refinement_enabled or not with_commands.strip():
            return ChainResult(with_commands, with_commands, False)

        refined = self._refine(with_commands, snapshot, app, cancel)
        return ChainResult(refined, with_commands, refined != with_commands)

    def build_system_prompt(self, base_prompt: str, app: Optional[AppIdentity]) -> str:
        """Vocabulary block, then the base prompt, then style guidance for `app`."""
        prompt = base_prompt
        if self.vocabulary is not None:
            vocab_context = self.vocabulary.context_for_refinement()
            if vocab_context:
                prompt = f"{vocab_context}\n{prompt}"
        if self.styles is not None:
            prompt = self.styles.generate_context_aware_prompt(prompt, app)
        return prompt

    def _refine(
        self,
        text: str,
        snapshot: ConfigSnapshot,
        app: Optional[AppIdentity],
        cancel: Optional[threading.Event],
    ) -> str:
        style = self.styles.style_for_app(app).value if self.styles is not None else "neutral"
        start = time.perf_counter()

        try:
            if self.refiner is None or self.credentials is None:
                raise CredentialNotFound("refinement is not configured")
            config = resolve_refinement_config(
                self.credentials, snapshot.refinement_provider, snapshot.refinement_model
            )
            if config is None:
                raise CredentialNotFound("no refinement API key found")

            system_prompt = self.build_system_prompt(snapshot.refinement_system_prompt, app)
            refined = self.refiner.refine(text, system_prompt, config, cancel)
        except Cancelled:
            raise
        except Exception as e:  # noqa: BLE001 - refinement is best effort
            logger.warning("[Chain] Refinement failed, keeping unrefined text: %s", e)
            log_refinement(self.metrics, style, (time.perf_counter() - start) * 1000, succeeded=False)
            return text

        log_refinement(self.metrics, style, (time.perf_counter() - start) * 1000, succeeded=True)
        return refined


class _CountingStream:
    """Passes chunks through while counting bytes."""

    def __init__(self, stream: AudioStream):
        self._stream = stream
        self.byte_count = 0

    def __iter__(self) -> Iterator[bytes]:
        for chunk in self._stream:
            self.byte_count += len(chunk)
            yield chunk


class DictationPipeline:
    """
    Runs one utterance end to end.

    Usage:
        pipeline = build_pipeline(Config.load())
        result = pipeline.run(read_audio_file("memo.wav"))
        print(result.text)
    """

    def __init__(
        self,
        config_snapshot_fn: Callable[[], ConfigSnapshot],
        registry: ProviderRegistry,
        credentials: CredentialStore,
        chain: TextTransformChain,
        history: Optional[HistoryRecorder] = None,
        inspector: Optional[AppInspector] = None,
        metrics: Optional[MetricsWriter] = None,
    ):
        self.config_snapshot_fn = config_snapshot_fn
        self.registry = registry
        self.credentials = credentials
        self.chain = chain
        self.history = history
        self.inspector = inspector
        self.metrics = metrics

    def _apply_snapshot(self, snapshot: ConfigSnapshot) -> None:
        """Bring service toggles in line with this run's settings."""
        if self.chain.vocabulary is not None:
            self.chain.vocabulary.enabled = snapshot.dictionary_enabled
        if self.chain.styles is not None:
            self.chain.styles.enabled = snapshot.context_aware_enabled
        if self.history is not None:
            self.history.enabled = snapshot.history_enabled
            if self.history.max_entries != snapshot.max_history_entries:
                self.history.max_entries = snapshot.max_history_entries

    def provider_config(self, snapshot: ConfigSnapshot) -> ProviderConfig:
        """
        Per-call STT configuration.

        Raises:
            InvalidAPIKey: No key is stored for the configured provider
            InvalidConfig: Unknown provider or language
        """
        provider = self.registry.get(snapshot.stt_provider)
        try:
            api_key = self.credentials.get_key(provider.provider_type.value)
        except CredentialNotFound:
            logger.error("[Pipeline] No API key for %s", provider.name)
            raise InvalidAPIKey() from None

        language = RecognitionLanguage.from_id(snapshot.recognition_language)
        keywords = self.chain.vocabulary.prompt_terms() if self.chain.vocabulary is not None else []

        return ProviderConfig(
            api_key=api_key,
            model=snapshot.stt_model,
            system_prompt=snapshot.stt_prompt or None,
            language=language.api_code(provider.provider_type),
            keywords=tuple(keywords) or None,
        )

    def run(
        self,
        stream: AudioStream,
        app: Optional[AppIdentity] = None,
        cancel: Optional[threading.Event] = None,
    ) -> PipelineResult:
        """
        Transcribe and refine one utterance.

        Args:
            stream: PCM chunks for the utterance
            app: Target application; asked of the inspector when omitted
            cancel: Set to abandon the run

        Returns:
            PipelineResult with the final text

        Raises:
            STTError: Transcription failed (refinement failures never raise)
            Cancelled: The cancel event was set
        """
        start = time.perf_counter()
        snapshot = self.config_snapshot_fn()
        self._apply_snapshot(snapshot)

        if app is None and self.inspector is not None:
            app = self.inspector.current_app()

        provider = self.registry.get(snapshot.stt_provider)
        config = self.provider_config(snapshot)

        counted = _CountingStream(stream)
        transcription = TranscriptionResult(text=provider.transcribe(counted, config, cancel))
        logger.info("[Pipeline] Transcript from %s: %r", provider.name, transcription.text)

        chain_result = self.chain.run(transcription.text, snapshot, app, cancel)
        duration = pcm_duration(counted.byte_count)

        if self.history is not None:
            self.history.add_entry(
                original_text=transcription.text,
                refined_text=chain_result.text if chain_result.text != transcription.text else None,
                target_app_bundle_id=app.bundle_id if app else None,
                target_app_name=app.name if app else None,
                duration=duration,
                provider=provider.provider_type.value,
            )

        total_ms = (time.perf_counter() - start) * 1000
        log_pipeline_complete(self.metrics, provider.provider_type.value, total_ms, chain_result.text)
        logger.info("[Pipeline] Complete in %.0fms", total_ms)

        return PipelineResult(
            text=chain_result.text,
            transcript=transcription.text,
            filtered_text=chain_result.filtered_text,
            refined=chain_result.refined,
            provider=provider.provider_type.value,
            duration=duration,
        )


def build_pipeline(
    config: Config,
    credentials: Optional[CredentialStore] = None,
    inspector: Optional[AppInspector] = None,
    metrics: Optional[MetricsWriter] = None,
    client: Optional[NetworkClient] = None,
) -> DictationPipeline:
    """Wire every service from `config`. Nothing is shared globally."""
    if credentials is None:
        credentials = EnvCredentialStore([Path(".env"), config.env_file])
    if inspector is None:
        inspector = MacAppInspector()
    if client is None:
        client = NetworkClient(metrics=metrics)

    vocabulary = VocabularyManager(
        JsonFileStore(config.dictionary_file), enabled=config.dictionary_enabled
    )
    styles = StyleSelector(
        JsonFileStore(config.app_styles_file), enabled=config.context_aware_enabled
    )
    history = HistoryRecorder(
        JsonFileStore(config.history_file),
        enabled=config.history_enabled,
        max_entries=config.max_history_entries,
    )
    chain = TextTransformChain(
        refiner=OpenAICompatibleRefinementProvider(client),
        styles=styles,
        vocabulary=vocabulary,
        credentials=credentials,
        metrics=metrics,
    )

    return DictationPipeline(
        config_snapshot_fn=config.snapshot,
        registry=default_registry(client, metrics),
        credentials=credentials,
        chain=chain,
        history=history,
        inspector=inspector,
        metrics=metrics,
    )
