"""
Shared type definitions for VoxRefine.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Tuple


@dataclass(frozen=True)
class ProviderConfig:
    """
    Per-call configuration handed to an STT or refinement provider.

    Built fresh for every call and never mutated.
    """
    api_key: str
    model: str
    system_prompt: Optional[str] = None
    language: Optional[str] = None
    temperature: Optional[float] = None
    keywords: Optional[Tuple[str, ...]] = None
    endpoint: Optional[str] = None


@dataclass(frozen=True)
class TranscriptionResult:
    """Text produced by a provider. Batch transcription is always final."""
    text: str
    is_final: bool = True


@dataclass(frozen=True)
class AppIdentity:
    """The application that had focus when dictation started."""
    bundle_id: str          # e.g., "com.microsoft.VSCode"
    name: str               # e.g., "Code"


@dataclass(frozen=True)
class ConfigSnapshot:
    """
    Immutable snapshot of configuration for one pipeline run.
    Ensures config changes mid-run don't cause inconsistency.
    """
    # Transcription
    stt_provider: str
    stt_model: str
    stt_prompt: str
    recognition_language: str

    # Text transform chain
    filler_filter_enabled: bool
    filler_aggressiveness: int
    voice_commands_enabled: bool

    # Refinement
    refinement_enabled: bool
    refinement_provider: str
    refinement_model: str
    refinement_system_prompt: str
    context_aware_enabled: bool

    # Vocabulary and history
    dictionary_enabled: bool
    history_enabled: bool
    max_history_entries: int


@dataclass(frozen=True)
class PipelineResult:
    """Everything one dictation produced, from raw transcript to final text."""
    text: str                       # Final text handed to the sink
    transcript: str                 # Raw provider output
    filtered_text: str              # After filler filter and voice commands
    refined: bool                   # True when the refinement stage changed the text
    provider: str
    duration: float                 # Seconds of audio


# Audio source contract: a finite, single-pass sequence of PCM byte buffers.
AudioStream = Iterable[bytes]


class AppInspector(Protocol):
    """Reports the foreground application, if it can be determined."""

    def current_app(self) -> Optional[AppIdentity]:
        ...
