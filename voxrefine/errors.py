"""
Error taxonomy for transcription and refinement.

Configuration errors (InvalidAPIKey, InvalidModel, InvalidConfig) are raised
before any request is sent. NetworkError is raised once the retry budget is
spent. The data errors (DecodingError, AudioProcessingError,
TranscriptionError) are never retried.

Two errors compare equal when they are the same kind with the same detail.
"""

from typing import Optional


class STTError(Exception):
    """Base class for every pipeline failure that carries a user-facing message."""

    prefix = "Error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        super().__init__(self.message)

    @property
    def message(self) -> str:
        if self.detail is None:
            return self.prefix
        return f"{self.prefix}: {self.detail}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, STTError):
            return NotImplemented
        return type(self) is type(other) and self.detail == other.detail

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.detail))

    def __repr__(self) -> str:
        if self.detail is None:
            return f"{type(self).__name__}()"
        return f"{type(self).__name__}({self.detail!r})"


class InvalidAPIKey(STTError):
    prefix = "Invalid API key provided"

    def __init__(self):
        super().__init__(None)


class InvalidModel(STTError):
    prefix = "Invalid model specified"

    def __init__(self):
        super().__init__(None)


class InvalidConfig(STTError):
    prefix = "Invalid configuration"


class DecodingError(STTError):
    prefix = "Decoding error"


class NetworkError(STTError):
    prefix = "Network error"


class AudioProcessingError(STTError):
    prefix = "Audio processing error"


class TranscriptionError(STTError):
    prefix = "Transcription error"


class Cancelled(Exception):
    """Raised when the caller abandons a pipeline run."""


class ConfigError(RuntimeError):
    """Raised when the settings file cannot be read or written."""
