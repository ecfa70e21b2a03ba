"""
Configuration management with immutable snapshots.

Loads from: environment variables > settings.json > defaults
Provides immutable snapshots so one dictation sees one consistent config.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigError
from .refine import DEFAULT_REFINEMENT_MODEL, DEFAULT_SYSTEM_PROMPT
from .store import JsonFileStore
from .types import ConfigSnapshot


logger = logging.getLogger(__name__)

ENV_PREFIX = "VOXREFINE_"

# Defaults
DEFAULT_CONFIG: Dict[str, Any] = {
    # Transcription
    "stt_provider": "siliconflow",
    "stt_model": "FunAudioLLM/SenseVoiceSmall",
    "stt_prompt": "",
    "recognition_language": "auto",

    # Text transform chain
    "filler_filter_enabled": True,
    "filler_aggressiveness": 1,
    "voice_commands_enabled": True,

    # Refinement
    "refinement_enabled": False,
    "refinement_provider": "siliconflow",
    "refinement_model": DEFAULT_REFINEMENT_MODEL,
    "refinement_system_prompt": DEFAULT_SYSTEM_PROMPT,
    "context_aware_enabled": False,

    # Vocabulary and history
    "dictionary_enabled": True,
    "history_enabled": True,
    "max_history_entries": 100,

    "debug": False,
}

# Settings that may be overridden as VOXREFINE_<KEY>
ENV_OVERRIDES = (
    "stt_provider",
    "stt_model",
    "recognition_language",
    "refinement_enabled",
    "refinement_provider",
    "refinement_model",
    "debug",
)


def _coerce(key: str, value: Any) -> Any:
    """Convert `value` to the type of the key's default."""
    default = DEFAULT_CONFIG[key]
    if isinstance(default, bool):
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("1", "true", "yes", "on"):
                return True
            if lowered in ("0", "false", "no", "off", ""):
                return False
            raise ValueError(f"not a boolean: {value!r}")
        return bool(value)
    if isinstance(default, int):
        if isinstance(value, bool):
            raise ValueError(f"not an integer: {value!r}")
        return int(value)
    return str(value)


class Config:
    """
    Single source of truth for all settings.

    Usage:
        config = Config.load()
        snapshot = config.snapshot()  # Immutable copy for one dictation
    """

    def __init__(self, data_dir: Optional[Path] = None):
        for key, default in DEFAULT_CONFIG.items():
            setattr(self, key, default)

        # Paths
        self.data_dir: Path = Path(data_dir) if data_dir else Path.home() / ".voxrefine"
        self.settings_file: Path = self.data_dir / "settings.json"
        self.dictionary_file: Path = self.data_dir / "dictionary.json"
        self.history_file: Path = self.data_dir / "history.json"
        self.app_styles_file: Path = self.data_dir / "app_styles.json"
        self.metrics_file: Path = self.data_dir / "metrics.jsonl"
        self.env_file: Path = self.data_dir / ".env"

    @classmethod
    def load(
        cls,
        data_dir: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Config":
        """
        Load configuration from all sources.

        Raises:
            ConfigError: settings.json exists but is not valid
        """
        environ = os.environ if environ is None else environ
        if data_dir is None and environ.get(f"{ENV_PREFIX}DATA_DIR"):
            data_dir = Path(environ[f"{ENV_PREFIX}DATA_DIR"]).expanduser()

        config = cls(data_dir)
        config._ensure_data_dir()
        config._load_settings()
        config._load_env(environ)
        return config

    def _ensure_data_dir(self) -> None:
        """Create data directory if it doesn't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _load_settings(self) -> None:
        """Apply settings.json on top of the defaults."""
        if not self.settings_file.exists():
            return

        try:
            with open(self.settings_file, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigError(f"Error loading {self.settings_file}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{self.settings_file} must contain a JSON object")

        for key, value in data.items():
            if key not in DEFAULT_CONFIG:
                logger.debug("[Config] Ignoring unknown setting: %s", key)
                continue
            try:
                setattr(self, key, _coerce(key, value))
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid value for {key}: {e}") from e

    def _load_env(self, environ: Mapping[str, str]) -> None:
        """Environment variables override file values."""
        for key in ENV_OVERRIDES:
            env_name = f"{ENV_PREFIX}{key.upper()}"
            if env_name not in environ:
                continue
            try:
                setattr(self, key, _coerce(key, environ[env_name]))
            except ValueError as e:
                raise ConfigError(f"Invalid value for {env_name}: {e}") from e

    def update(self, **changes: Any) -> None:
        """Set several settings at once, coercing each to its type."""
        for key, value in changes.items():
            if key not in DEFAULT_CONFIG:
                raise ConfigError(f"Unknown setting: {key}")
            try:
                setattr(self, key, _coerce(key, value))
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid value for {key}: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {key: getattr(self, key) for key in DEFAULT_CONFIG}

    def save_settings(self) -> None:
        """Save current settings to settings.json."""
        try:
            JsonFileStore(self.settings_file).save(self.to_dict())
        except OSError as e:
            raise ConfigError(f"Error saving {self.settings_file}: {e}") from e

    def snapshot(self) -> ConfigSnapshot:
        """Return immutable copy for one pipeline run."""
        return ConfigSnapshot(
            stt_provider=self.stt_provider,
            stt_model=self.stt_model,
            stt_prompt=self.stt_prompt,
            recognition_language=self.recognition_language,
            filler_filter_enabled=self.filler_filter_enabled,
            filler_aggressiveness=self.filler_aggressiveness,
            voice_commands_enabled=self.voice_commands_enabled,
            refinement_enabled=self.refinement_enabled,
            refinement_provider=self.refinement_provider,
            refinement_model=self.refinement_model,
            refinement_system_prompt=self.refinement_system_prompt,
            context_aware_enabled=self.context_aware_enabled,
            dictionary_enabled=self.dictionary_enabled,
            history_enabled=self.history_enabled,
            max_history_entries=self.max_history_entries,
        )
