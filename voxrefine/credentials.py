"""
API key lookup.

Keys live outside the pipeline. The default store reads environment
variables, falling back to `.env` files, one `<PROVIDER>_API_KEY` per vendor.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Protocol


logger = logging.getLogger(__name__)


class CredentialNotFound(KeyError):
    """Raised when no key is stored for a provider."""


class CredentialStore(Protocol):
    def get_key(self, provider: str) -> str:
        """Return the API key for `provider` or raise CredentialNotFound."""
        ...


def key_name(provider: str) -> str:
    """Environment variable name for a provider id, e.g. GROQ_API_KEY."""
    provider_id = str(getattr(provider, "value", provider))
    return f"{provider_id.upper()}_API_KEY"


class EnvCredentialStore:
    """
    Keys from the process environment, then from `.env` files.

    Usage:
        store = EnvCredentialStore([Path(".env"), config.env_file])
        key = store.get_key("siliconflow")
    """

    def __init__(
        self,
        env_files: Iterable[Path] = (),
        environ: Optional[Mapping[str, str]] = None,
    ):
        self._environ = environ if environ is not None else os.environ
        self._file_values: Dict[str, str] = {}
        # Later files override earlier ones
        for env_file in env_files:
            if env_file.exists():
                self._file_values.update(parse_env_file(env_file))

    def get_key(self, provider: str) -> str:
        name = key_name(provider)
        value = self._environ.get(name) or self._file_values.get(name)
        if not value:
            raise CredentialNotFound(name)
        return value


class StaticCredentialStore:
    """In-memory keys, keyed by provider id."""

    def __init__(self, keys: Mapping[str, str]):
        self._keys = {str(getattr(k, "value", k)).lower(): v for k, v in keys.items()}

    def get_key(self, provider: str) -> str:
        provider_id = str(getattr(provider, "value", provider)).lower()
        value = self._keys.get(provider_id)
        if not value:
            raise CredentialNotFound(key_name(provider_id))
        return value


def parse_env_file(env_file: Path) -> Dict[str, str]:
    """Parse KEY=value lines, skipping blanks and comments."""
    values: Dict[str, str] = {}
    try:
        with open(env_file, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                if key.startswith("export "):
                    key = key[len("export "):].strip()
                values[key] = value.strip().strip("'\"")
    except OSError as e:
        logger.warning("[Credentials] Error loading %s: %s", env_file, e)
    return values
