"""
LLM text refinement over OpenAI-compatible chat completions.

Sends the transcript as the user message under a system instruction and
returns the model's rewrite. Any backend that speaks the chat completions
API (SiliconFlow, OpenAI, Groq, OpenRouter, DeepSeek...) works by pointing
the endpoint at it.
"""

import json
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional

from .credentials import CredentialNotFound, CredentialStore
from .errors import DecodingError, InvalidConfig, NetworkError
from .network import REFINEMENT_TIMEOUT, HttpRequest, NetworkClient
from .providers import is_valid_endpoint
from .types import ProviderConfig


logger = logging.getLogger(__name__)


DEFAULT_REFINEMENT_MODEL = "Qwen/Qwen2.5-7B-Instruct"

# Low temperature keeps rewrites deterministic
REFINEMENT_TEMPERATURE = 0.3

DEFAULT_SYSTEM_PROMPT = (
    "You are a text cleaner. Remove filler words (um, ah, like), fix self-corrections, "
    "and format the text properly. Do not change the meaning. Return ONLY the refined text."
)


@dataclass(frozen=True)
class RefinementBackend:
    """A chat completions service the refinement stage can use."""
    id: str
    base_url: str
    default_model: str


REFINEMENT_BACKENDS: Dict[str, RefinementBackend] = {
    backend.id: backend
    for backend in (
        RefinementBackend("siliconflow", "https://api.siliconflow.cn/v1/chat/completions", DEFAULT_REFINEMENT_MODEL),
        RefinementBackend("openai", "https://api.openai.com/v1/chat/completions", "gpt-3.5-turbo"),
        RefinementBackend("groq", "https://api.groq.com/openai/v1/chat/completions", "openai/gpt-oss-120b"),
        RefinementBackend("openrouter", "https://openrouter.ai/api/v1/chat/completions", "google/gemini-2.5-flash"),
    )
}

# Tried in order when the preferred backend has no key
FALLBACK_ORDER = ("siliconflow", "openai")


class OpenAICompatibleRefinementProvider:
    """
    Rewrites text with a chat completion call.

    Usage:
        provider = OpenAICompatibleRefinementProvider(client)
        text = provider.refine("um so hello", system_prompt, config)
    """

    label = "TextRefinement"

    def __init__(
        self,
        client: Optional[NetworkClient] = None,
        model_name: str = DEFAULT_REFINEMENT_MODEL,
    ):
        self.client = client if client is not None else NetworkClient()
        self.model_name = model_name

    def validate_config(self, config: ProviderConfig) -> None:
        if not config.api_key or not config.api_key.strip():
            raise InvalidConfig("API key is missing")
        if not is_valid_endpoint(config.endpoint):
            raise InvalidConfig("Invalid API URL")

    def refine(
        self,
        text: str,
        system_prompt: str,
        config: ProviderConfig,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        """
        Rewrite `text` under `system_prompt`.

        Raises:
            InvalidConfig: Missing key or bad endpoint (nothing is sent)
            NetworkError: Transport failure or non-2xx status
            DecodingError: No usable message content in the response
        """
        self.validate_config(config)

        request = HttpRequest(
            method="POST",
            url=config.endpoint,
            headers={
                "Authorization": f"Bearer {config.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": config.model or self.model_name,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": text},
                ],
                "temperature": REFINEMENT_TEMPERATURE,
                "stream": False,
            },
        )

        response = self.client.execute(
            request, timeout=REFINEMENT_TIMEOUT, label=self.label, cancel=cancel
        )

        if not response.ok:
            logger.debug("[%s] Error response: %s", self.label, response.text()[:500])
            raise NetworkError(f"Server returned status code {response.status}")

        return _parse_chat_content(response.content)


def _parse_chat_content(content: bytes) -> str:
    try:
        result = json.loads(content)
        message = result["choices"][0]["message"]
    except (ValueError, UnicodeDecodeError, KeyError, IndexError, TypeError) as e:
        raise DecodingError(f"Failed to decode response: {e}") from e

    text = message.get("content") if isinstance(message, dict) else None
    if not isinstance(text, str) or not text.strip():
        raise DecodingError("No content in response")
    return text.strip()


def resolve_refinement_config(
    credentials: CredentialStore,
    preferred: str = "siliconflow",
    model: Optional[str] = None,
) -> Optional[ProviderConfig]:
    """
    Pick the first refinement backend with a stored key.

    The preferred backend is tried first with the configured model; the
    fallbacks use their own default models.

    Returns:
        A ProviderConfig, or None when no backend has a key
    """
    order = [preferred] + [b for b in FALLBACK_ORDER if b != preferred]

    for backend_id in order:
        backend = REFINEMENT_BACKENDS.get(backend_id)
        if backend is None:
            logger.warning("[Refinement] Unknown refinement backend: %s", backend_id)
            continue
        try:
            api_key = credentials.get_key(backend.id)
        except CredentialNotFound:
            continue

        use_model = model if (model and backend_id == preferred) else backend.default_model
        return ProviderConfig(
            api_key=api_key,
            model=use_model,
            temperature=REFINEMENT_TEMPERATURE,
            endpoint=backend.base_url,
        )

    return None
