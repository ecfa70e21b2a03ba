"""
Resilient HTTP execution shared by every provider.

Each call gets up to three attempts with exponential backoff (1s, 2s) between
them. Only transport failures are retried: a response that arrived, whatever
its status code, is handed back to the caller to interpret.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, NamedTuple, Optional

import requests

from .errors import Cancelled, NetworkError
from .metrics import MetricsWriter, log_network_attempt


logger = logging.getLogger(__name__)


MAX_ATTEMPTS = 3
BASE_RETRY_DELAY = 1.0  # seconds

# STT timeouts scale with upload size: ~1MB of audio is ~1 minute of speech
STT_BASE_TIMEOUT = 30.0
STT_TIMEOUT_PER_MB = 15.0
STT_MAX_TIMEOUT = 120.0
MEGABYTE = 1024 * 1024

# Refinement inputs are a few sentences at most
REFINEMENT_TIMEOUT = 10.0

RETRYABLE_ERRORS = (
    requests.Timeout,
    requests.ConnectionError,
    requests.exceptions.ChunkedEncodingError,
)


@dataclass(frozen=True)
class HttpRequest:
    """A request description that can be sent more than once."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    json: Optional[Any] = None
    data: Optional[Dict[str, str]] = None
    files: Optional[Dict[str, tuple]] = None


class NetworkResponse(NamedTuple):
    content: bytes
    status: int

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


def stt_timeout(audio_bytes: int) -> float:
    """
    Timeout for an STT upload of the given size.

    30s base plus 15s per started megabyte, capped at 120s.
    """
    megabytes = math.ceil(audio_bytes / MEGABYTE)
    return min(STT_BASE_TIMEOUT + STT_TIMEOUT_PER_MB * megabytes, STT_MAX_TIMEOUT)


def is_retryable(error: BaseException) -> bool:
    """True for transport-layer failures worth another attempt."""
    if isinstance(error, requests.exceptions.SSLError):
        return False
    return isinstance(error, RETRYABLE_ERRORS)


class NetworkClient:
    """
    Sends HttpRequests through a shared requests.Session with retry.

    Usage:
        client = NetworkClient()
        response = client.execute(request, timeout=stt_timeout(len(wav)), label="OpenAI")
        if not response.ok:
            ...
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        max_attempts: int = MAX_ATTEMPTS,
        base_delay: float = BASE_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
        metrics: Optional[MetricsWriter] = None,
    ):
        # Persistent session for connection reuse across calls
        self.session = session if session is not None else requests.Session()
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.metrics = metrics
        self._sleep = sleep

    def execute(
        self,
        request: HttpRequest,
        timeout: float,
        label: str,
        cancel: Optional[threading.Event] = None,
    ) -> NetworkResponse:
        """
        Send a request, retrying transport failures.

        Args:
            request: What to send
            timeout: Per-attempt timeout in seconds
            label: Name used in log lines (usually the provider)
            cancel: Set by the caller to abandon the call between attempts

        Returns:
            Body and status code of the first response received

        Raises:
            NetworkError: Retries exhausted or a terminal request error
            Cancelled: The cancel event was set
        """
        last_error: Optional[BaseException] = None
        attempts = 0

        for attempt in range(1, self.max_attempts + 1):
            if cancel is not None and cancel.is_set():
                raise Cancelled(f"{label}: cancelled before attempt {attempt}")

            attempts = attempt
            logger.info("[%s] Attempt %d/%d - sending request...", label, attempt, self.max_attempts)

            try:
                response = self.session.request(
                    request.method,
                    request.url,
                    headers=request.headers,
                    json=request.json,
                    data=request.data,
                    files=request.files,
                    timeout=timeout,
                )
            except requests.RequestException as e:
                last_error = e
                retryable = is_retryable(e)
                logger.warning("[%s] Attempt %d failed: %s", label, attempt, e)
                log_network_attempt(
                    self.metrics, label, attempt, self.max_attempts,
                    outcome="retryable_error" if retryable else "terminal_error",
                    error=str(e),
                )

                if not retryable or attempt == self.max_attempts:
                    logger.warning("[%s] Error is not retryable or max attempts reached", label)
                    break

                delay = self.base_delay * (2 ** (attempt - 1))
                logger.info("[%s] Retrying in %.1fs...", label, delay)
                self._wait(delay, cancel, label)
                continue
            except Exception as e:
                # Anything outside requests' hierarchy is terminal
                last_error = e
                logger.warning("[%s] Attempt %d failed: %s", label, attempt, e)
                log_network_attempt(
                    self.metrics, label, attempt, self.max_attempts,
                    outcome="terminal_error", error=str(e),
                )
                break

            logger.info("[%s] Received HTTP %d on attempt %d", label, response.status_code, attempt)
            log_network_attempt(self.metrics, label, attempt, self.max_attempts, outcome=f"http_{response.status_code}")
            return NetworkResponse(response.content, response.status_code)

        raise NetworkError(
            f"Network request failed after {attempts} attempts: {last_error}"
        ) from last_error

    def _wait(self, delay: float, cancel: Optional[threading.Event], label: str) -> None:
        """Sleep between attempts; a cancel ends the wait immediately."""
        if cancel is None:
            self._sleep(delay)
            return
        if cancel.wait(delay):
            raise Cancelled(f"{label}: cancelled during retry delay")

    def close(self) -> None:
        self.session.close()
