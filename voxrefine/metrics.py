"""
Thread-safe structured event log with batched writes.

Usage:
    metrics = MetricsWriter(config.metrics_file)
    metrics.log("network_attempt", label="SiliconFlow", attempt=1, outcome="ok")
"""

import json
import logging
import threading
import time
from pathlib import Path
from queue import Empty, Queue
from typing import Any, Optional


logger = logging.getLogger(__name__)


class MetricsWriter:
    """
    Appends one JSON object per event to a JSONL file.
    Uses a queue so callers on any thread never block on disk I/O.
    """

    def __init__(self, metrics_file: Path):
        self.metrics_file = metrics_file
        self._queue: Queue[dict] = Queue()
        self._shutdown = threading.Event()
        self._writer_thread = threading.Thread(target=self._writer_loop, daemon=True)
        self._writer_thread.start()

    def log(self, event: str, **kwargs: Any) -> None:
        """
        Queue an event for writing. Non-blocking.

        Args:
            event: Event name (e.g., "network_attempt", "refinement")
            **kwargs: Additional fields to log
        """
        entry = {
            "ts": time.time(),
            "event": event,
            **kwargs
        }
        self._queue.put(entry)

    def _writer_loop(self) -> None:
        """Background thread that batches and writes events."""
        while not self._shutdown.is_set():
            try:
                entries = [self._queue.get(timeout=1.0)]

                while True:
                    try:
                        entries.append(self._queue.get_nowait())
                    except Empty:
                        break

                self._write_entries(entries)

            except Empty:
                continue

    def _write_entries(self, entries: list[dict]) -> None:
        try:
            self.metrics_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.metrics_file, "a", encoding="utf-8") as f:
                for entry in entries:
                    f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError as e:
            logger.warning("[Metrics] Failed to write %d events: %s", len(entries), e)

    def flush(self) -> None:
        """Flush any pending events to disk."""
        entries = []
        while True:
            try:
                entries.append(self._queue.get_nowait())
            except Empty:
                break

        if entries:
            self._write_entries(entries)

    def shutdown(self) -> None:
        """Stop the writer thread and flush what is left."""
        self._shutdown.set()
        self._writer_thread.join(timeout=2.0)
        self.flush()


# Typed helpers for consistent event logging

def log_network_attempt(
    metrics: Optional[MetricsWriter],
    label: str,
    attempt: int,
    max_attempts: int,
    outcome: str,
    error: Optional[str] = None,
) -> None:
    """Log network_attempt event."""
    if metrics is None:
        return
    metrics.log(
        "network_attempt",
        label=label,
        attempt=attempt,
        max_attempts=max_attempts,
        outcome=outcome,
        error=error,
    )


def log_transcription(
    metrics: Optional[MetricsWriter],
    provider: str,
    audio_bytes: int,
    latency_ms: float,
    text: str,
) -> None:
    """Log transcription event."""
    if metrics is None:
        return
    metrics.log(
        "transcription",
        provider=provider,
        audio_bytes=audio_bytes,
        latency_ms=latency_ms,
        text=text[:200],  # Truncate for metrics
    )


def log_refinement(
    metrics: Optional[MetricsWriter],
    style: str,
    latency_ms: float,
    succeeded: bool,
) -> None:
    """Log refinement event."""
    if metrics is None:
        return
    metrics.log(
        "refinement",
        style=style,
        latency_ms=latency_ms,
        succeeded=succeeded,
    )


def log_pipeline_complete(
    metrics: Optional[MetricsWriter],
    provider: str,
    total_duration_ms: float,
    final_text: str,
) -> None:
    """Log pipeline_complete event."""
    if metrics is None:
        return
    metrics.log(
        "pipeline_complete",
        provider=provider,
        total_duration_ms=total_duration_ms,
        final_text=final_text[:500],  # Truncate for metrics
    )
