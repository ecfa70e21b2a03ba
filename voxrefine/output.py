"""
Where finished text goes.

The pipeline returns text; a sink hands it to the user. Typing into the
focused app is left to the host application.
"""

import logging
import subprocess
import sys
from typing import Optional, Protocol, TextIO


logger = logging.getLogger(__name__)


class TextSink(Protocol):
    def deliver(self, text: str) -> None:
        ...


class ClipboardSink:
    """Copies text to the macOS clipboard via pbcopy."""

    def deliver(self, text: str) -> None:
        copy_to_clipboard(text)


class StdoutSink:
    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def deliver(self, text: str) -> None:
        stream = self.stream or sys.stdout
        stream.write(text + "\n")
        stream.flush()


def copy_to_clipboard(text: str) -> bool:
    """
    Copy text to the system clipboard.

    Args:
        text: Text to copy

    Returns:
        True if pbcopy accepted the text
    """
    if not text:
        return False

    try:
        subprocess.run(
            ["pbcopy"],
            input=text.encode("utf-8"),
            timeout=2.0,
            check=True,
        )
        return True
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning("[Output] copy_to_clipboard failed: %s", e)
        return False
