"""
Speech output for spoken replies.

Speakers are fire-and-forget: ``speak`` returns immediately and never raises.
Overlapping utterances are left to the underlying engine.
"""

import logging
import shutil
import subprocess
from typing import Protocol

logger = logging.getLogger(__name__)

ESPEAK_BINARIES = ("espeak-ng", "espeak")

# espeak defaults for a multiplier of 1.0
BASE_WORDS_PER_MINUTE = 175
BASE_PITCH = 50


class Speaker(Protocol):
    def speak(self, text: str, rate: float, pitch: float, language: str) -> None: ...


class NullSpeaker:
    """Speaker that discards every utterance."""

    def speak(self, text: str, rate: float, pitch: float, language: str) -> None:
        return None


class EspeakSpeaker:
    """Speak through an espeak-ng (or espeak) process without waiting on it."""

    def __init__(self, binary: str | None = None) -> None:
        self._binary = binary or _find_espeak()
        self._warned = False
        self._processes: list[subprocess.Popen] = []

    def command(self, text: str, rate: float, pitch: float, language: str) -> list[str]:
        """Build the espeak command line for an utterance."""
        words_per_minute = max(80, round(BASE_WORDS_PER_MINUTE * rate))
        espeak_pitch = min(99, max(0, round(BASE_PITCH * pitch)))
        return [
            self._binary or ESPEAK_BINARIES[0],
            "-v",
            language.lower(),
            "-s",
            str(words_per_minute),
            "-p",
            str(espeak_pitch),
            "--",
            text,
        ]

    def speak(self, text: str, rate: float, pitch: float, language: str) -> None:
        if self._binary is None:
            if not self._warned:
                logger.warning("No espeak binary found, speech output disabled")
                self._warned = True
            return

        # Reap utterances that have finished
        self._processes = [p for p in self._processes if p.poll() is None]

        try:
            process = subprocess.Popen(
                self.command(text, rate, pitch, language),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except (OSError, ValueError) as e:
            logger.warning("Could not start speech output: %s", e)
            return
        self._processes.append(process)


def _find_espeak() -> str | None:
    for name in ESPEAK_BINARIES:
        path = shutil.which(name)
        if path:
            return path
    return None
