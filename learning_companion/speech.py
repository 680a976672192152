"""Speech helpers shared by the reader: voice commands, word highlighting, gTTS audio."""

import base64
import io
import logging
import re
from typing import List, NamedTuple, Optional, Tuple

from .errors import MissingInputError, ProviderError

log = logging.getLogger(__name__)

RATE_STEP = 0.25
RATE_MIN = 0.5
RATE_MAX = 2.0
SLOW_RATE = 0.9


# ════════════════════════════════════════════════════════
# VOICE COMMANDS
# ════════════════════════════════════════════════════════
class VoiceCommand(NamedTuple):
    name: str
    pattern: re.Pattern


COMMANDS: List[VoiceCommand] = [
    VoiceCommand("play", re.compile(r"play|start")),
    VoiceCommand("pause", re.compile(r"pause|stop")),
    VoiceCommand("faster", re.compile(r"faster")),
    VoiceCommand("slower", re.compile(r"slower")),
]


def match_command(transcript: str, commands: List[VoiceCommand] = COMMANDS) -> Optional[str]:
    """First command whose pattern occurs anywhere in the transcript, in list order."""
    t = (transcript or "").lower()
    for cmd in commands:
        if cmd.pattern.search(t):
            return cmd.name
    return None


def adjust_rate(rate: float, command: Optional[str]) -> float:
    if command == "faster":
        return min(rate + RATE_STEP, RATE_MAX)
    if command == "slower":
        return max(rate - RATE_STEP, RATE_MIN)
    return rate


def interpret(transcript: str, rate: float = 1.0) -> Tuple[Optional[str], float]:
    cmd = match_command(transcript)
    return cmd, adjust_rate(rate, cmd)


# ════════════════════════════════════════════════════════
# WORD HIGHLIGHTING
# ════════════════════════════════════════════════════════
def tokenize(text: str) -> List[str]:
    """Words and the whitespace runs between them, in order."""
    return re.split(r"(\s+)", text)


class HighlightTracker:
    """Approximate highlighted-token index driven by speech boundary events.

    Counts word boundaries rather than trusting character offsets, so the
    index drifts on punctuation-heavy text; good enough for following along.
    """

    def __init__(self): self.words = 0; self.index = -1

    def boundary(self, name: str = "word") -> int:
        if name == "word":
            self.words += 1
            self.index = self.words * 2
        return self.index

    def reset(self):
        self.words = 0; self.index = -1


# ════════════════════════════════════════════════════════
# TTS: gTTS → base64 MP3 for the browser to play
# ════════════════════════════════════════════════════════
_GTTS_CODES = {"en-US": "en", "en-GB": "en", "es-ES": "es", "fr-FR": "fr", "de-DE": "de",
               "it-IT": "it", "pt-BR": "pt", "zh-CN": "zh-CN"}


def gtts_lang_code(bcp: str) -> str:
    return _GTTS_CODES.get(bcp, bcp.split("-")[0])


def synthesize(text: str, language: str = "en-US", rate: float = 1.0) -> Tuple[str, str]:
    """Returns ``(base64 mp3, gtts language code)``. Blocking: call from the executor."""
    if not text or not text.strip():
        raise MissingInputError("No text to speak")
    lang = gtts_lang_code(language)
    try:
        from gtts import gTTS
        buf = io.BytesIO()
        gTTS(text=text, lang=lang, slow=rate < SLOW_RATE).write_to_fp(buf)
    except Exception as e:
        log.error("gTTS error: %s", e)
        raise ProviderError("Speech synthesis failed") from e
    return base64.b64encode(buf.getvalue()).decode("utf-8"), lang
