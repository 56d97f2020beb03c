import asyncio
import hashlib
import logging
import os
import tempfile
from abc import ABC, abstractmethod

from gtts import gTTS

from .config import settings

logger = logging.getLogger(__name__)


class Speaker(ABC):
    @abstractmethod
    async def speak(self, text: str) -> None:
        pass


class NullSpeaker(Speaker):
    """Completes immediately; the client reads the text itself."""

    async def speak(self, text: str) -> None:
        return None


class GTTSSpeaker(Speaker):
    """
    Renders text to an mp3 file with Google Text-to-Speech.
    Blocking calls run in a worker thread.
    """

    def __init__(self, audio_dir: str = settings.AUDIO_DIR, lang: str = settings.TTS_LANG):
        self.audio_dir = audio_dir
        self.lang = lang

    def path_for(self, text: str) -> str:
        digest = hashlib.sha1(f"{self.lang}:{text}".encode("utf-8")).hexdigest()
        return os.path.join(self.audio_dir, f"{digest}.mp3")

    async def speak(self, text: str) -> None:
        path = self.path_for(text)
        if os.path.exists(path):
            return
        await asyncio.to_thread(self._save_gtts, text, path)

    def _save_gtts(self, text: str, path: str):
        os.makedirs(self.audio_dir, exist_ok=True)
        tts = gTTS(text=text, lang=self.lang)
        # Render beside the target and move it into place only when complete.
        fd, partial = tempfile.mkstemp(dir=self.audio_dir, suffix=".part")
        try:
            with os.fdopen(fd, "wb") as f:
                tts.write_to_fp(f)
            os.replace(partial, path)
        except BaseException:
            if os.path.exists(partial):
                os.unlink(partial)
            raise


def build_speaker(engine: str = settings.TTS_ENGINE) -> Speaker:
    if engine == "gtts":
        return GTTSSpeaker()
    if engine != "none":
        logger.warning(f"Unknown TTS engine {engine!r}, audio disabled")
    return NullSpeaker()


async def speak_safely(speaker: Speaker, text: str) -> None:
    """Awaits ``speaker``; any failure counts as finished playback."""
    try:
        await speaker.speak(text)
    except Exception as e:
        logger.error(f"Speech failed for {text!r}: {e}")
