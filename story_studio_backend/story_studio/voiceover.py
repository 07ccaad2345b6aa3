"""Voiceover playback: one shared speech engine, one lease holder at a time."""
import asyncio
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence

from .elevenlabs_client import tts_to_bytes

logger = logging.getLogger(__name__)

PLAYER_COMMAND = ("ffplay", "-nodisp", "-autoexit", "-loglevel", "error")


class PlaybackLease:
    """Exclusive right to drive the speech engine.

    Each acquisition returns a new token so callbacks belonging to an older
    playback can be told apart from the current one.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._holder: Optional[int] = None
        self._token = 0

    @property
    def holder(self) -> Optional[int]:
        with self._lock:
            return self._holder

    def acquire(self, scene_number: int) -> int:
        with self._lock:
            self._token += 1
            self._holder = scene_number
            return self._token

    def release(self, token: Optional[int] = None) -> bool:
        """Clear the slot; with a token, only if that token is still current."""
        with self._lock:
            if token is not None and token != self._token:
                return False
            if self._holder is None:
                return False
            self._holder = None
            return True

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._token and self._holder is not None


class SpeechEngine(ABC):
    """Process-wide text-to-speech engine driven by a single caller."""

    @abstractmethod
    def speak(self, text: str, on_end: Callable[[], None],
              on_error: Callable[[Exception], None]) -> None:
        raise NotImplementedError

    @abstractmethod
    def cancel(self) -> None:
        raise NotImplementedError

    @property
    @abstractmethod
    def speaking(self) -> bool:
        raise NotImplementedError


class ElevenLabsSpeechEngine(SpeechEngine):
    """Synthesizes with ElevenLabs and plays the MP3 through an external player."""

    def __init__(self, player_command: Sequence[str] = PLAYER_COMMAND):
        self.player_command = tuple(player_command)
        self._task: Optional[asyncio.Task] = None
        self._process: Optional[asyncio.subprocess.Process] = None

    @property
    def speaking(self) -> bool:
        return self._task is not None and not self._task.done()

    def speak(self, text, on_end, on_error):
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._play(text, on_end, on_error))

    def cancel(self):
        process, self._process = self._process, None
        if process is not None and process.returncode is None:
            try:
                process.terminate()
            except ProcessLookupError:
                pass
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.info("Voiceover playback cancelled")

    async def _play(self, text, on_end, on_error):
        path = None
        process = None
        try:
            audio = await tts_to_bytes(text)
            fd, path = tempfile.mkstemp(suffix=".mp3")
            with os.fdopen(fd, "wb") as f:
                f.write(audio)
            process = await asyncio.create_subprocess_exec(
                *self.player_command, path,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
            self._process = process
            _, stderr = await process.communicate()
            if process.returncode != 0:
                detail = stderr.decode("utf-8", errors="ignore").strip()
                raise RuntimeError(f"Audio player exited with status {process.returncode}: {detail}")
        except asyncio.CancelledError:
            if process is not None and process.returncode is None:
                try:
                    process.terminate()
                except ProcessLookupError:
                    pass
            raise
        except Exception as e:
            logger.error(f"Voiceover playback failed: {e}")
            on_error(e)
            return
        finally:
            if self._process is process:
                self._process = None
            if path and os.path.exists(path):
                os.remove(path)
        logger.info("Voiceover playback finished")
        on_end()
