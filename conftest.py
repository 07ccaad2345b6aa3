import os
import sys

import pytest

# Make the backend package importable without installing it
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "story_studio_backend"))

from story_studio.models import Scene
from story_studio.voiceover import SpeechEngine


@pytest.fixture(autouse=True)
def provider_env(monkeypatch):
    """Every test runs with fake provider credentials."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-openai-key")
    monkeypatch.setenv("REPLICATE_API_TOKEN", "test-replicate-token")
    monkeypatch.setenv("ELEVENLABS_API_KEY", "test-elevenlabs-key")
    monkeypatch.setenv("ELEVENLABS_VOICE_ID", "voice-123")


class FakeClock:
    """Stands in for asyncio.sleep and records every requested wait."""

    def __init__(self):
        self.sleeps = []

    async def sleep(self, seconds):
        self.sleeps.append(seconds)


@pytest.fixture
def clock():
    return FakeClock()


class FakeSpeechEngine(SpeechEngine):
    def __init__(self):
        self.utterances = []
        self.cancel_count = 0
        self._active = False

    @property
    def speaking(self):
        return self._active

    def speak(self, text, on_end, on_error):
        self.utterances.append((text, on_end, on_error))
        self._active = True

    def cancel(self):
        self.cancel_count += 1
        self._active = False

    def finish(self, index=-1):
        self._active = False
        self.utterances[index][1]()

    def fail(self, exc, index=-1):
        self._active = False
        self.utterances[index][2](exc)


@pytest.fixture
def speech():
    return FakeSpeechEngine()


def make_scenes(count):
    return [
        Scene(scene=i, script=f"Script {i}", animation_prompt=f"Prompt {i}")
        for i in range(1, count + 1)
    ]
