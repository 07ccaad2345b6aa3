"""In-memory state for one story session.

The controller owns the scene list and every per-scene status flag. Results
of async operations are merged back by scene number, and only when the
generation token they started under is still current, so a superseded story
can never overwrite the one on display.
"""
import logging
from typing import List, Optional

from .errors import StoryError, ValidationError
from .models import AdvancedOptions, Scene, SceneImage, SceneVideo
from .story_service import StoryService
from .voiceover import PlaybackLease, SpeechEngine

logger = logging.getLogger(__name__)

MIN_SCENES = 3
MAX_SCENES = 10
DEFAULT_SCENES = 5

EMPTY_TOPIC_ERROR = "Please enter a topic for your story."
SCENE_COUNT_ERROR = f"Number of scenes must be between {MIN_SCENES} and {MAX_SCENES}."
UNKNOWN_ERROR = "An unknown error occurred."
PLAYBACK_ERROR = "Text-to-speech playback failed."


def _busy(sub_record) -> bool:
    return bool(sub_record is not None and sub_record.generating)


class SessionController:
    def __init__(self, service: StoryService, speech: SpeechEngine):
        self.service = service
        self.speech = speech
        self.lease = PlaybackLease()

        self.topic = ""
        self.scene_count = DEFAULT_SCENES
        self.options = AdvancedOptions()
        self.scenes: List[Scene] = []
        self.error: Optional[str] = None
        self.loading = False
        self._generation = 0

    @property
    def playing_scene(self) -> Optional[int]:
        return self.lease.holder

    def set_topic(self, topic: str):
        self.topic = topic

    def set_scene_count(self, count: int):
        self.scene_count = count

    def set_options(self, options: AdvancedOptions):
        self.options = options

    def get_scene(self, scene_number: int) -> Optional[Scene]:
        for scene in self.scenes:
            if scene.scene == scene_number:
                return scene
        return None

    def _update_scene(self, scene_number: int, **changes):
        self.scenes = [
            scene.model_copy(update=changes) if scene.scene == scene_number else scene
            for scene in self.scenes
        ]

    def _is_current(self, token: int) -> bool:
        return token == self._generation

    def _validate(self):
        if not self.topic.strip():
            raise ValidationError(EMPTY_TOPIC_ERROR)
        if not MIN_SCENES <= self.scene_count <= MAX_SCENES:
            raise ValidationError(SCENE_COUNT_ERROR)

    async def generate_story(self):
        if self.loading:
            logger.info("Story generation already in progress, ignoring request")
            return
        try:
            self._validate()
        except ValidationError as e:
            self.error = e.message
            return

        self.stop_voiceover()
        self._generation += 1
        token = self._generation
        self.error = None
        self.scenes = []
        self.loading = True
        try:
            scenes = await self.service.generate_story(self.topic, self.scene_count, self.options)
            if self._is_current(token):
                self.scenes = [scene.model_copy(update={"image": None, "video": None}) for scene in scenes]
                logger.info(f"Story generation {token} produced {len(scenes)} scenes")
        except Exception as e:
            logger.error(f"Story generation {token} failed: {e}")
            if self._is_current(token):
                self.error = e.message if isinstance(e, StoryError) else UNKNOWN_ERROR
        finally:
            if self._is_current(token):
                self.loading = False

    async def generate_image(self, scene_number: int):
        scene = self.get_scene(scene_number)
        if scene is None:
            logger.warning(f"No scene {scene_number} in the current story")
            return
        if _busy(scene.image) or _busy(scene.video):
            logger.info(f"Scene {scene_number} is busy, ignoring image request")
            return

        token = self._generation
        self._update_scene(scene_number, image=SceneImage(generating=True))
        try:
            generated = await self.service.generate_image(scene.animation_prompt)
        except Exception as e:
            logger.error(f"Image generation for scene {scene_number} failed: {e}")
            if self._is_current(token):
                self.error = f"Failed to generate image for scene {scene_number}."
                self._update_scene(scene_number, image=SceneImage(generating=False))
            return

        if not self._is_current(token):
            logger.info(f"Dropping image for scene {scene_number} from superseded story {token}")
            return
        self._update_scene(scene_number, image=SceneImage(
            data_url=generated.data_url, base64=generated.base64, generating=False))

    async def generate_video(self, scene_number: int):
        scene = self.get_scene(scene_number)
        if scene is None:
            logger.warning(f"No scene {scene_number} in the current story")
            return
        if _busy(scene.video):
            logger.info(f"Scene {scene_number} video already generating, ignoring request")
            return
        if scene.image is None or scene.image.generating or not scene.image.base64:
            logger.warning(f"Scene {scene_number} has no image yet, refusing video request")
            self.error = f"Generate an image for scene {scene_number} before creating its video."
            return

        token = self._generation
        self._update_scene(scene_number, video=SceneVideo(generating=True))
        try:
            video_url = await self.service.generate_video(scene.animation_prompt, scene.image.base64)
        except Exception as e:
            logger.error(f"Video generation for scene {scene_number} failed: {e}")
            if self._is_current(token):
                self.error = f"Failed to generate video for scene {scene_number}."
                self._update_scene(scene_number, video=SceneVideo(generating=False))
            return

        if not self._is_current(token):
            logger.info(f"Dropping video for scene {scene_number} from superseded story {token}")
            return
        self._update_scene(scene_number, video=SceneVideo(url=video_url, generating=False))

    def play_voiceover(self, scene_number: int):
        scene = self.get_scene(scene_number)
        if scene is None:
            logger.warning(f"No scene {scene_number} in the current story")
            return
        if self.lease.holder == scene_number:
            self.stop_voiceover()
            return
        self.stop_voiceover()

        token = self.lease.acquire(scene_number)
        logger.info(f"Playing voiceover for scene {scene_number}")
        try:
            self.speech.speak(
                scene.script,
                on_end=lambda: self._voiceover_finished(token),
                on_error=lambda exc: self._voiceover_failed(token, exc),
            )
        except Exception as e:
            self._voiceover_failed(token, e)

    def stop_voiceover(self):
        self.speech.cancel()
        self.lease.release()

    def _voiceover_finished(self, token: int):
        self.lease.release(token)

    def _voiceover_failed(self, token: int, exc: Exception):
        if self.lease.release(token):
            logger.error(f"Voiceover playback error: {exc}")
            self.error = PLAYBACK_ERROR

    def close(self):
        """End the session: silence playback and abandon in-flight results."""
        self.stop_voiceover()
        self._generation += 1
        self.loading = False
