import asyncio
import logging
from typing import Awaitable, Callable, List

from pydantic import ValidationError as ModelValidationError

from .errors import ProtocolError
from .models import AdvancedOptions, GeneratedImage, Scene, VideoStatus
from .polling import poll_until
from .remote import RemoteClient

logger = logging.getLogger(__name__)

STORY_ENDPOINT = "/api/story"
IMAGE_ENDPOINT = "/api/image"
VIDEO_START_ENDPOINT = "/api/video-start"
VIDEO_POLL_ENDPOINT = "/api/video-poll"

# Fixed by the video provider's pace; not a client setting.
VIDEO_POLL_INTERVAL_MS = 10_000


def _video_finished(status: VideoStatus) -> bool:
    # An inline error ends polling as a hard failure
    if status.error:
        raise ProtocolError(status.error)
    return status.done


class StoryService:
    """Story, image and video operations on top of ``RemoteClient``."""

    def __init__(self, client: RemoteClient,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.client = client
        self._sleep = sleep

    async def generate_story(self, topic: str, number_of_scenes: int,
                             options: AdvancedOptions) -> List[Scene]:
        logger.info(f"Requesting a {number_of_scenes}-scene story for topic: {topic[:50]}...")
        data = await self.client.call(STORY_ENDPOINT, "POST", {
            "topic": topic,
            "numberOfScenes": number_of_scenes,
            "options": options.model_dump(),
        })
        if not isinstance(data, list):
            raise ProtocolError("Story response was not a list of scenes.")
        try:
            scenes = [Scene.model_validate(item) for item in data]
        except ModelValidationError as e:
            raise ProtocolError(f"Story response contained a malformed scene: {e}") from e
        logger.info(f"Received {len(scenes)} scenes")
        return scenes

    async def generate_image(self, prompt: str) -> GeneratedImage:
        data = await self.client.call(IMAGE_ENDPOINT, "POST", {"prompt": prompt})
        try:
            return GeneratedImage.model_validate(data)
        except ModelValidationError as e:
            raise ProtocolError(f"Image response was malformed: {e}") from e

    async def generate_video(self, prompt: str, image_base64: str) -> str:
        started = await self.client.call(VIDEO_START_ENDPOINT, "POST", {
            "prompt": prompt,
            "imageBase64": image_base64,
        })
        operation_name = started.get("operationName") if isinstance(started, dict) else None
        if not operation_name:
            raise ProtocolError("Failed to start video generation process.")
        logger.info(f"Video operation {operation_name} started, polling every {VIDEO_POLL_INTERVAL_MS} ms")

        async def probe() -> VideoStatus:
            data = await self.client.call(VIDEO_POLL_ENDPOINT, "GET",
                                          params={"operationName": operation_name})
            try:
                return VideoStatus.model_validate(data)
            except ModelValidationError as e:
                raise ProtocolError(f"Video status response was malformed: {e}") from e

        final = await poll_until(probe, _video_finished, VIDEO_POLL_INTERVAL_MS, sleep=self._sleep)
        if not final.video_url:
            raise ProtocolError("Video generation finished but no URL was provided.")
        logger.info(f"Video operation {operation_name} finished")
        return final.video_url
