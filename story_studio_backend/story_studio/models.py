from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class WireModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(populate_by_name=True)


class AdvancedOptions(WireModel):
    genre: str = ""
    audience: str = ""
    tone: str = ""
    include: str = ""
    avoid: str = ""


class SceneImage(WireModel):
    data_url: str = Field("", alias="dataUrl")
    base64: str = ""
    generating: bool = False


class SceneVideo(WireModel):
    url: str = ""
    generating: bool = False


class Scene(WireModel):
    scene: int
    script: str
    animation_prompt: str = Field(alias="animationPrompt")
    image: Optional[SceneImage] = None
    video: Optional[SceneVideo] = None


class GeneratedImage(WireModel):
    data_url: str = Field(alias="dataUrl")
    base64: str


class VideoStatus(WireModel):
    done: bool = False
    video_url: Optional[str] = Field(None, alias="videoUrl")
    error: Optional[str] = None


class StoryRequest(WireModel):
    topic: str = ""
    number_of_scenes: int = Field(0, alias="numberOfScenes")
    options: AdvancedOptions = Field(default_factory=AdvancedOptions)


class ImageRequest(WireModel):
    prompt: str = ""


class VideoStartRequest(WireModel):
    prompt: str = ""
    image_base64: str = Field("", alias="imageBase64")
