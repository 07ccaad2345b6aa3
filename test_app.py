"""
Tests for the provider proxy routes.
"""
import io
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from story_studio.app import app
from story_studio.models import AdvancedOptions

client = TestClient(app)

SCENES = [
    {"scene": 1, "script": "A robot wakes.", "animationPrompt": "Dusty workshop, slow dolly in"},
    {"scene": 2, "script": "It finds a brush.", "animationPrompt": "Macro shot, cinematic lighting"},
    {"scene": 3, "script": "It paints the sky.", "animationPrompt": "Crane shot over rooftops"},
]


def _jpeg():
    out = io.BytesIO()
    Image.new("RGB", (4, 4), (0, 0, 255)).save(out, "JPEG")
    return out.getvalue()


def test_health():
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "has_keys": True}


@pytest.mark.parametrize("method, path", [
    ("get", "/api/story"),
    ("get", "/api/image"),
    ("get", "/api/video-start"),
    ("post", "/api/video-poll"),
])
def test_wrong_method_is_rejected(method, path):
    response = getattr(client, method)(path)

    assert response.status_code == 405
    assert response.json() == {"error": "Method Not Allowed"}


@pytest.mark.parametrize("key, request_args", [
    ("OPENAI_API_KEY", ("post", "/api/story", {"topic": "t", "numberOfScenes": 3})),
    ("REPLICATE_API_TOKEN", ("post", "/api/image", {"prompt": "p"})),
    ("REPLICATE_API_TOKEN", ("post", "/api/video-start", {"prompt": "p", "imageBase64": "QQ=="})),
])
def test_missing_credential_is_500(monkeypatch, key, request_args):
    monkeypatch.delenv(key)
    method, path, body = request_args

    response = getattr(client, method)(path, json=body)

    assert response.status_code == 500
    assert response.json() == {"error": f"{key} environment variable not set"}


def test_missing_credential_on_poll(monkeypatch):
    monkeypatch.delenv("REPLICATE_API_TOKEN")

    response = client.get("/api/video-poll", params={"operationName": "pred-1"})

    assert response.status_code == 500


def test_story_success_forwards_options():
    with patch("story_studio.app.get_story_scenes", return_value=SCENES) as mock_scenes:
        response = client.post("/api/story", json={
            "topic": "A robot learns to paint",
            "numberOfScenes": 3,
            "options": {"genre": "comedy", "avoid": "violence"},
        })

    assert response.status_code == 200
    assert response.json() == SCENES
    topic, count, options = mock_scenes.call_args.args
    assert (topic, count) == ("A robot learns to paint", 3)
    assert options == AdvancedOptions(genre="comedy", avoid="violence")


@pytest.mark.parametrize("body", [{}, {"topic": "robots"}, {"numberOfScenes": 3}])
def test_story_missing_parameters(body):
    response = client.post("/api/story", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required parameters: topic, numberOfScenes"}


def test_story_malformed_body():
    response = client.post("/api/story", json={"topic": "robots", "numberOfScenes": "many"})

    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.parametrize("raw", [[], [{"scene": 1}], [{"unexpected": True}]])
def test_story_empty_or_invalid_model_output(raw):
    with patch("story_studio.app.get_story_scenes", return_value=raw):
        response = client.post("/api/story", json={"topic": "robots", "numberOfScenes": 3})

    assert response.status_code == 500
    assert response.json() == {"error": "Invalid or empty response from the language model."}


def test_story_provider_failure():
    with patch("story_studio.app.get_story_scenes", side_effect=RuntimeError("rate limited")):
        response = client.post("/api/story", json={"topic": "robots", "numberOfScenes": 3})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to generate story."}


def test_image_success():
    with patch("story_studio.replicate_client.create_and_wait_image",
               new=AsyncMock(return_value="https://cdn/i.jpg")) as mock_create, \
         patch("story_studio.replicate_client.download", new=AsyncMock(return_value=_jpeg())):
        response = client.post("/api/image", json={"prompt": "a lighthouse"})

    assert response.status_code == 200
    data = response.json()
    assert data["dataUrl"] == f"data:image/jpeg;base64,{data['base64']}"
    mock_create.assert_awaited_once_with("a lighthouse")


def test_image_missing_prompt():
    response = client.post("/api/image", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required parameter: prompt"}


def test_image_provider_failure():
    with patch("story_studio.replicate_client.create_and_wait_image",
               new=AsyncMock(side_effect=TimeoutError("Replicate polling timeout"))):
        response = client.post("/api/image", json={"prompt": "a lighthouse"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to generate image."}


def test_video_start_returns_202_with_handle():
    with patch("story_studio.replicate_client.start_video",
               new=AsyncMock(return_value="pred-7")) as mock_start:
        response = client.post("/api/video-start", json={"prompt": "crane shot", "imageBase64": "QQ=="})

    assert response.status_code == 202
    assert response.json() == {"operationName": "pred-7"}
    mock_start.assert_awaited_once_with("crane shot", "data:image/jpeg;base64,QQ==")


@pytest.mark.parametrize("body", [{}, {"prompt": "crane shot"}, {"imageBase64": "QQ=="}])
def test_video_start_missing_parameters(body):
    response = client.post("/api/video-start", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required parameters: prompt, imageBase64"}


def test_video_start_without_id_is_500():
    with patch("story_studio.replicate_client.start_video", new=AsyncMock(return_value="")):
        response = client.post("/api/video-start", json={"prompt": "crane shot", "imageBase64": "QQ=="})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to start video generation."}


@pytest.mark.parametrize("status", [
    {"done": False},
    {"done": True, "videoUrl": "https://cdn/v.mp4"},
    {"done": True, "error": "Video generation failed: NSFW content detected"},
])
def test_video_poll_passes_status_through(status):
    with patch("story_studio.replicate_client.get_video_status",
               new=AsyncMock(return_value=status)) as mock_status:
        response = client.get("/api/video-poll", params={"operationName": "pred-7"})

    assert response.status_code == 200
    assert response.json() == status
    mock_status.assert_awaited_once_with("pred-7")


def test_video_poll_requires_operation_name():
    response = client.get("/api/video-poll")

    assert response.status_code == 400
    assert response.json() == {"error": "Missing or invalid operationName query parameter"}


def test_video_poll_provider_failure():
    with patch("story_studio.replicate_client.get_video_status",
               new=AsyncMock(side_effect=RuntimeError("Replicate status failed 500"))):
        response = client.get("/api/video-poll", params={"operationName": "pred-7"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to poll video status."}
