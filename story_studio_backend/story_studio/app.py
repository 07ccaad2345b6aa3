from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as ModelValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

# Ensure .env is loaded before importing modules that initialize API clients
from .settings import has_all_keys, missing_keys, ALLOWED_ORIGINS
from .models import ImageRequest, Scene, StoryRequest, VideoStartRequest
from .llm import get_story_scenes
from .media import data_uri, encode_image
from . import replicate_client

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Story Studio API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS or ["*"],
    allow_credentials=True,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["*"],
)

@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    # The session client reads failures from an "error" field
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)

@app.exception_handler(RequestValidationError)
async def invalid_body(request: Request, exc: RequestValidationError):
    logger.warning(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
    return JSONResponse({"error": "Malformed request body"}, status_code=400)

def _require_key(name: str):
    if missing_keys(name):
        logger.error(f"{name} missing, cannot serve request")
        raise HTTPException(500, f"{name} environment variable not set")

@app.get("/health")
def health():
    keys_ok = has_all_keys()
    logger.info(f"Health check: API keys present = {keys_ok}")
    return {"ok": True, "has_keys": keys_ok}

@app.post("/api/story")
def generate_story(req: StoryRequest):
    _require_key("OPENAI_API_KEY")
    if not req.topic or not req.number_of_scenes:
        raise HTTPException(400, "Missing required parameters: topic, numberOfScenes")

    logger.info(f"Generating {req.number_of_scenes} scenes for topic: {req.topic[:50]}...")
    try:
        raw_scenes = get_story_scenes(req.topic, req.number_of_scenes, req.options)
    except Exception as e:
        logger.error(f"Error in /api/story: {e}")
        raise HTTPException(500, "Failed to generate story.")
    try:
        scenes = [Scene.model_validate(item) for item in raw_scenes]
    except ModelValidationError as e:
        logger.error(f"Language model returned malformed scenes: {e}")
        scenes = []
    if not scenes:
        raise HTTPException(500, "Invalid or empty response from the language model.")
    return [s.model_dump(by_alias=True, exclude={"image", "video"}) for s in scenes]

@app.post("/api/image")
async def generate_image(req: ImageRequest):
    _require_key("REPLICATE_API_TOKEN")
    if not req.prompt:
        raise HTTPException(400, "Missing required parameter: prompt")
    try:
        url = await replicate_client.create_and_wait_image(req.prompt)
        image_bytes = await replicate_client.download(url)
        return encode_image(image_bytes)
    except Exception as e:
        logger.error(f"Error in /api/image: {e}")
        raise HTTPException(500, "Failed to generate image.")

@app.post("/api/video-start", status_code=202)
async def start_video(req: VideoStartRequest):
    _require_key("REPLICATE_API_TOKEN")
    if not req.prompt or not req.image_base64:
        raise HTTPException(400, "Missing required parameters: prompt, imageBase64")
    try:
        operation_name = await replicate_client.start_video(req.prompt, data_uri(req.image_base64))
    except Exception as e:
        logger.error(f"Error in /api/video-start: {e}")
        raise HTTPException(500, "Failed to start video generation.")
    if not operation_name:
        logger.error("Video prediction started but no id was returned")
        raise HTTPException(500, "Failed to start video generation.")
    logger.info(f"Video operation started: {operation_name}")
    return {"operationName": operation_name}

@app.get("/api/video-poll")
async def poll_video(operationName: str = ""):
    _require_key("REPLICATE_API_TOKEN")
    if not operationName:
        raise HTTPException(400, "Missing or invalid operationName query parameter")
    try:
        return await replicate_client.get_video_status(operationName)
    except Exception as e:
        logger.error(f"Error in /api/video-poll: {e}")
        raise HTTPException(500, "Failed to poll video status.")
