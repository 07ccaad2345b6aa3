import os, time, httpx, asyncio, logging
from .polling import poll_until
from .settings import (REPLICATE_POLL_INTERVAL_MS, REPLICATE_POLL_TIMEOUT_S,
                       REPLICATE_IMAGE_MODEL, REPLICATE_VIDEO_MODEL)

logger = logging.getLogger(__name__)

API_ROOT = "https://api.replicate.com/v1"
TERMINAL_STATUSES = ("succeeded", "failed", "canceled")

def _headers():
    token = os.getenv("REPLICATE_API_TOKEN", "")
    if not token:
        raise RuntimeError("REPLICATE_API_TOKEN is not set; please configure your .env")
    return {"Authorization": f"Token {token}"}

def _new_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=30)

def _parse_selector(selector: str):
    # Returns a tuple (mode, data)
    # mode == "version": data={"version": <hash>}
    # mode == "model": data={"owner": <owner>, "name": <name>}
    if "/" in selector:
        # Could be owner/name or owner/name:versionAlias
        owner_name, _, _version_alias = selector.partition(":")
        if "/" in owner_name:
            owner, name = owner_name.split("/", 1)
            return "model", {"owner": owner, "name": name}
    # Fallback assume it's a version hash
    return "version", {"version": selector}

def _first_output(output):
    if isinstance(output, list):
        return output[0] if output else None
    return output or None

async def create_prediction(client: httpx.AsyncClient, selector: str, model_input: dict) -> dict:
    """Create a prediction for a model alias or version hash and return its JSON."""
    json_body = {"input": model_input}
    mode, data = _parse_selector(selector)
    if mode == "version":
        json_body["version"] = data["version"]
        url = f"{API_ROOT}/predictions"
    else:
        url = f"{API_ROOT}/models/{data['owner']}/{data['name']}/predictions"

    logger.info(f"Sending request to Replicate: {url}")
    headers = {**_headers(), "Content-Type": "application/json"}
    r = await client.post(url, headers=headers, json=json_body)
    if r.status_code >= 400:
        logger.error(f"Replicate create failed {r.status_code}: {r.text}")
        if mode != "model" or r.status_code != 404:
            raise RuntimeError(f"Replicate create failed {r.status_code}: {r.text}")
        # Model endpoint unavailable for this alias; resolve its latest version instead
        logger.info("Falling back to latest version resolution for model")
        model_resp = await client.get(f"{API_ROOT}/models/{data['owner']}/{data['name']}", headers=_headers())
        model_resp.raise_for_status()
        version_id = (model_resp.json().get("latest_version") or {}).get("id")
        if not version_id:
            raise RuntimeError("Could not resolve latest version for model")
        logger.info(f"Resolved latest version: {version_id}")
        r = await client.post(f"{API_ROOT}/predictions", headers=headers,
                              json={**json_body, "version": version_id})
        if r.status_code >= 400:
            raise RuntimeError(f"Replicate create failed {r.status_code}: {r.text}")
    pred = r.json()
    logger.info(f"Replicate prediction created with ID: {pred['id']}")
    return pred

async def get_prediction(client: httpx.AsyncClient, pred_id: str) -> dict:
    s = await client.get(f"{API_ROOT}/predictions/{pred_id}", headers=_headers())
    if s.status_code >= 400:
        logger.error(f"Replicate status failed {s.status_code}: {s.text}")
        raise RuntimeError(f"Replicate status failed {s.status_code}: {s.text}")
    body = s.json()
    logger.info(f"Replicate prediction {pred_id} status: {body.get('status')}")
    return body

async def create_and_wait_image(prompt: str, sleep=asyncio.sleep) -> str:
    """Run an image prediction to completion and return the output URL."""
    logger.info(f"Starting Replicate image generation for prompt: {prompt[:100]}...")
    async with _new_client() as client:
        pred = await create_prediction(client, REPLICATE_IMAGE_MODEL, {
            "prompt": prompt,
            "num_outputs": 1,
            "aspect_ratio": "16:9",
            "output_format": "jpg",
        })
        pred_id = pred["id"]
        deadline = time.time() + REPLICATE_POLL_TIMEOUT_S

        def finished(body: dict) -> bool:
            if body.get("status") in TERMINAL_STATUSES:
                return True
            if time.time() > deadline:
                logger.error("Replicate polling timeout")
                raise TimeoutError("Replicate polling timeout")
            return False

        body = await poll_until(lambda: get_prediction(client, pred_id), finished,
                                REPLICATE_POLL_INTERVAL_MS, sleep=sleep)

    status = body.get("status")
    if status != "succeeded":
        logs = body.get("logs")
        error_detail = body.get("error")
        logger.error(f"Replicate failed: {status}. logs={logs} error={error_detail}")
        raise RuntimeError(f"Replicate failed: {status}. error={error_detail}")
    url = _first_output(body.get("output"))
    if not url:
        logger.error("Replicate succeeded but no output URL")
        raise RuntimeError("Replicate succeeded but no output URL")
    logger.info(f"Replicate prediction succeeded, got output URL: {url}")
    return url

async def download(url: str) -> bytes:
    async with _new_client() as client:
        r = await client.get(url)
        r.raise_for_status()
        return r.content

async def start_video(prompt: str, image_data_uri: str) -> str:
    """Start an image-to-video prediction; its id is the operation handle."""
    logger.info(f"Starting Replicate video generation for prompt: {prompt[:100]}...")
    async with _new_client() as client:
        pred = await create_prediction(client, REPLICATE_VIDEO_MODEL, {
            "prompt": prompt,
            "start_image": image_data_uri,
        })
    return pred.get("id") or ""

async def get_video_status(pred_id: str) -> dict:
    """Map a video prediction onto the {done, videoUrl?, error?} poll shape."""
    async with _new_client() as client:
        body = await get_prediction(client, pred_id)
    status = body.get("status")
    if status not in TERMINAL_STATUSES:
        return {"done": False}
    if status != "succeeded":
        detail = body.get("error") or "no details"
        return {"done": True, "error": f"Video generation {status}: {detail}"}
    url = _first_output(body.get("output"))
    if not url:
        return {"done": True, "error": "Video processing finished, but no output URL was returned."}
    return {"done": True, "videoUrl": url}
