import os, httpx, asyncio, logging

logger = logging.getLogger(__name__)

TTS_MODEL_ID = "eleven_multilingual_v2"

def _voice_id() -> str:
    vid = os.getenv("ELEVENLABS_VOICE_ID", "")
    if not vid:
        raise RuntimeError("ELEVENLABS_VOICE_ID is not set; please configure your .env")
    return vid

def _headers():
    api_key = os.getenv("ELEVENLABS_API_KEY", "")
    if not api_key:
        raise RuntimeError("ELEVENLABS_API_KEY is not set; please configure your .env")
    return {
        "xi-api-key": api_key,
        "Content-Type": "application/json"
    }

async def tts_to_bytes(text: str, max_retries: int = 3, transport: httpx.AsyncBaseTransport = None) -> bytes:
    """Synthesize a voiceover script to MP3 bytes, backing off on 429s."""
    payload = {
        "text": text,
        "model_id": TTS_MODEL_ID,
        "voice_settings": {"stability": 0.5, "similarity_boost": 0.75},
        "optimize_streaming_latency": 2,
        "output_format": "mp3_44100_64"
    }
    url = f"https://api.elevenlabs.io/v1/text-to-speech/{_voice_id()}"

    for attempt in range(max_retries + 1):
        try:
            async with httpx.AsyncClient(timeout=60, transport=transport) as client:
                r = await client.post(url, headers=_headers(), json=payload)
                r.raise_for_status()
                logger.info(f"Synthesized {len(r.content)} bytes of voiceover audio")
                return r.content
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 429 or attempt >= max_retries:
                logger.error(f"ElevenLabs request failed with {e.response.status_code} after {attempt + 1} attempt(s)")
                raise
            wait_time = 2 ** attempt
            logger.warning(f"ElevenLabs rate limited (429). Retrying in {wait_time} seconds... (attempt {attempt + 1}/{max_retries + 1})")
            await asyncio.sleep(wait_time)
