import base64, io, logging
from PIL import Image

logger = logging.getLogger(__name__)

JPEG_MIME = "image/jpeg"

def to_jpeg_bytes(data: bytes, quality: int = 90) -> bytes:
    """Re-encode any Pillow-readable image (WebP, PNG, ...) as JPEG."""
    with Image.open(io.BytesIO(data)) as img:
        if img.format == "JPEG":
            return data
        logger.info(f"Converting {img.format} image to JPEG")
        if img.mode in ("RGBA", "LA", "P"):
            # Flatten transparency onto white; JPEG has no alpha channel
            img = img.convert("RGBA")
            background = Image.new("RGB", img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            img = background
        elif img.mode != "RGB":
            img = img.convert("RGB")
        out = io.BytesIO()
        img.save(out, "JPEG", quality=quality)
        return out.getvalue()

def encode_image(data: bytes) -> dict:
    """Build the image endpoint payload: a JPEG data URL plus its raw base64."""
    b64 = base64.b64encode(to_jpeg_bytes(data)).decode("ascii")
    return {"dataUrl": data_uri(b64), "base64": b64}

def data_uri(b64: str, mime: str = JPEG_MIME) -> str:
    return f"data:{mime};base64,{b64}"
