import io
import json

from PIL import Image

FINGERPRINT_VERSION = 1


def compute_fingerprint(image_bytes: bytes, size: int = 16) -> dict:
    """Downsample an image to ``size`` x ``size`` luma values.

    Same shape the admin UI computes in the browser: ``{v, w, h, data}``.
    """
    if size <= 0:
        raise ValueError("Fingerprint size must be positive")
    with Image.open(io.BytesIO(image_bytes)) as img:
        small = img.convert("RGB").resize((size, size), Image.Resampling.BILINEAR)
        data = [round(0.299 * r + 0.587 * g + 0.114 * b) for r, g, b in small.getdata()]
    return {"v": FINGERPRINT_VERSION, "w": size, "h": size, "data": data}


def serialize_fingerprint(value) -> str:
    return value if isinstance(value, str) else json.dumps(value, separators=(",", ":"))


def deserialize_fingerprint(raw: str | None):
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw
