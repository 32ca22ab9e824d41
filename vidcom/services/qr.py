import io

import qrcode


def make_qr_png(url: str) -> bytes:
    """Return QR PNG bytes for the provided URL."""
    img = qrcode.make(url)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
