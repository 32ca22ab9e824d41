import hashlib
import hmac
import time
from urllib.parse import urlencode

from vidcom.config import Settings
from vidcom.models.asset import Asset

UPLOAD_PURPOSE = "upload"
ASSET_PURPOSE = "asset"


class Signer:
    """HMAC-SHA256 signatures over ``<purpose>:<subject>[:<expiry>]``."""

    def __init__(self, settings: Settings):
        self._secret = settings.signing_secret.encode()
        self.base_url = settings.public_base_url.rstrip("/")
        self.asset_base_url = (settings.public_asset_base_url or "").rstrip("/") or None
        self.upload_ttl = settings.upload_url_ttl_seconds

    def sign(self, purpose: str, subject: str, expires: int | None = None) -> str:
        message = f"{purpose}:{subject}"
        if expires is not None:
            message = f"{message}:{expires}"
        return hmac.new(self._secret, message.encode(), hashlib.sha256).hexdigest()

    def verify(self, purpose: str, subject: str, signature: str, expires: int | None = None) -> bool:
        expected = self.sign(purpose, subject, expires).encode()
        return hmac.compare_digest(expected, (signature or "").encode())

    def upload_url(self, key: str, mime: str, now: float | None = None) -> tuple[str, int]:
        expires = int(now if now is not None else time.time()) + self.upload_ttl
        query = urlencode({
            "key": key,
            "exp": expires,
            "mime": mime,
            "sig": self.sign(UPLOAD_PURPOSE, key, expires),
        })
        return f"{self.base_url}/uploads/put?{query}", expires

    def asset_token(self, asset_id: str) -> str:
        return self.sign(ASSET_PURPOSE, asset_id)

    def asset_url(self, asset: Asset) -> str:
        if self.asset_base_url:
            return f"{self.asset_base_url}/{asset.storage_key}"
        return f"{self.base_url}/assets/{asset.id}?{urlencode({'token': self.asset_token(asset.id)})}"
