"""Binary object storage for uploaded images, videos and compiled targets.

Both backends overwrite on ``put`` and expose no delete; deleting an
experience leaves its objects in place.
"""
import logging
import os
import re
import secrets
from dataclasses import dataclass

from vidcom.config import Settings

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class StoredObject:
    data: bytes
    content_type: str


def sanitize_filename(filename: str) -> str:
    base = os.path.basename(filename or "").strip()
    cleaned = _UNSAFE_FILENAME_CHARS.sub("-", base).strip("-.")
    return cleaned[:120] or "file"


def build_storage_key(kind: str, filename: str) -> str:
    """``<kind>/<random>/<sanitized filename>``"""
    return f"{kind}/{secrets.token_hex(16)}/{sanitize_filename(filename)}"


class LocalObjectStore:
    """Objects under ``data_dir``; the content type sits in a ``.type`` sidecar file."""

    def __init__(self, root: str):
        self.root = os.path.abspath(root)

    def _path(self, key: str) -> str:
        path = os.path.abspath(os.path.join(self.root, key))
        if os.path.commonpath([self.root, path]) != self.root:
            raise ValueError(f"Storage key escapes the store root: {key}")
        return path

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        path = self._path(key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
        with open(f"{path}.type", "w") as f:
            f.write(content_type)

    async def get(self, key: str) -> StoredObject | None:
        path = self._path(key)
        if not os.path.isfile(path):
            return None
        with open(path, "rb") as f:
            data = f.read()
        content_type = "application/octet-stream"
        if os.path.isfile(f"{path}.type"):
            with open(f"{path}.type") as f:
                content_type = f.read().strip() or content_type
        return StoredObject(data=data, content_type=content_type)


class S3ObjectStore:
    """S3-compatible bucket (R2, MinIO, AWS)."""

    def __init__(self, settings: Settings, client=None):
        if not settings.s3_bucket:
            raise RuntimeError("S3_BUCKET is required for the s3 storage backend")
        self.bucket = settings.s3_bucket
        if client is None:
            import boto3
            from botocore.config import Config

            session = boto3.session.Session()
            client = session.client(
                "s3",
                endpoint_url=settings.s3_endpoint_url,
                aws_access_key_id=settings.s3_access_key or None,
                aws_secret_access_key=settings.s3_secret_key or None,
                region_name=settings.s3_region,
                config=Config(signature_version="s3v4"),
            )
        self.client = client

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)

    async def get(self, key: str) -> StoredObject | None:
        from botocore.exceptions import ClientError

        try:
            obj = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in ("404", "NoSuchKey", "NotFound"):
                return None
            raise
        body = obj.get("Body")
        return StoredObject(
            data=body.read() if body else b"",
            content_type=obj.get("ContentType") or "application/octet-stream",
        )


def build_object_store(settings: Settings):
    if settings.storage_backend == "s3":
        logger.info("Using S3 object store bucket=%s", settings.s3_bucket)
        return S3ObjectStore(settings)
    logger.info("Using local object store at %s", settings.data_dir)
    return LocalObjectStore(settings.data_dir)
