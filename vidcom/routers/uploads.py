import logging
import time
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from vidcom.config import Settings
from vidcom.database import get_db
from vidcom.dependencies import get_settings, get_signer, get_store, require_user_or_job
from vidcom.models.asset import Asset
from vidcom.schemas.upload import AssetResponse, CompleteUploadRequest, SignUploadRequest, SignUploadResponse
from vidcom.services.signing import UPLOAD_PURPOSE, Signer
from vidcom.services.storage import build_storage_key
from vidcom.utils.exceptions import Forbidden, ValidationFailed
from vidcom.utils.response import ok_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.post("/sign", dependencies=[Depends(require_user_or_job)])
async def sign_upload(
    payload: SignUploadRequest,
    settings: Settings = Depends(get_settings),
    signer: Signer = Depends(get_signer),
):
    if payload.size > settings.max_upload_size_bytes:
        raise ValidationFailed(f"File too large (max {settings.max_upload_size_bytes} bytes)")

    key = build_storage_key(payload.kind, payload.filename)
    upload_url, expires = signer.upload_url(key, payload.mime)
    return SignUploadResponse(uploadUrl=upload_url, storageKey=key, expiresAt=expires).model_dump()


# Authorised by the signature alone so browsers can upload without the bearer token.
@router.put("/put")
async def put_upload(
    request: Request,
    key: str = Query(default=""),
    exp: int = Query(default=0),
    sig: str = Query(default=""),
    mime: str | None = Query(default=None),
    settings: Settings = Depends(get_settings),
    signer: Signer = Depends(get_signer),
    store=Depends(get_store),
):
    if not signer.verify(UPLOAD_PURPOSE, key, sig, exp):
        logger.warning("Rejected upload with bad signature for key %s", key)
        raise Forbidden("Invalid upload signature")
    if time.time() > exp:
        raise Forbidden("Upload URL expired")

    body = await request.body()
    if len(body) > settings.max_upload_size_bytes:
        raise ValidationFailed(f"File too large (max {settings.max_upload_size_bytes} bytes)")

    content_type = request.headers.get("content-type") or mime or "application/octet-stream"
    await store.put(key, body, content_type)
    logger.info("Stored upload %s (%d bytes)", key, len(body))
    return ok_response(storageKey=key, size=len(body))


@router.post("/complete", status_code=201, dependencies=[Depends(require_user_or_job)])
async def complete_upload(
    payload: CompleteUploadRequest,
    db: AsyncSession = Depends(get_db),
    signer: Signer = Depends(get_signer),
):
    # The object's presence at storage_key is not checked; the PUT step is trusted.
    asset = Asset(
        id=str(uuid.uuid4()),
        kind=payload.kind,
        storage_key=payload.storage_key,
        mime=payload.mime,
        size=payload.size,
        filename=payload.filename,
        created_at=datetime.now(timezone.utc).isoformat(),
    )
    db.add(asset)
    await db.commit()
    logger.info("Asset %s recorded (%s, %s)", asset.id, asset.kind, asset.storage_key)

    return AssetResponse(
        id=asset.id,
        kind=asset.kind,
        storage_key=asset.storage_key,
        mime=asset.mime,
        size=asset.size,
        filename=asset.filename,
        url=signer.asset_url(asset),
    ).model_dump()
