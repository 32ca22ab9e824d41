import logging
import uuid
from datetime import datetime, timezone

from PIL import Image, UnidentifiedImageError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from vidcom.models.asset import Asset
from vidcom.models.experience import Experience
from vidcom.models.pair import Pair
from vidcom.services.fingerprint import compute_fingerprint, deserialize_fingerprint, serialize_fingerprint
from vidcom.services.mindar_dispatch import mark_failed, mark_pending, mark_ready
from vidcom.services.signing import Signer
from vidcom.utils.exceptions import NotFound, ValidationFailed

logger = logging.getLogger(__name__)


async def get_pair_or_404(db: AsyncSession, pair_id: str) -> Pair:
    pair = await db.get(Pair, pair_id)
    if pair is None:
        raise NotFound("Pair not found")
    return pair


async def _require_asset(db: AsyncSession, asset_id: str, kind: str, field: str) -> Asset:
    asset = await db.get(Asset, asset_id)
    if asset is None:
        raise ValidationFailed(f"{field} does not reference an uploaded asset")
    if asset.kind != kind:
        raise ValidationFailed(f"{field} must reference a {kind} asset, got {asset.kind}")
    return asset


async def _fingerprint_from_store(store, image: Asset) -> str:
    stored = await store.get(image.storage_key)
    if stored is None:
        raise ValidationFailed("Image asset has no stored content; upload it again")
    try:
        return serialize_fingerprint(compute_fingerprint(stored.data))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ValidationFailed(f"Image asset could not be decoded: {e}")


async def create_pair(
    db: AsyncSession,
    store,
    experience: Experience,
    image_asset_id: str,
    video_asset_id: str,
    threshold: float,
    priority: int = 0,
    image_fingerprint=None,
    is_active: bool = True,
) -> Pair:
    image = await _require_asset(db, image_asset_id, "image", "image_asset_id")
    await _require_asset(db, video_asset_id, "video", "video_asset_id")

    if image_fingerprint is None:
        fingerprint = await _fingerprint_from_store(store, image)
    else:
        fingerprint = serialize_fingerprint(image_fingerprint)

    now = datetime.now(timezone.utc).isoformat()
    pair = Pair(
        id=str(uuid.uuid4()),
        experience_id=experience.id,
        image_asset_id=image_asset_id,
        video_asset_id=video_asset_id,
        image_fingerprint=fingerprint,
        threshold=threshold,
        priority=priority,
        is_active=int(is_active),
        created_at=now,
        updated_at=now,
    )
    mark_pending(pair)
    db.add(pair)
    await db.commit()
    logger.info("Pair %s created under experience %s", pair.id, experience.id)
    return pair


async def update_pair(db: AsyncSession, store, pair: Pair, changes: dict) -> bool:
    """Apply a partial update. Returns True when the image changed and a new target is needed."""
    image_changed = False

    new_image_id = changes.get("image_asset_id")
    if new_image_id is not None and new_image_id != pair.image_asset_id:
        image = await _require_asset(db, new_image_id, "image", "image_asset_id")
        pair.image_asset_id = new_image_id
        if changes.get("image_fingerprint") is None:
            pair.image_fingerprint = await _fingerprint_from_store(store, image)
        mark_pending(pair)
        image_changed = True

    if changes.get("video_asset_id") is not None:
        await _require_asset(db, changes["video_asset_id"], "video", "video_asset_id")
        pair.video_asset_id = changes["video_asset_id"]

    if changes.get("experience_id") is not None and changes["experience_id"] != pair.experience_id:
        if await db.get(Experience, changes["experience_id"]) is None:
            raise ValidationFailed("experience_id does not reference an experience")
        logger.info("Moving pair %s from %s to %s", pair.id, pair.experience_id, changes["experience_id"])
        pair.experience_id = changes["experience_id"]

    if changes.get("image_fingerprint") is not None:
        pair.image_fingerprint = serialize_fingerprint(changes["image_fingerprint"])
    if changes.get("threshold") is not None:
        pair.threshold = changes["threshold"]
    if changes.get("priority") is not None:
        pair.priority = changes["priority"]
    if changes.get("is_active") is not None:
        pair.is_active = int(changes["is_active"])

    pair.updated_at = datetime.now(timezone.utc).isoformat()
    await db.commit()
    return image_changed


async def delete_pair(db: AsyncSession, pair: Pair) -> None:
    await db.delete(pair)
    await db.commit()
    logger.info("Pair %s deleted", pair.id)


async def record_job_result(
    db: AsyncSession,
    pair: Pair,
    mind_asset_id: str | None = None,
    error: str | None = None,
) -> Pair:
    """Store what the compiler job reported. An error wins over an asset id."""
    if error:
        mark_failed(pair, error)
        logger.info("MindAR job failed for pair %s: %s", pair.id, error)
    elif mind_asset_id:
        await _require_asset(db, mind_asset_id, "mind", "mindAssetId")
        mark_ready(pair, mind_asset_id)
        logger.info("MindAR target %s ready for pair %s", mind_asset_id, pair.id)
    else:
        raise ValidationFailed("Either mindAssetId or error is required")
    await db.commit()
    return pair


def serialize_pair(
    pair: Pair,
    signer: Signer | None = None,
    image: Asset | None = None,
    video: Asset | None = None,
    mind: Asset | None = None,
) -> dict:
    data = {
        "id": pair.id,
        "experience_id": pair.experience_id,
        "image_asset_id": pair.image_asset_id,
        "video_asset_id": pair.video_asset_id,
        "mind_asset_id": pair.mind_asset_id,
        "image_fingerprint": deserialize_fingerprint(pair.image_fingerprint),
        "threshold": pair.threshold,
        "priority": pair.priority,
        "is_active": bool(pair.is_active),
        "mind_target_status": pair.mind_target_status,
        "mind_target_error": pair.mind_target_error,
        "mind_target_requested_at": pair.mind_target_requested_at,
        "mind_target_completed_at": pair.mind_target_completed_at,
        "created_at": pair.created_at,
        "updated_at": pair.updated_at,
    }
    for prefix, asset in (("image", image), ("video", video), ("mind", mind)):
        if asset is None:
            continue
        data[f"{prefix}_storage_key"] = asset.storage_key
        data[f"{prefix}_mime"] = asset.mime
        data[f"{prefix}_size"] = asset.size
        if signer is not None:
            data[f"{prefix}_url"] = signer.asset_url(asset)
    return data


async def list_pairs(db: AsyncSession, experience_id: str, signer: Signer) -> list[dict]:
    """Pairs joined to their assets, each URL freshly signed."""
    image = aliased(Asset)
    video = aliased(Asset)
    mind = aliased(Asset)
    stmt = (
        select(Pair, image, video, mind)
        .join(image, Pair.image_asset_id == image.id)
        .join(video, Pair.video_asset_id == video.id)
        .outerjoin(mind, Pair.mind_asset_id == mind.id)
        .where(Pair.experience_id == experience_id)
        .order_by(Pair.priority.desc(), Pair.created_at.desc())
    )
    result = await db.execute(stmt)
    return [
        serialize_pair(pair, signer, image=img, video=vid, mind=mnd)
        for pair, img, vid, mnd in result.all()
    ]
