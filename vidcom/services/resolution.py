from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vidcom.models.asset import Asset
from vidcom.models.experience import Experience
from vidcom.models.pair import Pair
from vidcom.services.signing import Signer
from vidcom.utils.exceptions import NotFound


async def resolve_qr(db: AsyncSession, signer: Signer, qr_id: str) -> dict:
    """What the viewer needs for a scanned code.

    When several active experiences share a code, the most recently updated
    one wins. Within it, the active pair with the highest priority is used.
    A missing or not-yet-ready target is not an error: URLs come back null
    and ``mind_target_status`` tells the viewer whether to keep polling.
    """
    result = await db.execute(
        select(Experience)
        .where(Experience.qr_id == qr_id, Experience.is_active == 1)
        .order_by(Experience.updated_at.desc(), Experience.created_at.desc())
        .limit(1)
    )
    experience = result.scalars().first()
    if experience is None:
        raise NotFound("Experience not found")

    result = await db.execute(
        select(Pair)
        .where(Pair.experience_id == experience.id, Pair.is_active == 1)
        .order_by(Pair.priority.desc(), Pair.created_at.desc())
        .limit(1)
    )
    pair = result.scalars().first()

    video_url = None
    mind_url = None
    if pair is not None:
        video = await db.get(Asset, pair.video_asset_id)
        if video is not None:
            video_url = signer.asset_url(video)
        if pair.mind_target_status == "ready" and pair.mind_asset_id:
            mind = await db.get(Asset, pair.mind_asset_id)
            if mind is not None:
                mind_url = signer.asset_url(mind)

    return {
        "experience": {"name": experience.name, "qr_id": experience.qr_id},
        "name": experience.name,
        "qr_id": experience.qr_id,
        "pairId": pair.id if pair else None,
        "threshold": pair.threshold if pair else None,
        "videoUrl": video_url,
        "mindarTargetUrl": mind_url,
        "mind_target_status": pair.mind_target_status if pair else None,
        "mind_target_error": pair.mind_target_error if pair else None,
    }
