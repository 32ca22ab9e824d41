import logging
import secrets
import string
import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from vidcom.config import Settings
from vidcom.models.experience import Experience
from vidcom.models.pair import Pair
from vidcom.utils.exceptions import NotFound

logger = logging.getLogger(__name__)

QR_ALPHABET = string.ascii_lowercase + string.digits


def generate_qr_id(length: int = 10) -> str:
    return "".join(QR_ALPHABET[b % len(QR_ALPHABET)] for b in secrets.token_bytes(length))


async def qr_id_in_use(db: AsyncSession, qr_id: str) -> bool:
    result = await db.execute(select(Experience.id).where(Experience.qr_id == qr_id).limit(1))
    return result.first() is not None


async def allocate_qr_id(db: AsyncSession, settings: Settings) -> str:
    """Best effort: a concurrent create can still land on the same code."""
    candidate = generate_qr_id(settings.qr_id_length)
    for attempt in range(max(settings.qr_id_attempts, 1)):
        if not await qr_id_in_use(db, candidate):
            return candidate
        logger.warning("QR id collision on attempt %d", attempt + 1)
        candidate = generate_qr_id(settings.qr_id_length)
    return candidate


async def get_experience_or_404(db: AsyncSession, experience_id: str) -> Experience:
    experience = await db.get(Experience, experience_id)
    if experience is None:
        raise NotFound("Experience not found")
    return experience


async def create_experience(
    db: AsyncSession,
    settings: Settings,
    name: str,
    qr_id: str | None = None,
    is_active: bool = True,
) -> Experience:
    now = datetime.now(timezone.utc).isoformat()
    experience = Experience(
        id=str(uuid.uuid4()),
        name=name,
        # An explicit code may be shared with other experiences on purpose.
        qr_id=qr_id or await allocate_qr_id(db, settings),
        is_active=int(is_active),
        created_at=now,
        updated_at=now,
    )
    db.add(experience)
    await db.commit()
    logger.info("Experience %s created with qr_id=%s", experience.id, experience.qr_id)
    return experience


async def update_experience(db: AsyncSession, experience: Experience, changes: dict) -> Experience:
    if "name" in changes:
        experience.name = changes["name"]
    if "qr_id" in changes:
        experience.qr_id = changes["qr_id"]
    if "is_active" in changes:
        experience.is_active = int(changes["is_active"])
    experience.updated_at = datetime.now(timezone.utc).isoformat()
    await db.commit()
    return experience


async def delete_experience(db: AsyncSession, experience: Experience) -> int:
    """Delete pairs first, then the experience. Stored objects are kept."""
    result = await db.execute(delete(Pair).where(Pair.experience_id == experience.id))
    await db.delete(experience)
    await db.commit()
    logger.info("Experience %s deleted with %d pairs", experience.id, result.rowcount)
    return result.rowcount


def serialize_experience(experience: Experience) -> dict:
    return {
        "id": experience.id,
        "name": experience.name,
        "qr_id": experience.qr_id,
        "is_active": bool(experience.is_active),
        "created_at": experience.created_at,
        "updated_at": experience.updated_at,
    }
