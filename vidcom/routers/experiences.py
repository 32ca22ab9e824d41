from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vidcom.config import Settings
from vidcom.database import get_db
from vidcom.dependencies import get_dispatcher, get_settings, get_signer, get_store, require_user
from vidcom.models.experience import Experience
from vidcom.schemas.experience import ExperienceCreate, ExperienceUpdate
from vidcom.schemas.pair import PairCreate
from vidcom.services import experiences as experience_service
from vidcom.services import pairs as pair_service
from vidcom.services.mindar_dispatch import MindarDispatcher
from vidcom.services.qr import make_qr_png
from vidcom.services.signing import Signer
from vidcom.utils.response import ok_response

router = APIRouter(prefix="/experiences", tags=["experiences"], dependencies=[Depends(require_user)])


@router.get("")
async def list_experiences(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Experience).order_by(Experience.created_at.desc()))
    experiences = result.scalars().all()
    return {"experiences": [experience_service.serialize_experience(e) for e in experiences]}


@router.post("", status_code=201)
async def create_experience(
    payload: ExperienceCreate,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    experience = await experience_service.create_experience(
        db, settings, payload.name, qr_id=payload.qr_id, is_active=payload.is_active
    )
    return experience_service.serialize_experience(experience)


@router.get("/{experience_id}")
async def get_experience(experience_id: str, db: AsyncSession = Depends(get_db)):
    experience = await experience_service.get_experience_or_404(db, experience_id)
    return experience_service.serialize_experience(experience)


@router.patch("/{experience_id}")
async def update_experience(
    experience_id: str,
    payload: ExperienceUpdate,
    db: AsyncSession = Depends(get_db),
):
    experience = await experience_service.get_experience_or_404(db, experience_id)
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    await experience_service.update_experience(db, experience, changes)
    return experience_service.serialize_experience(experience)


@router.delete("/{experience_id}")
async def delete_experience(experience_id: str, db: AsyncSession = Depends(get_db)):
    experience = await experience_service.get_experience_or_404(db, experience_id)
    deleted = await experience_service.delete_experience(db, experience)
    return ok_response(deletedPairs=deleted)


@router.get("/{experience_id}/qr")
async def experience_qr(
    experience_id: str,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    experience = await experience_service.get_experience_or_404(db, experience_id)
    url = f"{settings.public_base_url.rstrip('/')}/public/experience/{experience.qr_id}"
    return Response(content=make_qr_png(url), media_type="image/png")


@router.get("/{experience_id}/pairs")
async def list_pairs(
    experience_id: str,
    db: AsyncSession = Depends(get_db),
    signer: Signer = Depends(get_signer),
):
    await experience_service.get_experience_or_404(db, experience_id)
    return {"pairs": await pair_service.list_pairs(db, experience_id, signer)}


@router.post("/{experience_id}/pairs", status_code=201)
async def create_pair(
    experience_id: str,
    payload: PairCreate,
    db: AsyncSession = Depends(get_db),
    store=Depends(get_store),
    dispatcher: MindarDispatcher = Depends(get_dispatcher),
):
    experience = await experience_service.get_experience_or_404(db, experience_id)
    pair = await pair_service.create_pair(
        db,
        store,
        experience,
        image_asset_id=payload.image_asset_id,
        video_asset_id=payload.video_asset_id,
        threshold=payload.threshold,
        priority=payload.priority,
        image_fingerprint=payload.image_fingerprint,
        is_active=payload.is_active,
    )
    # Separate step: a crash here leaves the pair pending until someone retries.
    await dispatcher.dispatch(db, pair)
    return pair_service.serialize_pair(pair)
