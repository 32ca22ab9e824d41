from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vidcom.database import get_db
from vidcom.dependencies import get_dispatcher, get_store, require_user
from vidcom.schemas.pair import PairUpdate
from vidcom.services import pairs as pair_service
from vidcom.services.mindar_dispatch import MindarDispatcher
from vidcom.utils.response import ok_response

router = APIRouter(prefix="/pairs", tags=["pairs"], dependencies=[Depends(require_user)])


@router.get("/{pair_id}")
async def get_pair(pair_id: str, db: AsyncSession = Depends(get_db)):
    pair = await pair_service.get_pair_or_404(db, pair_id)
    return pair_service.serialize_pair(pair)


@router.patch("/{pair_id}")
async def update_pair(
    pair_id: str,
    payload: PairUpdate,
    db: AsyncSession = Depends(get_db),
    store=Depends(get_store),
    dispatcher: MindarDispatcher = Depends(get_dispatcher),
):
    pair = await pair_service.get_pair_or_404(db, pair_id)
    image_changed = await pair_service.update_pair(db, store, pair, payload.model_dump(exclude_unset=True))
    if image_changed:
        await dispatcher.dispatch(db, pair)
    return pair_service.serialize_pair(pair)


@router.delete("/{pair_id}")
async def delete_pair(pair_id: str, db: AsyncSession = Depends(get_db)):
    pair = await pair_service.get_pair_or_404(db, pair_id)
    await pair_service.delete_pair(db, pair)
    return ok_response()


@router.post("/{pair_id}/retry")
async def retry_pair(
    pair_id: str,
    db: AsyncSession = Depends(get_db),
    dispatcher: MindarDispatcher = Depends(get_dispatcher),
):
    pair = await pair_service.get_pair_or_404(db, pair_id)
    await dispatcher.dispatch(db, pair)
    return pair_service.serialize_pair(pair)
