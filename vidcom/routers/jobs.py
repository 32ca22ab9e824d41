from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vidcom.database import get_db
from vidcom.dependencies import get_dispatcher, require_job, require_user_or_job
from vidcom.schemas.job import DispatchRequest, JobCompleteRequest
from vidcom.services import pairs as pair_service
from vidcom.services.mindar_dispatch import MindarDispatcher

router = APIRouter(prefix="/jobs/mindar", tags=["jobs"])


@router.post("/dispatch", dependencies=[Depends(require_user_or_job)])
async def dispatch_job(
    payload: DispatchRequest,
    db: AsyncSession = Depends(get_db),
    dispatcher: MindarDispatcher = Depends(get_dispatcher),
):
    pair = await pair_service.get_pair_or_404(db, payload.pairId)
    await dispatcher.dispatch(db, pair)
    return pair_service.serialize_pair(pair)


@router.post("/complete", dependencies=[Depends(require_job)])
async def complete_job(payload: JobCompleteRequest, db: AsyncSession = Depends(get_db)):
    pair = await pair_service.get_pair_or_404(db, payload.pairId)
    await pair_service.record_job_result(db, pair, mind_asset_id=payload.mindAssetId, error=payload.error)
    return {
        "ok": True,
        "pairId": pair.id,
        "mind_target_status": pair.mind_target_status,
        "mind_asset_id": pair.mind_asset_id,
        "mind_target_error": pair.mind_target_error,
    }
