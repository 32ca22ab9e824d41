from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from vidcom.database import get_db
from vidcom.dependencies import get_signer
from vidcom.services.qr import make_qr_png
from vidcom.services.resolution import resolve_qr
from vidcom.services.signing import Signer

router = APIRouter(prefix="/public", tags=["public"])


@router.get("/experience/{qr_id}")
async def public_experience(
    qr_id: str,
    db: AsyncSession = Depends(get_db),
    signer: Signer = Depends(get_signer),
):
    return await resolve_qr(db, signer, qr_id)


@router.get("/qr")
async def public_qr(url: str = Query(min_length=1, max_length=2048)):
    return Response(content=make_qr_png(url), media_type="image/png")
