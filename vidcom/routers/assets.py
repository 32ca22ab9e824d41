from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from vidcom.database import get_db
from vidcom.dependencies import get_signer, get_store
from vidcom.models.asset import Asset
from vidcom.services.signing import ASSET_PURPOSE, Signer
from vidcom.utils.exceptions import Forbidden, NotFound

router = APIRouter(prefix="/assets", tags=["assets"])


@router.get("/{asset_id}")
async def get_asset(
    asset_id: str,
    token: str = Query(default=""),
    db: AsyncSession = Depends(get_db),
    signer: Signer = Depends(get_signer),
    store=Depends(get_store),
):
    if not signer.verify(ASSET_PURPOSE, asset_id, token):
        raise Forbidden("Invalid asset token")

    asset = await db.get(Asset, asset_id)
    if asset is None:
        raise NotFound("Asset not found")

    stored = await store.get(asset.storage_key)
    if stored is None:
        raise NotFound("Asset content not found")
    return Response(content=stored.data, media_type=asset.mime or stored.content_type)
