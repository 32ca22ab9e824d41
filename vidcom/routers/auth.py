from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vidcom.database import get_db
from vidcom.dependencies import bearer_token, get_tokens, require_user
from vidcom.models.user import User
from vidcom.schemas.auth import LoginRequest, LoginResponse, UserOut
from vidcom.services.auth import TokenService
from vidcom.utils.response import ok_response

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_tokens),
):
    token, expires_at, user = await tokens.login(db, request.email, request.password)
    return LoginResponse(token=token, expiresAt=expires_at, user=UserOut.model_validate(user)).model_dump()


@router.post("/logout")
async def logout(
    token: str = Depends(bearer_token),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_tokens),
):
    await tokens.logout(db, token)
    return ok_response()


@router.get("/me")
async def me(user: User = Depends(require_user)):
    return {"user": UserOut.model_validate(user).model_dump()}
