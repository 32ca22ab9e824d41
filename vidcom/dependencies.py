from dataclasses import dataclass

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from vidcom.config import Settings
from vidcom.database import get_db
from vidcom.models.user import User
from vidcom.services.auth import TokenService, is_job_secret_valid
from vidcom.services.mindar_dispatch import MindarDispatcher
from vidcom.services.signing import Signer
from vidcom.utils.exceptions import Unauthorized


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request):
    return request.app.state.store


def get_signer(request: Request) -> Signer:
    return request.app.state.signer


def get_tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def get_dispatcher(request: Request) -> MindarDispatcher:
    return request.app.state.dispatcher


def bearer_token(authorization: str = Header(default="")) -> str:
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return ""
    return token.strip()


@dataclass
class Caller:
    user: User | None = None
    is_job: bool = False


async def require_user(
    token: str = Depends(bearer_token),
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_tokens),
) -> User:
    user = await tokens.verify(db, token)
    if user is None:
        raise Unauthorized()
    return user


async def require_job(
    x_job_secret: str = Header(default=""),
    settings: Settings = Depends(get_settings),
) -> None:
    if not is_job_secret_valid(settings, x_job_secret):
        raise Unauthorized()


async def require_user_or_job(
    token: str = Depends(bearer_token),
    x_job_secret: str = Header(default=""),
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_tokens),
    settings: Settings = Depends(get_settings),
) -> Caller:
    if is_job_secret_valid(settings, x_job_secret):
        return Caller(is_job=True)
    user = await tokens.verify(db, token)
    if user is None:
        raise Unauthorized()
    return Caller(user=user)
