"""Password login and bearer tokens.

Two token modes, chosen by ``auth_token_mode``:

* ``session``: an opaque random token stored in the ``sessions`` table.
  Logout deletes the row, so tokens are revocable.
* ``signed``: a stateless HS256 JWT carrying email, issued-at and expiry.
  Validity is signature plus expiry only; logout is a no-op and a leaked
  token stays valid until it expires.
"""
import hmac
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from vidcom.config import Settings
from vidcom.models.session import Session
from vidcom.models.user import User
from vidcom.utils.exceptions import Unauthorized

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def create_user(db: AsyncSession, email: str, password: str, role: str = "admin") -> User:
    user = User(
        id=str(uuid.uuid4()),
        email=normalize_email(email),
        password_hash=hash_password(password),
        role=role,
        is_active=1,
        created_at=datetime.now(timezone.utc).isoformat(),
    )
    db.add(user)
    await db.commit()
    return user


def is_job_secret_valid(settings: Settings, supplied: str | None) -> bool:
    if not settings.job_secret or not supplied:
        return False
    return hmac.compare_digest(settings.job_secret, supplied)


class TokenService:
    def __init__(self, settings: Settings):
        self.mode = settings.auth_token_mode
        self.ttl = timedelta(days=settings.token_ttl_days)
        self._secret = settings.signing_secret

    async def login(self, db: AsyncSession, email: str, password: str) -> tuple[str, str, User]:
        result = await db.execute(select(User).where(User.email == normalize_email(email)))
        user = result.scalars().first()

        if user is None or not user.is_active:
            raise Unauthorized(INVALID_CREDENTIALS)
        if not bcrypt.checkpw(password.encode(), user.password_hash.encode()):
            raise Unauthorized(INVALID_CREDENTIALS)

        token, expires_at = await self.issue(db, user)
        logger.info("User %s logged in (%s token)", user.id, self.mode)
        return token, expires_at, user

    async def issue(self, db: AsyncSession, user: User) -> tuple[str, str]:
        now = datetime.now(timezone.utc)
        expires = now + self.ttl

        if self.mode == "signed":
            payload = {"sub": user.id, "email": user.email, "iat": now, "exp": expires}
            return jwt.encode(payload, self._secret, algorithm="HS256"), expires.isoformat()

        token = secrets.token_urlsafe(32)
        db.add(Session(
            token=token,
            user_id=user.id,
            created_at=now.isoformat(),
            expires_at=expires.isoformat(),
        ))
        await db.commit()
        return token, expires.isoformat()

    async def verify(self, db: AsyncSession, token: str) -> User | None:
        if not token:
            return None
        if self.mode == "signed":
            return await self._verify_signed(db, token)
        return await self._verify_session(db, token)

    async def _verify_signed(self, db: AsyncSession, token: str) -> User | None:
        try:
            payload = jwt.decode(token, self._secret, algorithms=["HS256"])
        except jwt.InvalidTokenError:
            return None
        result = await db.execute(select(User).where(User.email == payload.get("email")))
        user = result.scalars().first()
        if user is None or not user.is_active:
            return None
        return user

    async def _verify_session(self, db: AsyncSession, token: str) -> User | None:
        row = await db.get(Session, token)
        if row is None:
            return None

        if datetime.fromisoformat(row.expires_at) <= datetime.now(timezone.utc):
            await db.execute(
                delete(Session).where(Session.expires_at <= datetime.now(timezone.utc).isoformat())
            )
            await db.commit()
            return None

        user = await db.get(User, row.user_id)
        if user is None or not user.is_active:
            return None
        return user

    async def logout(self, db: AsyncSession, token: str) -> None:
        if self.mode == "signed":
            return
        await db.execute(delete(Session).where(Session.token == token))
        await db.commit()
