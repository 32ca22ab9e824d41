import logging
import os

from sqlalchemy import event, inspect, make_url, text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from starlette.requests import Request

from vidcom.config import Settings

logger = logging.getLogger(__name__)


def _normalize_database_url(url: str) -> str:
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


class Base(DeclarativeBase):
    pass


# Columns added to ``pairs`` after the first schema shipped without target generation.
_PAIR_GENERATION_COLUMNS = {
    "mind_asset_id": "VARCHAR",
    "mind_target_status": "VARCHAR NOT NULL DEFAULT 'pending'",
    "mind_target_error": "VARCHAR",
    "mind_target_requested_at": "VARCHAR",
    "mind_target_completed_at": "VARCHAR",
}


class Database:
    def __init__(self, settings: Settings):
        self.url = _normalize_database_url(settings.database_url)
        self.is_sqlite = self.url.startswith("sqlite")

        engine_kwargs: dict = {"echo": False}
        if not self.is_sqlite:
            engine_kwargs.update(pool_size=5, max_overflow=10, pool_pre_ping=True)

        self.engine = create_async_engine(self.url, **engine_kwargs)
        self.sessionmaker = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

        if self.is_sqlite:
            @event.listens_for(self.engine.sync_engine, "connect")
            def set_sqlite_pragma(dbapi_conn, connection_record):
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

    async def create_tables(self) -> None:
        if self.is_sqlite:
            path = make_url(self.url).database
            if path and path != ":memory:":
                os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
        async with self.engine.begin() as conn:
            from vidcom.models import asset, experience, pair, session, user  # noqa: F401
            await conn.run_sync(Base.metadata.create_all)

    async def run_migrations(self) -> None:
        """Add target-generation columns to a ``pairs`` table from the older schema."""
        async with self.engine.connect() as conn:
            columns = await conn.run_sync(
                lambda sync_conn: {c["name"] for c in inspect(sync_conn).get_columns("pairs")}
            )
            missing = [name for name in _PAIR_GENERATION_COLUMNS if name not in columns]
            for name in missing:
                logger.info("Adding %s column to pairs table", name)
                await conn.execute(text(f"ALTER TABLE pairs ADD COLUMN {name} {_PAIR_GENERATION_COLUMNS[name]}"))
            if missing:
                await conn.commit()

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request):
    database: Database = request.app.state.database
    async with database.sessionmaker() as session:
        yield session
