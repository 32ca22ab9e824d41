from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vidcom.config import Settings
from vidcom.database import Database
from vidcom.seed import seed_data
from vidcom.routers.assets import router as assets_router
from vidcom.routers.auth import router as auth_router
from vidcom.routers.experiences import router as experiences_router
from vidcom.routers.jobs import router as jobs_router
from vidcom.routers.pairs import router as pairs_router
from vidcom.routers.public import router as public_router
from vidcom.routers.uploads import router as uploads_router
from vidcom.services.auth import TokenService
from vidcom.services.mindar_dispatch import MindarDispatcher
from vidcom.services.signing import Signer
from vidcom.services.storage import build_object_store
from vidcom.utils.exceptions import register_exception_handlers

VERSION = "0.1.0"


async def init_database(app: FastAPI) -> None:
    database: Database = app.state.database
    await database.create_tables()
    await database.run_migrations()
    async with database.sessionmaker() as session:
        await seed_data(session, app.state.settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_database(app)
    yield
    await app.state.database.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(
        title="Vidcom API",
        description="Experiences, assets and MindAR targets for the WebAR viewer",
        version=VERSION,
        lifespan=lifespan,
    )

    signer = Signer(settings)
    app.state.settings = settings
    app.state.database = Database(settings)
    app.state.store = build_object_store(settings)
    app.state.signer = signer
    app.state.tokens = TokenService(settings)
    app.state.dispatcher = MindarDispatcher(settings, signer)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(uploads_router)
    app.include_router(assets_router)
    app.include_router(experiences_router)
    app.include_router(pairs_router)
    app.include_router(jobs_router)
    app.include_router(public_router)

    @app.get("/health")
    async def health_check():
        return {"ok": True, "service": "vidcom-api", "version": VERSION}

    return app


app = create_app()
