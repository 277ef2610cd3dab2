from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
import logging
from contextlib import asynccontextmanager
from typing import Optional

from teachease.core.config import settings
from teachease.core.container import Services, build_services
from teachease.api.v1 import auth, records, sync

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None):
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Build the local control API; services default to the configured backends."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        app.state.services = services or await build_services(settings)

        if settings.AUTO_SYNC_ENABLED:
            await app.state.services.auto_sync.start()

        yield

        await app.state.services.close()

    app = FastAPI(
        title=f"{settings.APP_NAME} Local Data API",
        description="Local-first record storage with offline sync",
        version="1.0.0",
        lifespan=lifespan
    )

    # The API is meant for a UI shell on the same device
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(records.router, prefix="/api/v1/records", tags=["records"])
    app.include_router(sync.router, prefix="/api/v1/sync", tags=["sync"])

    @app.get("/health")
    async def health():
        return {"status": "ok", "app": settings.APP_NAME}

    return app


app = create_app()


if __name__ == "__main__":
    configure_logging()
    uvicorn.run(
        "teachease.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
