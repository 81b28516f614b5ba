from __future__ import annotations

from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

from app.api.errors import register_error_handlers  # noqa: E402
from app.api.routes_bids import router as bids_router  # noqa: E402
from app.api.routes_health import router as health_router  # noqa: E402
from app.api.routes_jobs import router as jobs_router  # noqa: E402
from app.core.config import settings  # noqa: E402
from app.core.logging import configure_logging  # noqa: E402
from app.db.session import init_db  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_tables:
        await init_db()
    yield


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(title="Services Marketplace Bidding API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(jobs_router)
    app.include_router(bids_router)
    return app


app = create_app()
