import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from caisse.config import settings
from caisse.database import async_session_factory, init_db
from caisse.routers import (
    admin,
    auth,
    depenses,
    programmations,
    recettes,
    reports,
    rubriques,
    services as services_router,
    signataires,
)
from caisse.services.auth_service import seed_admin

logger = logging.getLogger(__name__)


async def _seed_admin() -> None:
    """Create default admin user if no users exist."""
    async with async_session_factory() as session:
        await seed_admin(session)
        await session.commit()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    await init_db()
    await _seed_admin()
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    yield
    # Shutdown (nothing to clean up)


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register all routers under /api/v1
API_PREFIX = "/api/v1"
app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(recettes.router, prefix=API_PREFIX)
app.include_router(depenses.router, prefix=API_PREFIX)
app.include_router(rubriques.router, prefix=API_PREFIX)
app.include_router(services_router.router, prefix=API_PREFIX)
app.include_router(programmations.router, prefix=API_PREFIX)
app.include_router(signataires.router, prefix=API_PREFIX)
app.include_router(reports.router, prefix=API_PREFIX)
app.include_router(admin.router, prefix=API_PREFIX)


@app.get("/health")
async def health_check() -> dict:
    return {"status": "ok", "version": settings.APP_VERSION}
