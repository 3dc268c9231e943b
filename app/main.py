import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import (
    BOOTSTRAP_SUPERUSER_EMAIL,
    BOOTSTRAP_SUPERUSER_PASSWORD,
    BOOTSTRAP_SUPERUSER_USERNAME,
    CORS_ORIGINS,
    DATABASE_URL,
)
from app.core.database import Base, SessionLocal, engine
from app.core.logging_setup import configure_logging
from app.core.startup_checks import (
    ensure_migrations_applied,
    validate_database_environment,
    warn_legacy_visibility,
)
from app.middleware.observability import ObservabilityMiddleware
import app.models  # noqa: F401  models must be registered before create_all

from app.routers.admin_backfill import router as admin_backfill_router
from app.routers.admin_companies import router as admin_companies_router
from app.routers.auth import router as auth_router
from app.routers.dashboard import router as dashboard_router
from app.routers.internal_metrics import router as internal_metrics_router
from app.routers.records import routers as record_routers
from app.routers.users import router as users_router
from app.services.admin_bootstrap import BOOTSTRAP_PREFIX, ensure_core_tables, upsert_superuser

configure_logging()

logger = logging.getLogger(__name__)
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(
    os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini"))
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Business AI API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)


def _bootstrap_superuser() -> None:
    if not BOOTSTRAP_SUPERUSER_PASSWORD:
        logger.warning("%s skipped: configure BOOTSTRAP_SUPERUSER_PASSWORD.", BOOTSTRAP_PREFIX)
        return

    db = SessionLocal()
    try:
        user, created = upsert_superuser(
            db,
            username=BOOTSTRAP_SUPERUSER_USERNAME,
            password=BOOTSTRAP_SUPERUSER_PASSWORD,
            email=BOOTSTRAP_SUPERUSER_EMAIL,
        )
        logger.info(
            "%s %s id=%s username=%s",
            BOOTSTRAP_PREFIX,
            "created" if created else "exists",
            user.id,
            user.username,
        )
    finally:
        db.close()


def _startup_tasks() -> None:
    try:
        validate_database_environment()
        if DATABASE_URL.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)
        else:
            ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
        ensure_core_tables(engine)
        _bootstrap_superuser()
        warn_legacy_visibility()
    except Exception:
        logger.exception("ERROR startup failed")
        raise


# Routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(admin_companies_router)
app.include_router(admin_backfill_router)
app.include_router(dashboard_router)
for record_router in record_routers:
    app.include_router(record_router)
app.include_router(internal_metrics_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
