import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import (
    CORS_ALLOW_ORIGIN_REGEX,
    CORS_ORIGINS,
    DEV_ADMIN_EMAIL,
    DEV_ADMIN_PASSWORD,
)
from app.core.database import SessionLocal, engine
from app.core.errors import install_error_handlers
from app.core.logging_setup import configure_logging
from app.core.startup_checks import prepare_database
from app.middleware.auth_rate_limit import AuthRateLimitMiddleware
from app.middleware.observability import ObservabilityMiddleware
import app.services.event_handlers  # registra handlers do event bus

from app.routers.auth import router as auth_router
from app.routers.internal_metrics import router as internal_metrics_router
from app.routers.menu_items import router as menu_items_router
from app.routers.notifications import router as notifications_router
from app.routers.orders import router as orders_router
from app.routers.shops import router as shops_router
from app.routers.users import router as users_router
from app.services.bootstrap import bootstrap_admin, ensure_default_roles

configure_logging()

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(
    os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini"))
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Online Canteen API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_origin_regex=CORS_ALLOW_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(AuthRateLimitMiddleware)
app.add_middleware(ObservabilityMiddleware)

install_error_handlers(app)


def _seed_reference_data() -> None:
    db = SessionLocal()
    try:
        ensure_default_roles(db)
        bootstrap_admin(db, email=DEV_ADMIN_EMAIL, password=DEV_ADMIN_PASSWORD)
    except Exception:
        logger.exception("%s ERROR seeding reference data", STARTUP_PREFIX)
        raise
    finally:
        db.close()


def _startup_tasks() -> None:
    try:
        prepare_database(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
        _seed_reference_data()
    except Exception:
        logger.exception("%s ERROR startup failed", STARTUP_PREFIX)
        raise


# Routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(shops_router)
app.include_router(menu_items_router)
app.include_router(orders_router)
app.include_router(notifications_router)
app.include_router(internal_metrics_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
