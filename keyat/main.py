# Application entrypoint: configures logging, middleware, startup routines, and API routers.
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
import logging
import os

from .db import Base, engine, is_sqlite
from .log_config import configure_logging
from .storage import BUCKETS, public_base_url, storage_root
from .routes.auth import router as auth_router
from .routes.navigation import router as navigation_router
from .routes.profiles import router as profiles_router
from .routes.properties import router as properties_router
from .routes.tours import router as tours_router
from .routes.services import router as services_router
from .routes.dashboard import router as dashboard_router
from .routes.admin import router as admin_router

configure_logging()
logger = logging.getLogger("keyat.main")


# Parse CORS origins from a comma-separated env var.
# Note: '*' cannot be used with allow_credentials=True; we fall back to explicit localhost origins for dev.
def _parse_cors_origins(env_value: str | None) -> list[str]:
    default_dev_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    if not env_value:
        return default_dev_origins

    origins = [o.strip() for o in env_value.split(",") if o.strip()]
    # Map '*' to explicit localhost origins so credentialed requests remain allowed
    if "*" in origins:
        return default_dev_origins

    return origins


app = FastAPI(title="Keyat API", version="0.1.0")
allow_list = _parse_cors_origins(os.getenv("CORS_ORIGINS"))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    # For local SQLite, auto-create tables; production DBs rely on Alembic migrations.
    if is_sqlite():
        Base.metadata.create_all(bind=engine)
    root = storage_root()
    for bucket in BUCKETS:
        (root / bucket).mkdir(parents=True, exist_ok=True)
    logger.info("app.started", extra={"storage_root": str(root), "cors_origins": allow_list})


# Simple liveness endpoint for container orchestrators and uptime checks
@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


# Uploaded images are served straight from the bucket directories
if public_base_url().startswith("/"):
    app.mount(public_base_url(), StaticFiles(directory=str(storage_root()), check_dir=False), name="storage")

# Session and navigation live at the root; page data under /api/v1
app.include_router(auth_router, prefix="", tags=["auth"])
app.include_router(navigation_router, prefix="", tags=["navigation"])
app.include_router(profiles_router, prefix="/api/v1", tags=["profiles"])
app.include_router(properties_router, prefix="/api/v1", tags=["properties"])
app.include_router(tours_router, prefix="/api/v1", tags=["tours"])
app.include_router(services_router, prefix="/api/v1", tags=["services"])
app.include_router(dashboard_router, prefix="/api/v1", tags=["dashboard"])
app.include_router(admin_router, prefix="/api/v1", tags=["admin"])
