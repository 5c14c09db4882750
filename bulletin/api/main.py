import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI

from bulletin import __version__
from bulletin.adapters.sqlite.migrator import SQLiteMigrator
from bulletin.api.deps import get_rules, get_settings
from bulletin.app_shell.config import ConfigError, validate_ops_rules

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules, validate and migrate on startup (fail-fast)
    try:
        rules = get_rules()
        validate_ops_rules(rules)
        Path(settings.data_dir).mkdir(parents=True, exist_ok=True)
        SQLiteMigrator(settings.db_path, settings.migrations_dir).run_migrations()
        logger.info("Rules loaded from %s", settings.rules_path)
    except (ConfigError, OSError, RuntimeError, ValueError) as e:
        logger.critical("Startup failed: %s", e)
        sys.exit(1)

    yield


app = FastAPI(
    title="Bulletin API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from bulletin.api.routes import admin_newsletter  # noqa: E402

app.include_router(
    admin_newsletter.router, prefix="/api/admin/newsletters", tags=["Admin Newsletters"]
)


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "bulletin", "version": __version__}
