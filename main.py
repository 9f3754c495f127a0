from __future__ import annotations

import logging
import logging.config
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core import config
from app.core.errors import register_exception_handlers
from app.db.session import Database

from services.catalog.api import router as catalog_router
from services.dashboard.api import router as dashboard_router
from services.materials.api import router as materials_router
from services.products.api import router as products_router
from services.purchasing.api import router as purchasing_router
from services.production.api import router as production_router
from services.quality.api import router as quality_router
from services.work_centers.api import router as work_centers_router
from services.sales.api import router as sales_router
from services.users.api import router as users_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.config.dictConfig(config.LOGGING_CONFIG)
    # An injected database (tests) is owned by the caller
    owned = getattr(app.state, "db", None) is None
    if owned:
        app.state.db = Database()
        if config.AUTO_CREATE_SCHEMA:
            # Dev-friendly schema creation (migrations are available for real upgrades)
            app.state.db.create_all()
    logger.info("Manufacturing ERP started")
    try:
        yield
    finally:
        if owned:
            app.state.db.dispose()
            app.state.db = None


def create_app(database: Database | None = None) -> FastAPI:
    app = FastAPI(title="Manufacturing ERP", lifespan=lifespan)
    if database is not None:
        app.state.db = database
    register_exception_handlers(app)

    app.include_router(catalog_router)
    app.include_router(materials_router)
    app.include_router(products_router)
    app.include_router(purchasing_router)
    app.include_router(production_router)
    app.include_router(quality_router)
    app.include_router(work_centers_router)
    app.include_router(sales_router)
    app.include_router(users_router)
    app.include_router(dashboard_router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()
