from contextlib import asynccontextmanager
from fastapi import FastAPI
from storefront.api import cur_version
from storefront.api.routers import public_routers, admin_routers
from storefront.common.custom_exceptions import register_all_exceptions
from storefront.common.logging_setup import setup_logging, shutdown_logging
from storefront.config.admin_config import admin_config
from storefront.db.connection import async_engine
from storefront.metrics.custom_instrumentator import instrumentator
from storefront.middlewares.request_id_middleware import RequestIdMiddleware


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    app_logger = setup_logging()
    app_logger.info("app.startup", extra={"service": admin_config.SERVICE_NAME, "env": admin_config.ENV})

    try:
        yield
    finally:
        # requests have stopped arriving by now, safe to drop the pool
        await async_engine.dispose()
        app_logger.info("app.shutdown")
        shutdown_logging()


def create_app():
    app = FastAPI(
        title="Storefront",
        version=cur_version,
        lifespan=app_lifespan)

    app.include_router(public_routers)

    if admin_config.ENABLE_ADMIN:
        app.include_router(admin_routers)      # mounts /api/v1/admin

    app.add_middleware(RequestIdMiddleware)
    register_all_exceptions(app)

    if admin_config.ENABLE_METRICS:
        instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

    return app

app = create_app()
