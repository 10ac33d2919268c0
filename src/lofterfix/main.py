"""
FastAPI Application Entry Point

Bootstraps logging, the process-wide model service, the gallery storage and
the repair service, and mounts the routes.
"""

from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from loguru import logger

from lofterfix.config import Settings, settings
from lofterfix.db.gallery_storage import GalleryStorage
from lofterfix.executors.base import InferenceEngine
from lofterfix.routes.api import router as api_router
from lofterfix.services.model_service import ModelService
from lofterfix.services.repair_service import RepairService
from lofterfix.utils.logger import configure_logging
from lofterfix.utils.logging_middleware import RequestLoggingMiddleware


def create_app(
    settings: Optional[Settings] = None,
    engine_factory: Optional[Callable[[], InferenceEngine]] = None,
) -> FastAPI:
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        model_service = ModelService(settings, engine_factory=engine_factory)
        storage = GalleryStorage(settings.output_dir, quality=settings.jpeg_quality)
        app.state.settings = settings
        app.state.model_service = model_service
        app.state.repair_service = RepairService(model_service, storage, settings)
        logger.info(f"✔ Repair service started (backend '{settings.inference_backend}', gallery '{settings.output_dir}')")

        yield

        app.state.repair_service.shutdown()
        logger.info("✔ Repair worker stopped")
        model_service.shutdown()

    app = FastAPI(
        title="lofterfix app",
        description="Detects watermark regions and repairs them from a clean reference image",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(api_router, prefix="/api")

    @app.get("/")
    def root():
        return {"status": "ok", "service": "lofterfix", "env": settings.app_env}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


configure_logging(app_name="lofterfix", service="api", env=settings.app_env, level=settings.log_level, json_logs=settings.log_json)
app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
    )
