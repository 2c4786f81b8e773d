"""
FastAPI entrypoint for the Scriptreel API.

The CLI in scriptreel.pipelines.run_full_pipeline runs the same pipeline
without a server.
"""

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scriptreel.api.routes_video import router as videos_router
from scriptreel.core.config import Settings, settings
from scriptreel.core.errors import InvalidInput
from scriptreel.core.logging_config import configure_from_settings, get_logger
from scriptreel.services.tts_client import resolve_tts_provider


def service_status(app_settings: Settings) -> dict[str, Any]:
    """Which collaborators the configuration enables."""
    status: dict[str, Any] = {"status": "healthy", "footage_catalog": bool(app_settings.pexels_api_key)}
    try:
        status["tts_provider"] = resolve_tts_provider(app_settings)
    except InvalidInput as e:
        status.update(status="degraded", tts_provider=None, error=str(e))
    return status


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Build the API application for the given settings (module settings by default)."""
    app_settings = app_settings or settings
    configure_from_settings(app_settings)
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        status = service_status(app_settings)
        logger.info("=" * 60)
        logger.info(f"Starting {app_settings.app_name} v{app_settings.app_version}")
        logger.info(f"Debug mode: {app_settings.debug}")
        logger.info(f"TTS provider: {status['tts_provider']}")
        if status["status"] != "healthy":
            logger.error(status["error"])
        if not status["footage_catalog"]:
            logger.warning("PEXELS_API_KEY not set - footage videos will fail at footage selection")
        logger.info("=" * 60)
        yield
        logger.info("Shutting down application")

    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        description="Scriptreel - turns text scripts into narrated stock-footage or caption videos",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(videos_router)

    @app.get("/")
    async def root():
        return {
            "name": app_settings.app_name,
            "version": app_settings.app_version,
            "status": "running",
            "endpoints": {
                "generate_audio": "/videos/audio",
                "generate_video": "/videos/generate",
                "generate_subtitles": "/videos/subtitles",
                "docs": "/docs",
            },
        }

    @app.get("/health")
    async def health():
        return service_status(app_settings)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "scriptreel.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
