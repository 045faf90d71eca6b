"""
FastAPI application entry point
"""
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from jedi_gpt.config import ConfigError, Settings, load_settings
from jedi_gpt.routes import jedi
from jedi_gpt.services.completion import CompletionClient

log = logging.getLogger("jedi_gpt")

SERVICE_NAME = "jedi-gpt-api"
VERSION = "1.0.0"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the proxy app. Loads settings from the environment when none are given."""
    if settings is None:
        settings = load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the shared upstream client on boot, close it on shutdown."""
        app.state.completion_client = CompletionClient(settings)
        log.info(f"Using AOAI endpoint: {settings.endpoint}")
        yield
        await app.state.completion_client.close()

    app = FastAPI(
        title="Jedi GPT API",
        description="Proxy that asks a hosted chat-completion model to answer like a Jedi Master",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(jedi.router, prefix="/api", tags=["jedi"])

    @app.get("/")
    async def root():
        """Root endpoint - API information"""
        return {
            "service": "Jedi GPT API",
            "version": VERSION,
            "model": settings.model_name,
            "endpoints": {
                "health": "/health",
                "jedi": "/api/jedi (POST)",
                "docs": "/docs",
            },
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "ok", "service": SERVICE_NAME}

    return app


def run():
    """Console entry point: validate config, then serve with uvicorn."""
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    logging.getLogger("completion").setLevel(logging.INFO)
    logging.getLogger("routes").setLevel(logging.INFO)

    try:
        settings = load_settings()
    except ConfigError as e:
        log.error(str(e))
        sys.exit(1)

    app = create_app(settings)
    log.info(f"Jedi GPT API running on port {settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
