"""
MatchTrack API — FastAPI application factory.
REST host for match tracking: configure, record points, undo/redo,
statistics, and saved-match persistence.
"""

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from matchtrack.config import Environment, configure_logging, settings
from matchtrack.api.middleware import RequestLoggingMiddleware
from matchtrack.api.routes_formats import router as formats_router
from matchtrack.api.routes_matches import router as matches_router
from matchtrack.api.routes_stats import router as stats_router


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="MatchTrack API",
        description="Tennis match scoring and point-by-point tracking.",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # ── Middleware ──────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    # ── Routes ──────────────────────────────────────────
    prefix = settings.API_PREFIX
    app.include_router(matches_router, prefix=f"{prefix}/matches", tags=["Matches"])
    app.include_router(stats_router, prefix=f"{prefix}/stats", tags=["Stats"])
    app.include_router(formats_router, prefix=f"{prefix}/formats", tags=["Formats"])

    # ── Health check ────────────────────────────────────
    @app.get("/health", tags=["System"])
    async def health_check():
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT.value,
        }

    @app.get("/", tags=["System"])
    async def root():
        return {
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs",
        }

    return app


# Module-level app instance for `uvicorn matchtrack.api.app:app`
app = create_app()


def run() -> None:
    uvicorn.run(
        "matchtrack.api.app:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG and settings.ENVIRONMENT == Environment.DEVELOPMENT,
    )


if __name__ == "__main__":
    run()
