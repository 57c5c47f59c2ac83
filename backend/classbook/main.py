"""
Classbook - Main Application Entry Point

Recurring class meetings, room and teacher conflict checks, and section
enrollment with waitlists.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from classbook.core.config import get_settings
from classbook.core.logger import setup_logger

logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    settings = get_settings()
    logger.info("Starting Classbook in %s mode...", settings.ENVIRONMENT)

    if settings.is_local:
        from classbook.infrastructure.local.database import init_db

        await init_db()

    yield

    # Shutdown
    logger.info("Shutting down Classbook...")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Classbook",
        description="Class scheduling and enrollment",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from classbook.api import enrollments, meetings, recurrence, schedule, sections

    app.include_router(recurrence.router, prefix="/api/recurrence", tags=["recurrence"])
    app.include_router(meetings.router, prefix="/api/meetings", tags=["meetings"])
    app.include_router(schedule.router, prefix="/api/schedule", tags=["schedule"])
    app.include_router(sections.router, prefix="/api/sections", tags=["sections"])
    app.include_router(enrollments.router, prefix="/api/enrollments", tags=["enrollments"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "version": "0.1.0",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "classbook.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
