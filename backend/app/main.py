from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from app.core.config import settings
from app.core.database import init_db, close_db, get_session_local
from app.core.logging_config import logger
from app.core.middleware import RequestLoggingMiddleware
from app.api.v1.router import api_router
from app.services.command_relay import CommandRelay
from app.services.file_tree_builder import FileTreeBuilder
from app.services.git_cloner import GitCloner
from app.services.identity_service import IdentityService
from app.services.process_runner import ProcessRunner
from app.services.project_cache import ProjectCache
from app.services.project_store import ProjectRepository, UserRepository
from app.services.room_registry import RoomRegistry
from app.services.sync_hub import SyncHub


SHUTDOWN_GRACE_SECONDS = 10


def create_sync_hub(session_factory=None) -> SyncHub:
    """Wire the engine's collaborators together."""
    session_factory = session_factory or get_session_local()

    rooms = RoomRegistry()
    relay = CommandRelay(runner=ProcessRunner(), rooms=rooms)
    projects = ProjectCache(
        repository=ProjectRepository(session_factory),
        cloner=GitCloner(),
        tree_builder=FileTreeBuilder(),
    )
    identity = IdentityService(UserRepository(session_factory))
    return SyncHub(rooms=rooms, relay=relay, projects=projects, identity=identity)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME} backend...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Projects root: {settings.PROJECTS_DIR}")
    logger.info("=" * 60)

    await init_db()
    logger.info("[Startup] Database tables ready")

    app.state.sync_hub = create_sync_hub()
    logger.info("[Startup] Sync hub ready")

    yield

    logger.info(f"Shutting down {settings.APP_NAME} backend...")

    hub: SyncHub = app.state.sync_hub
    if not await hub.wait_idle(timeout=SHUTDOWN_GRACE_SECONDS):
        logger.warning(f"[Shutdown] {hub.pending_count} handlers still running, abandoning them")

    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Realtime backend for a multi-user collaborative code editor",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)


# Exception handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "message": str(exc) if settings.DEBUG else "An error occurred"
        }
    )


# Uptime pings from the hosting platform
@app.get("/keep-alive", tags=["Health"])
async def keep_alive():
    return {"status": "ok"}


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome To The {settings.APP_NAME} Code Editor Backend Service",
        "health": "/health",
        "websocket": f"/api/{settings.API_VERSION}/sync/ws",
    }


# Include API router
app.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")


if __name__ == "__main__":
    from app.cli import main
    main()
