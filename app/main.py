"""Media Gallery Application - FastAPI Entry Point."""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import Settings, configure_logging
from .domain import GalleryError
from .infrastructure.database import AsyncConnectionPool
from .infrastructure.events import ChangeNotifier, InMemoryBroker
from .infrastructure.repositories import AsyncSessionRepository
from .infrastructure.storage import LocalFilesystemTree, StorageError
from .middleware import AuthMiddleware

# Import routers
from .routes.auth import router as auth_router
from .routes.content import router as content_router
from .routes.admin import router as admin_router
from .routes.events import router as events_router

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application around ``settings``.

    The pool, notifier, storage tree and sync lock live on ``app.state`` and
    are shared by all requests of this process.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        settings.storage_root.mkdir(parents=True, exist_ok=True)
        app.state.pool = AsyncConnectionPool(settings.database_path)
        await app.state.pool.open()

        conn = await app.state.pool.acquire()
        try:
            expired = await AsyncSessionRepository(conn).cleanup_expired()
        finally:
            await app.state.pool.release(conn)

        app.state.notifier = ChangeNotifier(InMemoryBroker(queue_size=settings.event_queue_size))
        await app.state.notifier.start()
        logger.info(
            "Gallery started: storage=%s database=%s (%d expired sessions removed)",
            settings.storage_root, settings.database_path, expired
        )
        yield
        await app.state.notifier.close()
        await app.state.pool.close_all()
        logger.info("Gallery stopped")

    app = FastAPI(title="Media Gallery", lifespan=lifespan)
    app.state.settings = settings
    app.state.tree = LocalFilesystemTree(settings.storage_root)
    app.state.sync_lock = asyncio.Lock()

    app.add_middleware(AuthMiddleware)

    @app.exception_handler(GalleryError)
    async def gallery_error_handler(request: Request, exc: GalleryError):
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"status": exc.code, "detail": exc.detail})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error("Storage failure on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"status": "storage_error", "detail": str(exc)})

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    # Include routers
    app.include_router(auth_router)
    app.include_router(content_router)
    app.include_router(admin_router)
    app.include_router(events_router)
    return app


app = create_app()
