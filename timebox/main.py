# FastAPI

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from timebox.api import auth, outlook, recurring_events, reminders, scheduled_times, tasks
from timebox.config import Settings, get_settings
from timebox.core.database import Database
from timebox.core.exceptions import TimeboxError
from timebox.services.sync_queue import OutlookSyncQueue

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings):
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = Database(settings.DATABASE_URL, settings.DATABASE_AUTH_TOKEN, echo=settings.DEBUG)
        # Create tables
        database.create_all()
        sync_queue = OutlookSyncQueue(database, settings)

        app.state.settings = settings
        app.state.database = database
        app.state.sync_queue = sync_queue
        logger.info("Timebox API started with %s sync workers", settings.SYNC_WORKERS)
        try:
            yield
        finally:
            sync_queue.shutdown(wait=True)
            database.dispose()

    app = FastAPI(
        title="Timebox API",
        version="1.0.0",
        description="Timeboxed tasks, reminders and Outlook calendar sync",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Errors
    @app.exception_handler(TimeboxError)
    async def timebox_error_handler(request: Request, exc: TimeboxError):
        return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            {"detail": jsonable_encoder(exc.errors())},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"detail": "Internal server error"}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    # Routes
    app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
    app.include_router(tasks.router, prefix="/api/tasks", tags=["Tasks"])
    app.include_router(scheduled_times.router, prefix="/api/tasks/{task_id}/scheduled-times", tags=["Scheduled Times"])
    app.include_router(reminders.router, prefix="/api/reminders", tags=["Reminders"])
    app.include_router(recurring_events.router, prefix="/api/recurring-events", tags=["Recurring Events"])
    app.include_router(outlook.router, prefix="/api/outlook", tags=["Outlook Sync"])

    @app.get("/")
    def root():
        return {
            "message": "Timebox API",
            "status": "running",
            "docs": "/docs"
        }

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


app = create_app()
