import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from sschool.api.routes import admin, auth, books, students
from sschool.core.config import Settings, get_settings
from sschool.core.database import build_engine, build_session_factory, init_database
from sschool.core.exceptions import register_exception_handlers
from sschool.core.logging_config import configure_logging
from sschool.core.scheduler import build_scheduler, start_scheduler, stop_scheduler
from sschool.core.security import build_password_hasher, build_token_service
from sschool.services.notification_service import build_notifier
from sschool.services.user_service import UserService

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application around one immutable settings object.

    Every collaborator (engine, session factory, hasher, token service,
    notifier, scheduler) is constructed here from ``settings`` and hung on
    ``app.state``; nothing reads the environment after this point.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    engine = build_engine(settings.DATABASE_URL)
    session_factory = build_session_factory(engine)
    notifier = build_notifier(settings)
    scheduler = None
    if settings.ENABLE_SCHEDULER:
        scheduler = build_scheduler(session_factory, settings.ORPHAN_SWEEP_INTERVAL_HOURS)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup: check the store, create tables, start the notifier worker
        and the scheduler. A store that cannot be reached aborts startup.
        Shutdown: stop both and release connections.
        """
        logger.info(f"Starting SSchool API with settings: {settings.describe()}")
        if settings.uses_default_secret:
            logger.warning("SECRET_KEY is the built-in default; set it before deploying")

        try:
            init_database(engine)
        except SQLAlchemyError:
            logger.critical("Could not connect to the database. Check DATABASE_URL.", exc_info=True)
            raise

        await app.state.notifier.start()
        if app.state.scheduler is not None:
            start_scheduler(app.state.scheduler)
        yield
        if app.state.scheduler is not None:
            stop_scheduler(app.state.scheduler)
        await app.state.notifier.stop()
        engine.dispose()

    app = FastAPI(
        title="SSchool API",
        description="School administration API for students, admins, books and study materials",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.notifier = notifier
    app.state.scheduler = scheduler
    app.state.user_service = UserService(
        hasher=build_password_hasher(settings),
        tokens=build_token_service(settings),
    )

    origins = settings.get_cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Credentials cannot be combined with a wildcard origin
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # All routes are prefixed with /api
    app.include_router(auth.router, prefix="/api")
    app.include_router(students.router, prefix="/api")
    app.include_router(admin.router, prefix="/api")
    app.include_router(books.router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint - API information"""
        return {"message": "SSchool API running", "version": "1.0.0"}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


def run() -> None:
    """Console entry point: serve the API with uvicorn"""
    settings = get_settings()
    uvicorn.run(
        "sschool.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
    )


if __name__ == "__main__":
    run()
