import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from saysense.api.v1.endpoints import analysis, auth, feedback, sessions, transcripts
from saysense.api.v1.websocket import sessions_ws
from saysense.core.config import get_settings
from saysense.core.errors import DomainError
from saysense.core.logging import configure_logging
from saysense.services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.db_auto_create:
        from saysense.db.session import engine
        from saysense.models import Base

        Base.metadata.create_all(bind=engine)
        logger.info("db_tables_created")

    app.state.room_registry = RoomRegistry()
    logger.info("app_started env=%s", settings.env)
    try:
        yield
    finally:
        app.state.room_registry.close()
        logger.info("app_stopped")


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed path=%s error=%s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.project_name, version="0.1.0", lifespan=lifespan)
    origins = settings.cors_origin_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(DomainError, domain_error_handler)

    app.include_router(auth.router, prefix="/auth", tags=["auth"])
    app.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
    app.include_router(analysis.router, prefix="/sessions/{session_id}/analysis", tags=["analysis"])
    app.include_router(feedback.router, prefix="/sessions/{session_id}/feedback", tags=["feedback"])
    app.include_router(transcripts.router, prefix="/sessions/{session_id}/transcripts", tags=["transcripts"])
    app.include_router(sessions_ws.router, tags=["realtime"])

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "ok"}

    return app


app = create_app()
