"""FastAPI application entry point."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError, TimeoutError as PoolTimeoutError
from sqlmodel import Session, SQLModel

from app.api.auth import router as auth_router
from app.api.tasks import router as tasks_router
from app.config import get_settings
from app.db.session import engine
from app.services.sessions import purge_expired_sessions

settings = get_settings()

# Configure logging to stdout
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create database tables and clear stale sessions on startup."""
    settings.validate()
    # Import models to register them with SQLModel
    from app.models import Task, User, UserSession  # noqa: F401
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        purge_expired_sessions(session)
    yield

app = FastAPI(
    title="Task Tracker API",
    description="Multi-user task tracking with local and Google sign-in",
    version="1.0.0",
    lifespan=lifespan,
)

cors_origins = [origin for origin in {settings.FRONTEND_URL, "http://localhost:3000"} if origin]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def store_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    """Report storage outages and timeouts as a retryable failure."""
    logger.error(
        "Database operation failed",
        extra={"path": request.url.path, "error": str(exc)},
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage temporarily unavailable. Please retry."},
        headers={"Retry-After": "1"},
    )


for store_error in (OperationalError, InterfaceError, PoolTimeoutError):
    app.add_exception_handler(store_error, store_unavailable_handler)


# Register routers
app.include_router(auth_router)
app.include_router(tasks_router)


@app.get("/health")
def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
