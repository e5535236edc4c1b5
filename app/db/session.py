"""Database session management (PostgreSQL in production, SQLite locally)."""

from collections.abc import Generator

from sqlmodel import Session, create_engine

from app.config import get_settings

settings = get_settings()


def _engine_options(url: str) -> tuple[str, dict]:
    """Pick the driver and connect args for a database URL."""
    # Convert postgresql:// to postgresql+psycopg:// for psycopg v3 driver
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql"):
        return url, {"sslmode": "require"}
    if url.startswith("sqlite"):
        return url, {"check_same_thread": False}
    return url, {}


database_url, connect_args = _engine_options(settings.DATABASE_URL)

engine = create_engine(
    database_url,
    echo=False,
    pool_pre_ping=True,
    connect_args=connect_args,
)


def get_session() -> Generator[Session, None, None]:
    """Get database session with automatic cleanup."""
    with Session(engine) as session:
        yield session
