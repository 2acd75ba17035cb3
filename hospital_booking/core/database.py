from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator
from .config import settings

def build_engine(database_url: str) -> Engine:
    """Create an engine with pool settings suited to the backing database."""
    if database_url.startswith("sqlite"):
        # SQLite connections are shared across the threadpool used by FastAPI
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        database_url,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,  # Recycle connections after 30 minutes
        pool_pre_ping=True,
    )

engine = build_engine(settings.get_database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# Database dependency
def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Database initialization
def init_db(bind: Engine = None):
    """Initialize database tables."""
    # Register every model on the metadata before creating tables
    from .. import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
