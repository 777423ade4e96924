from sqlalchemy import create_engine
from sqlalchemy.exc import ProgrammingError, OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator

# Import centralized configuration
from corebank.config import settings
from corebank.obs.logging import get_logger

logger = get_logger(__name__)

DATABASE_URL = settings.DATABASE_URL

if DATABASE_URL and DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

if DATABASE_URL.startswith("sqlite"):
    # SQLite has no server-side pool; share the connection across threads
    engine = create_engine(
        DATABASE_URL,
        echo=settings.DEBUG_SQL,
        connect_args={"check_same_thread": False},
    )
else:
    # Production-ready connection pool configuration
    engine = create_engine(
        DATABASE_URL,
        echo=settings.DEBUG_SQL,
        pool_size=20,
        max_overflow=40,
        pool_timeout=30,
        pool_recycle=1800,
        pool_pre_ping=True,
    )
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and close it after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Create tables
def init_db():
    # Import all models here so that Base knows about them
    from corebank.models import (  # noqa: F401
        audit_log,
        integration_config,
        integration_mapping,
        integration_queue,
    )

    # Catch duplicate index/table errors (common when tables were created out of band)
    # SQLite raises OperationalError, PostgreSQL raises ProgrammingError
    try:
        Base.metadata.create_all(bind=engine)
    except (ProgrammingError, OperationalError) as e:
        error_msg = str(e.orig) if hasattr(e, 'orig') else str(e)
        if "already exists" not in error_msg.lower() and "duplicate" not in error_msg.lower():
            raise
        logger.info(f"Some indexes/tables already exist: {error_msg[:100]}")
