"""
Database session management
"""
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from pks_ledger.core.settings import settings
from pks_ledger.logging_config import get_logger

logger = get_logger(__name__)

connection_string = settings.database_url

if connection_string.startswith("postgresql"):
    # Log connection info (without password)
    logger.info(f"Database connection: {settings.DB_HOST}:{settings.DB_PORT}/{settings.DB_NAME} (PostgreSQL)")

engine = create_engine(
    connection_string,
    echo=False,  # Set to True for SQL query logging
    pool_pre_ping=True,  # Verify connections before using
    pool_recycle=3600,  # Recycle connections after 1 hour
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    Dependency for getting database session

    Usage in FastAPI endpoints:
        @router.get("/accounts")
        def list_accounts(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    One business transaction: commit when the block finishes, roll back
    everything if anything inside raises.

    Engines (journal, inventory) never commit on their own; workflow
    operations wrap the whole transition in this block so stock movement
    and the ledger entry land together or not at all.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
