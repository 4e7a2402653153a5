"""
Database engine and session factory.

Usage:
    from chessfam.core.database import SessionLocal

    def get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from chessfam.core.config import settings


def get_engine(database_url: str = settings.DATABASE_URL):
    connect_args = {}
    if database_url.startswith("sqlite"):
        # FastAPI may hand the same connection to a different worker thread
        connect_args["check_same_thread"] = False
    return create_engine(
        database_url,
        connect_args=connect_args,
        pool_pre_ping=True,  # Verify connection is alive before using
        echo=settings.LOG_LEVEL == "DEBUG",
    )


engine = get_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None) -> None:
    """Create all tables. Models must be imported so they register on Base."""
    import chessfam.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
