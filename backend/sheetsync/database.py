"""Database engine, session factory and declarative base."""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from sheetsync.config import settings


def _create_engine_args() -> dict:
    """SQLite needs cross-thread access for the API and scheduler; PostgreSQL gets a checked pool."""
    args = {"echo": settings.log_level.upper() == "TRACE"}
    if settings.database_url.startswith("sqlite"):
        args["connect_args"] = {"check_same_thread": False}
    else:
        args["pool_pre_ping"] = True
    return args


engine = create_engine(settings.database_url, **_create_engine_args())

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a database session, closing it when the request ends."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
