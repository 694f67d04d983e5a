from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from .config import get_settings

settings = get_settings()

# SQLite (local runs) needs the connection shared with the worker threads FastAPI uses
_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, connect_args=_connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

# Shared by the companies, executives and assets tables
Base = declarative_base()


def get_db():
    """Request-scoped session for the catalog and intake endpoints."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
