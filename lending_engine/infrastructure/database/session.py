"""Database engine and per-request session management"""

from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from lending_engine.config import settings


def build_engine(database_url: str) -> Engine:
    """Create an engine; SQLite (local runs, tests) gets a thread-shareable connection instead of a pool"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    # Pool of up to 20 connections, recycled hourly to avoid stale connections
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """Dependency injection for database sessions; one session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
