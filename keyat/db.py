from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from typing import Generator
import os

# DATABASE_URL defaults to a local SQLite file at ./data.db.
# Point it at Postgres/MySQL for staging and production.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data.db")


def is_sqlite(url: str = DATABASE_URL) -> bool:
    return url.startswith("sqlite")


# SQLite needs cross-thread access for the TestClient/uvicorn worker threads.
# Server databases get a bounded, self-healing pool.
if is_sqlite():
    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
else:
    engine = create_engine(
        DATABASE_URL,
        pool_pre_ping=True,
        pool_recycle=280,
        pool_size=10,
        max_overflow=20,
    )

# One session per request; transactions are committed explicitly by the handlers
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator:
    """
    FastAPI dependency.

    Yields a database session for the lifetime of the request and closes it
    afterwards, even if the handler raised.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
