"""
Database connection management for the database-backed cache store.

Environment variables:
    - DATABASE_URL: SQLAlchemy connection URL (default: sqlite:///./pizza_bot.db)
"""

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .config import DATABASE_URL
from .models import Base


def make_engine(url: str = DATABASE_URL) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(
        url,
        pool_pre_ping=True,
        echo=False,
        connect_args=connect_args,
    )


def make_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    engine = engine or make_engine()
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

