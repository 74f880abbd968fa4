"""
Engine and session factory for the workflow tables.

The URL comes from settings; tests pass their own in-memory SQLite URL.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from config import get_settings

from .models import Base

logger = logging.getLogger(__name__)


def create_db_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    settings = get_settings()
    url = database_url or settings.database_url
    logger.debug("Creating engine for %s", url.split("@")[-1])
    return create_engine(
        url,
        echo=settings.database_echo if echo is None else echo,
        future=True,
        pool_pre_ping=True,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False, future=True)


def init_db(engine: Engine) -> None:
    """Create any missing tables."""
    Base.metadata.create_all(engine)
