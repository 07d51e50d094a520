"""Database models for the local business pipeline.

This module contains the SQLAlchemy models backing the persistent store.
"""

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Import models to register them with Base metadata
from .business import Business, BusinessSource, BusinessStatus
from .website import GeneratedWebsite
from .outreach import OutreachLog, OutreachMethod

# Import database utilities
from .database import (
    Database,
    normalize_database_url,
)

__all__ = [
    # Base class
    "Base",
    "utcnow",
    # Models
    "Business",
    "BusinessSource",
    "BusinessStatus",
    "GeneratedWebsite",
    "OutreachLog",
    "OutreachMethod",
    # Database utilities
    "Database",
    "normalize_database_url",
]
