"""Database persistence layer."""

from .db import create_db_engine, dispose_engine, get_engine, get_session, init_db, make_session_factory
from .models import Award, Base, MetadataEntry, Organisation, SourceStat, Tender
from .repo import Store, StoreError, TenderStore

__all__ = [
    "create_db_engine",
    "dispose_engine",
    "get_engine",
    "get_session",
    "init_db",
    "make_session_factory",
    "Base",
    "Tender",
    "Award",
    "Organisation",
    "SourceStat",
    "MetadataEntry",
    "Store",
    "StoreError",
    "TenderStore",
]
