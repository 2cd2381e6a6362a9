"""
RagDesk Database Module

Database components:
- SQLAlchemy models for the model registry
- Async engine and session management
- ModelRegistry CRUD and API key authentication
"""

from ragdesk.db.database import (
    MAX_OVERFLOW,
    POOL_RECYCLE,
    POOL_SIZE,
    check_database_health,
    close_db,
    create_db_engine,
    get_async_session_maker,
    init_db,
    session_scope,
)
from ragdesk.db.models import Base, RagModel
from ragdesk.db.registry import ModelRegistry, derive_index_name

__all__ = [
    # Models
    "Base",
    "RagModel",
    # Constants
    "POOL_SIZE",
    "MAX_OVERFLOW",
    "POOL_RECYCLE",
    # Functions
    "create_db_engine",
    "get_async_session_maker",
    "session_scope",
    "init_db",
    "close_db",
    "check_database_health",
    # Registry
    "ModelRegistry",
    "derive_index_name",
]
