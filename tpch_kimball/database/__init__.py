"""
Database Module
"""
from .connection import (
    close_database,
    count_rows,
    create_tables,
    get_db,
    get_engine,
    init_database,
    publish_model,
)
from .models import Base, MODELS_IN_DEPENDENCY_ORDER

__all__ = [
    "init_database",
    "close_database",
    "get_db",
    "get_engine",
    "create_tables",
    "publish_model",
    "count_rows",
    "Base",
    "MODELS_IN_DEPENDENCY_ORDER",
]
