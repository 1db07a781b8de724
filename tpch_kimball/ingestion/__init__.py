"""
Data Ingestion Module
"""
from .source_loader import (
    FileFormat,
    LoadResult,
    SourceFileConfig,
    SourceLoadError,
    SourceLoader,
    write_sources,
)
from .tpch_schema import TPCH_SCHEMAS

__all__ = [
    "FileFormat",
    "LoadResult",
    "SourceFileConfig",
    "SourceLoadError",
    "SourceLoader",
    "write_sources",
    "TPCH_SCHEMAS",
]
