"""
Data Ingestion Module
"""
from .snapshot_loader import (
    FileCatalogSource,
    FileFormat,
    FileOrderSource,
    create_file_sources,
    read_snapshot,
)

__all__ = [
    "FileCatalogSource",
    "FileFormat",
    "FileOrderSource",
    "create_file_sources",
    "read_snapshot",
]
