"""
Database Module
"""
from .connection import Database, create_database, get_database, get_db_dependency
from .models import Base, Order, OrderItem, Product
from .repository import SqlCatalogSource, SqlOrderSource

__all__ = [
    "Database",
    "create_database",
    "get_database",
    "get_db_dependency",
    "Base",
    "Order",
    "OrderItem",
    "Product",
    "SqlCatalogSource",
    "SqlOrderSource",
]
