"""
Database Module
"""
from .connection import init_database, close_database, get_db, get_engine
from .models import Base, BRONZE_TABLES, SILVER_MODELS

__all__ = [
    "init_database",
    "close_database",
    "get_db",
    "get_engine",
    "Base",
    "BRONZE_TABLES",
    "SILVER_MODELS",
]
