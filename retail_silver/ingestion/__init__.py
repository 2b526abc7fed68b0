"""
Data Ingestion Module
"""
from .sources import InMemoryRecordSource, RawRecordSource, StagingTableSource

__all__ = [
    "InMemoryRecordSource",
    "RawRecordSource",
    "StagingTableSource",
]
