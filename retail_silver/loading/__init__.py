"""
Data Loading Module
"""
from .sinks import DatabaseRecordSink, InMemoryRecordSink, ValidatedRecordSink

__all__ = [
    "DatabaseRecordSink",
    "InMemoryRecordSink",
    "ValidatedRecordSink",
]
