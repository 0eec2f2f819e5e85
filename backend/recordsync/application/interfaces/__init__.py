from .record_store import RecordStore, Row

__all__ = [
    "RecordStore",
    "Row",
]
