from .records import (
    FunctionResponse,
    ProcessListResponse,
    ProcessResponse,
    TestResponse,
)
from .sync import (
    CacheStatisticsResponse,
    CheckResultResponse,
    PollIntervalUpdate,
    SchemaUpdate,
    SchemaUpdateResponse,
    WatcherStatisticsResponse,
    WatcherStatusResponse,
)

__all__ = [
    "FunctionResponse",
    "ProcessListResponse",
    "ProcessResponse",
    "TestResponse",
    "CacheStatisticsResponse",
    "CheckResultResponse",
    "PollIntervalUpdate",
    "SchemaUpdate",
    "SchemaUpdateResponse",
    "WatcherStatisticsResponse",
    "WatcherStatusResponse",
]
