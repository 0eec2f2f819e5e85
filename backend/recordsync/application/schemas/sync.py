"""Pydantic DTOs for the watcher / cache control surface."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class WatcherStatisticsResponse(BaseModel):
    passes_run: int
    passes_skipped: int
    passes_failed: int
    passes_discarded: int
    events_emitted: int
    last_pass_at: datetime | None
    last_error: str | None

    model_config = {"from_attributes": True}


class WatcherStatusResponse(BaseModel):
    """Current watcher state returned to the client."""

    state: str
    poll_interval_seconds: float
    schema_name: str | None
    subscribers: int
    snapshot_sizes: dict[str, int]
    statistics: WatcherStatisticsResponse


class PollIntervalUpdate(BaseModel):
    """Payload for changing the polling interval."""

    seconds: float = Field(..., gt=0, examples=[3.0])
    persist: bool = Field(False, description="Also store the value in data/settings.json")


class SchemaUpdate(BaseModel):
    """Payload for switching the active dataset schema."""

    schema_name: str | None = Field(None, max_length=128, examples=["qa_env"])
    persist: bool = False


class SchemaUpdateResponse(BaseModel):
    schema_name: str | None
    switched: bool


class CheckResultResponse(BaseModel):
    """Result of a manual sampling pass."""

    changed: bool
    event: dict[str, Any] | None = None


class CacheStatisticsResponse(BaseModel):
    tests: int
    processes: int
    functions: int
    duplicate_puts: int
    groups_loaded: int
    hits: int
    misses: int
    hit_rate: float
    has_significant_data: bool
