from .change_broadcaster import ChangeEventBroadcaster
from .change_detector import SnapshotDiff, SnapshotStore, diff_snapshots
from .database_watcher import DatabaseWatcher, WatcherState, WatcherStatistics
from .fingerprint import FINGERPRINTERS, Fingerprinter, compute_digest
from .function_preloader import FunctionPreloader
from .record_cache import CacheStatistics, CacheToken, RecordCache
from .record_loader import RecordLoader
from .record_view import RecordView
from .schema_switch_service import SchemaSwitchService

__all__ = [
    "ChangeEventBroadcaster",
    "SnapshotDiff",
    "SnapshotStore",
    "diff_snapshots",
    "DatabaseWatcher",
    "WatcherState",
    "WatcherStatistics",
    "FINGERPRINTERS",
    "Fingerprinter",
    "compute_digest",
    "FunctionPreloader",
    "CacheStatistics",
    "CacheToken",
    "RecordCache",
    "RecordLoader",
    "RecordView",
    "SchemaSwitchService",
]
