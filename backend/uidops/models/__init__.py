from .records import (
    ScanRecord,
    RECORD_STATUS_DRAFT,
    RECORD_STATUS_COMPLETE,
    RECORD_STATUSES,
    SYNC_STATE_PENDING,
    SYNC_STATE_SYNCED,
    SYNC_STATE_UNKNOWN,
)
from .plans import WeeklyPlan
from .bins import Bin

__all__ = [
    'ScanRecord', 'WeeklyPlan', 'Bin',
    'RECORD_STATUS_DRAFT', 'RECORD_STATUS_COMPLETE', 'RECORD_STATUSES',
    'SYNC_STATE_PENDING', 'SYNC_STATE_SYNCED', 'SYNC_STATE_UNKNOWN',
]
