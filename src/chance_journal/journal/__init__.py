"""Trade-opportunity journal — records, queries, statistics and presets.

Key components
--------------
ChanceRecord        One logged trading opportunity
RecordStore         Validated, write-through record collection with queries
JournalStatistics   Aggregate counts and success rate
FilterPreset        Named, reusable set of query criteria
FilterPresetStore   Preset collection with usage tracking and export/import
"""

from .presets import FilterPreset, FilterPresetStore
from .record import ChanceRecord, RecordFilter, RecordInput, RecordPatch
from .statistics import (
    JournalStatistics,
    MonthlyComparison,
    compute_statistics,
    monthly_comparison,
    top_counts,
)
from .store import RecordStore

__all__ = [
    "ChanceRecord",
    "RecordInput",
    "RecordPatch",
    "RecordFilter",
    "RecordStore",
    "JournalStatistics",
    "MonthlyComparison",
    "compute_statistics",
    "monthly_comparison",
    "top_counts",
    "FilterPreset",
    "FilterPresetStore",
]
