"""Enumerations used across the journal."""

from enum import Enum


class Direction(str, Enum):
    LONG = "Long"
    SHORT = "Short"


class TradeResult(str, Enum):
    SUCCESS = "Success"
    FAILURE = "Failure"


class StorageKey(str, Enum):
    """Key-value namespaces, one per store."""

    RECORDS = "records"
    CURRENCY_PAIRS = "currency-pairs"
    TIMEFRAMES = "timeframes"
    PATTERNS = "patterns"
    FILTER_PRESETS = "filter-presets"


class StorageBackend(str, Enum):
    MEMORY = "memory"
    FILE = "file"
    REDIS = "redis"


class ReferenceKind(str, Enum):
    CURRENCY_PAIR = "currency-pair"
    TIMEFRAME = "timeframe"
    PATTERN = "pattern"
