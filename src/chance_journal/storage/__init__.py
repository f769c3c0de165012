"""Key-value storage port and its adapters."""

from .kv import InMemoryKeyValueStore, KeyValueStore, open_kv_store

__all__ = ["KeyValueStore", "InMemoryKeyValueStore", "open_kv_store"]
