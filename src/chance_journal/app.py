"""Wiring: build the stores from settings.

Every store receives the same key-value port and clock; nothing here is a
process-wide singleton, so tests can build as many journals as they like.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .core.clock import IClock, WallClock
from .core.config import Settings
from .core.enums import ReferenceKind
from .journal.presets import FilterPresetStore
from .journal.store import RecordStore
from .reference.catalog import JournalVocabulary, ReferenceCatalog, open_catalogs
from .storage.kv import KeyValueStore, open_kv_store

logger = logging.getLogger(__name__)


@dataclass
class Journal:
    """All stores of one journal, sharing a storage port."""

    kv: KeyValueStore
    clock: IClock
    records: RecordStore
    presets: FilterPresetStore
    catalogs: dict[ReferenceKind, ReferenceCatalog]

    def load_errors(self) -> list[Exception]:
        """Recoverable load failures, if any store started empty."""
        stores = [self.records, self.presets, *self.catalogs.values()]
        return [s.last_error for s in stores if s.last_error is not None]


def open_journal(
    settings: Settings,
    *,
    kv: KeyValueStore | None = None,
    clock: IClock | None = None,
) -> Journal:
    """Open the journal described by *settings*.

    Args:
        settings: Loaded application settings.
        kv: Storage port override; defaults to the configured backend.
        clock: Clock override; defaults to wall time.
    """
    kv = kv if kv is not None else open_kv_store(settings)
    clock = clock or WallClock()

    catalogs = open_catalogs(kv, clock=clock)
    vocabulary = (
        JournalVocabulary.from_catalogs(catalogs) if settings.strict_vocabulary else None
    )
    journal = Journal(
        kv=kv,
        clock=clock,
        records=RecordStore(kv, clock=clock, vocabulary=vocabulary),
        presets=FilterPresetStore(kv, clock=clock, max_presets=settings.limits.max_presets),
        catalogs=catalogs,
    )
    for error in journal.load_errors():
        logger.warning("Journal opened with a load error: %s", error)
    return journal
