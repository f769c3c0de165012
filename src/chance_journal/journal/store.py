"""Record store — owns the collection of trade-opportunity records.

Every mutation follows the same discipline::

    validate  →  build a new collection  →  persist  →  commit in memory

If the key-value store rejects the write, the in-memory collection is left
exactly as it was and the :class:`PersistenceError` reaches the caller, so
memory and storage never diverge.

Queries never mutate; they recompute a filtered, date-descending view of
the current collection on every call.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, time, timedelta, tzinfo
from typing import Any, Iterable, Mapping

from pydantic import ValidationError as PydanticValidationError

from chance_journal.core.clock import IClock, WallClock
from chance_journal.core.enums import StorageKey
from chance_journal.core.errors import NotFoundError, PersistenceError, ValidationError
from chance_journal.core.ids import as_aware, new_id
from chance_journal.storage.kv import KeyValueStore

from .record import (
    DEFAULT_CONFIDENCE,
    IMMUTABLE_FIELDS,
    RECORD_LIST,
    REQUIRED_FIELDS,
    ChanceRecord,
    RecordFilter,
    RecordInput,
    RecordPatch,
    check_memo,
    clamp_confidence,
    coerce_model,
    parse_direction,
    parse_trade_result,
)
from .statistics import JournalStatistics, compute_statistics

logger = logging.getLogger(__name__)

_FIELD_LABELS = {
    "currency_pair": "currency pair",
    "timeframe": "timeframe",
    "pattern": "pattern",
    "direction": "direction",
}


def newest_first(records: Iterable[ChanceRecord]) -> list[ChanceRecord]:
    return sorted(records, key=lambda r: r.created_at, reverse=True)


class RecordStore:
    """Validated, write-through store of :class:`ChanceRecord` objects.

    Parameters
    ----------
    kv : KeyValueStore
        Storage port.  The collection lives under ``StorageKey.RECORDS``.
    clock : IClock | None
        Source of ``created_at`` / ``updated_at``.  Defaults to wall time.
    vocabulary : JournalVocabulary | None
        When given, new records must use an active currency pair,
        timeframe and pattern from the reference catalogs.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        clock: IClock | None = None,
        vocabulary: Any = None,
    ) -> None:
        self._kv = kv
        self._clock = clock or WallClock()
        self._vocabulary = vocabulary
        self._lock = threading.RLock()
        self._records: list[ChanceRecord] = []
        self.last_error: Exception | None = None
        self.load()

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    def load(self) -> None:
        """Read the persisted collection.

        On failure the store resets to empty, keeps the error in
        :attr:`last_error` and stays usable.
        """
        key = StorageKey.RECORDS.value
        with self._lock:
            try:
                raw = self._kv.get(key)
                self._records = [] if raw is None else RECORD_LIST.validate_json(raw)
                self.last_error = None
            except PersistenceError as exc:
                self._fail_load(exc)
            except (PydanticValidationError, ValueError) as exc:
                self._fail_load(PersistenceError(key, f"corrupt data: {exc}"))
        logger.debug("Loaded %d records", len(self._records))

    def _fail_load(self, exc: PersistenceError) -> None:
        logger.warning("Record load failed, starting empty: %s", exc)
        self._records = []
        self.last_error = exc

    def _persist(self, records: list[ChanceRecord]) -> None:
        """Write *records* and, only once that succeeded, make them current."""
        payload = json.dumps([r.to_document() for r in records], ensure_ascii=False)
        try:
            self._kv.set(StorageKey.RECORDS.value, payload)
        except PersistenceError as exc:
            logger.error("Record save failed: %s", exc)
            self.last_error = exc
            raise
        self._records = records
        self.last_error = None

    # ------------------------------------------------------------------ #
    # Mutations                                                            #
    # ------------------------------------------------------------------ #

    def add(self, data: RecordInput | Mapping[str, Any]) -> ChanceRecord:
        """Validate *data*, append a new record and persist the collection."""
        entry = coerce_model(RecordInput, data)

        for field in REQUIRED_FIELDS:
            value = getattr(entry, field)
            if value is None or not str(value).strip():
                raise ValidationError(
                    f"Missing required field: {_FIELD_LABELS[field]}"
                )

        direction = parse_direction(entry.direction)
        confidence = clamp_confidence(
            DEFAULT_CONFIDENCE if entry.confidence is None else entry.confidence
        )
        memo = check_memo(entry.memo or "")
        self._check_vocabulary(entry.currency_pair, entry.timeframe, entry.pattern)

        now = self._clock.now()
        record = ChanceRecord(
            id=new_id(),
            currency_pair=entry.currency_pair,
            timeframe=entry.timeframe,
            pattern=entry.pattern,
            direction=direction,
            confidence=confidence,
            memo=memo,
            chart_url=(entry.chart_url or "").strip(),
            trade_executed=False,
            trade_result=None,
            created_at=now,
            updated_at=now,
        )

        with self._lock:
            self._persist([*self._records, record])
        logger.debug("Added record %s (%s %s)", record.id, record.currency_pair, record.direction.value)
        return record

    def update(self, record_id: str, patch: RecordPatch | Mapping[str, Any]) -> ChanceRecord:
        """Merge the fields set in *patch* into an existing record.

        Raises :class:`NotFoundError` for an unknown id.  Any invalid field
        rejects the whole update.
        """
        if isinstance(patch, Mapping):
            locked = sorted(IMMUTABLE_FIELDS.intersection(patch))
            if locked:
                raise ValidationError(f"Field cannot be updated: {', '.join(locked)}")
        changes = coerce_model(RecordPatch, patch).changes()

        with self._lock:
            index = self._index_of(record_id)
            if index is None:
                raise NotFoundError("Record", record_id)
            current = self._records[index]

            updates = self._validate_changes(changes)
            updates["updated_at"] = self._clock.now()
            updated = current.model_copy(update=updates)

            records = list(self._records)
            records[index] = updated
            self._persist(records)

        logger.debug("Updated record %s: %s", record_id, sorted(changes))
        return updated

    def remove(self, record_id: str) -> None:
        """Delete a record.  Unknown ids are ignored."""
        with self._lock:
            if self._index_of(record_id) is None:
                logger.debug("Remove ignored, no record %s", record_id)
                return
            self._persist([r for r in self._records if r.id != record_id])
        logger.debug("Removed record %s", record_id)

    def _validate_changes(self, changes: dict[str, Any]) -> dict[str, Any]:
        updates: dict[str, Any] = {}
        for field, value in changes.items():
            if field in REQUIRED_FIELDS and field != "direction":
                if value is None or not value.strip():
                    raise ValidationError(
                        f"Missing required field: {_FIELD_LABELS[field]}"
                    )
                updates[field] = value
            elif field == "direction":
                updates[field] = parse_direction(value)
            elif field == "confidence":
                updates[field] = clamp_confidence(value)
            elif field == "memo":
                updates[field] = check_memo(value or "")
            elif field == "chart_url":
                updates[field] = (value or "").strip()
            elif field == "trade_executed":
                if value is None:
                    raise ValidationError("Trade executed must be true or false")
                updates[field] = value
            elif field == "trade_result":
                updates[field] = parse_trade_result(value)

        if self._vocabulary is not None:
            self._check_vocabulary(
                updates.get("currency_pair"),
                updates.get("timeframe"),
                updates.get("pattern"),
            )
        return updates

    def _check_vocabulary(
        self, pair: str | None, timeframe: str | None, pattern: str | None
    ) -> None:
        if self._vocabulary is None:
            return
        for label, value, allowed in (
            ("currency pair", pair, self._vocabulary.currency_pairs),
            ("timeframe", timeframe, self._vocabulary.timeframes),
            ("pattern", pattern, self._vocabulary.patterns),
        ):
            if value is not None and value not in allowed:
                raise ValidationError(f"Unknown {label}: {value}")

    def _index_of(self, record_id: str) -> int | None:
        for i, record in enumerate(self._records):
            if record.id == record_id:
                return i
        return None

    # ------------------------------------------------------------------ #
    # Queries                                                              #
    # ------------------------------------------------------------------ #

    @property
    def records(self) -> list[ChanceRecord]:
        """Snapshot of the collection in insertion order."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: str) -> ChanceRecord | None:
        index = self._index_of(record_id)
        return None if index is None else self._records[index]

    def query(
        self, filters: RecordFilter | Mapping[str, Any] | None = None
    ) -> list[ChanceRecord]:
        """Records matching every provided criterion, newest first."""
        if filters is None:
            return newest_first(self._records)
        criteria = coerce_model(RecordFilter, filters)
        return newest_first(r for r in self._records if criteria.matches(r))

    def search(self, term: str | None = None) -> list[ChanceRecord]:
        """Case-insensitive substring search over pair, pattern and memo."""
        if not term:
            return newest_first(self._records)
        needle = term.lower()
        return newest_first(
            r
            for r in self._records
            if needle in r.currency_pair.lower()
            or needle in r.pattern.lower()
            or needle in r.memo.lower()
        )

    def find(
        self,
        filters: RecordFilter | Mapping[str, Any] | None = None,
        term: str | None = None,
    ) -> list[ChanceRecord]:
        """Search when *term* is given, otherwise filter."""
        if term:
            return self.search(term)
        return self.query(filters)

    def records_in_range(self, start: datetime, end: datetime) -> list[ChanceRecord]:
        """Records created within ``[start, end]``, newest first."""
        start, end = as_aware(start), as_aware(end)
        return newest_first(r for r in self._records if start <= r.created_at <= end)

    def todays_records(self, tz: tzinfo | None = None) -> list[ChanceRecord]:
        """Records created during the current calendar day.

        The day runs 00:00:00 through 23:59:59 in *tz* (local time when
        omitted).
        """
        now = self._clock.now()
        today = now.astimezone(tz).date() if tz else now.astimezone().date()
        start = datetime.combine(today, time.min, tzinfo=tz)
        end = start + timedelta(hours=23, minutes=59, seconds=59)
        return self.records_in_range(start, end)

    def statistics(self) -> JournalStatistics:
        return compute_statistics(self._records)
