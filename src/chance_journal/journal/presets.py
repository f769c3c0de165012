"""Filter presets — named, reusable record queries.

A preset stores the raw filter mapping the user had on screen (for example
``{"currencyPair": "USD/JPY", "minConfidence": 4}``) under a unique name.
Applying a preset bumps its usage counters, which drive the "most used"
and "recently used" shortcuts.

Presets persist under their own key, independently of the records, and
can be exported to / imported from a small JSON document::

    {"filters": [...], "exportedAt": "2024-01-01T00:00:00Z", "version": "1.0"}
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from chance_journal.core.clock import IClock, WallClock
from chance_journal.core.enums import StorageKey
from chance_journal.core.errors import CapacityError, JournalError, PersistenceError, ValidationError
from chance_journal.core.ids import as_aware, new_id
from chance_journal.storage.kv import KeyValueStore

from .record import MIN_CONFIDENCE, RecordFilter, coerce_model

logger = logging.getLogger(__name__)

MAX_PRESETS = 10
NAME_MAX_LENGTH = 50
EXPORT_VERSION = "1.0"


class FilterPreset(BaseModel):
    """A named set of record filter criteria."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: str
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    filters: dict[str, Any]
    created_at: datetime
    usage_count: int = Field(default=0, ge=0)
    last_used_at: datetime | None = None
    imported_at: datetime | None = None

    @property
    def last_activity(self) -> datetime:
        return self.last_used_at or self.created_at

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


PRESET_LIST = TypeAdapter(list[FilterPreset])


def is_neutral(value: Any) -> bool:
    """True for values that do not narrow a query.

    ``""``, ``None`` and the minimum confidence are neutral.  Booleans
    never are: ``tradeExecuted=False`` is a real criterion.
    """
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (int, float)):
        return value == MIN_CONFIDENCE
    return False


def has_criteria(filter_spec: Mapping[str, Any]) -> bool:
    return any(not is_neutral(v) for v in filter_spec.values())


_TIMESTAMP = TypeAdapter(datetime)


def _parse_timestamp(value: Any) -> datetime | None:
    """Parse an exported timestamp, or ``None`` when absent or malformed."""
    if value is None:
        return None
    try:
        return as_aware(_TIMESTAMP.validate_python(value))
    except PydanticValidationError:
        return None


class FilterPresetStore:
    """Write-through store of :class:`FilterPreset` objects.

    Parameters
    ----------
    kv : KeyValueStore
        Storage port.  Presets live under ``StorageKey.FILTER_PRESETS``.
    clock : IClock | None
        Source of ``created_at`` / ``last_used_at``.
    max_presets : int
        Cap on the number of saved presets.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        clock: IClock | None = None,
        max_presets: int = MAX_PRESETS,
    ) -> None:
        self._kv = kv
        self._clock = clock or WallClock()
        self._max = max_presets
        self._lock = threading.RLock()
        self._presets: list[FilterPreset] = []
        self.last_error: Exception | None = None
        self.load()

    @property
    def presets(self) -> list[FilterPreset]:
        return list(self._presets)

    @property
    def max_presets(self) -> int:
        return self._max

    def __len__(self) -> int:
        return len(self._presets)

    # ------------------------------------------------------------------ #
    # Persistence                                                          #
    # ------------------------------------------------------------------ #

    def load(self) -> None:
        key = StorageKey.FILTER_PRESETS.value
        with self._lock:
            try:
                raw = self._kv.get(key)
                self._presets = [] if raw is None else PRESET_LIST.validate_json(raw)
                self.last_error = None
            except PersistenceError as exc:
                self._fail_load(exc)
            except (PydanticValidationError, ValueError) as exc:
                self._fail_load(PersistenceError(key, f"corrupt data: {exc}"))

    def _fail_load(self, exc: PersistenceError) -> None:
        logger.warning("Filter preset load failed, starting empty: %s", exc)
        self._presets = []
        self.last_error = exc

    def _persist(self, presets: list[FilterPreset]) -> None:
        payload = json.dumps([p.to_document() for p in presets], ensure_ascii=False)
        try:
            self._kv.set(StorageKey.FILTER_PRESETS.value, payload)
        except PersistenceError as exc:
            logger.error("Filter preset save failed: %s", exc)
            self.last_error = exc
            raise
        self._presets = presets
        self.last_error = None

    # ------------------------------------------------------------------ #
    # Mutations                                                            #
    # ------------------------------------------------------------------ #

    def save(self, name: str, filter_spec: Mapping[str, Any]) -> FilterPreset:
        """Save the current filters under *name*."""
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Enter a name for the filter preset")
        name = name.strip()
        if len(name) > NAME_MAX_LENGTH:
            raise ValidationError(
                f"Preset names must be {NAME_MAX_LENGTH} characters or fewer"
            )

        with self._lock:
            if self._name_taken(name):
                raise ValidationError(f"A filter preset named '{name}' already exists")
            if len(self._presets) >= self._max:
                raise CapacityError(self._max)
            if not isinstance(filter_spec, Mapping) or not has_criteria(filter_spec):
                raise ValidationError("Set at least one filter before saving a preset")

            preset = FilterPreset(
                id=new_id(),
                name=name,
                filters=dict(filter_spec),
                created_at=self._clock.now(),
            )
            self._persist([*self._presets, preset])

        logger.debug("Saved filter preset %s (%s)", preset.id, name)
        return preset

    def remove(self, preset_id: str) -> None:
        """Delete a preset.  Unknown ids are ignored."""
        with self._lock:
            if self.get(preset_id) is None:
                return
            self._persist([p for p in self._presets if p.id != preset_id])

    def apply_usage(self, preset_id: str) -> FilterPreset | None:
        """Count one use of a preset.

        Usage tracking is best effort: failures are logged and ``None`` is
        returned instead of raising.
        """
        with self._lock:
            current = self.get(preset_id)
            if current is None:
                logger.warning("Usage not recorded, no preset %s", preset_id)
                return None
            updated = current.model_copy(
                update={
                    "usage_count": current.usage_count + 1,
                    "last_used_at": self._clock.now(),
                }
            )
            try:
                self._persist([updated if p.id == preset_id else p for p in self._presets])
            except JournalError as exc:
                logger.warning("Usage not recorded for preset %s: %s", preset_id, exc)
                return None
        return updated

    def _name_taken(self, name: str, taken: set[str] | None = None) -> bool:
        folded = name.casefold()
        if taken is not None and folded in taken:
            return True
        return any(p.name.casefold() == folded for p in self._presets)

    # ------------------------------------------------------------------ #
    # Lookups                                                              #
    # ------------------------------------------------------------------ #

    def get(self, preset_id: str) -> FilterPreset | None:
        for preset in self._presets:
            if preset.id == preset_id:
                return preset
        return None

    def find_by_name(self, name: str) -> FilterPreset | None:
        folded = name.strip().casefold()
        for preset in self._presets:
            if preset.name.casefold() == folded:
                return preset
        return None

    def record_filter(self, preset_id: str) -> RecordFilter | None:
        """The preset's criteria as a :class:`RecordFilter`."""
        preset = self.get(preset_id)
        if preset is None:
            return None
        return coerce_model(RecordFilter, preset.filters)

    def most_used(self, limit: int = 5) -> list[FilterPreset]:
        return sorted(self._presets, key=lambda p: p.usage_count, reverse=True)[:limit]

    def most_recent(self, limit: int = 5) -> list[FilterPreset]:
        return sorted(self._presets, key=lambda p: p.last_activity, reverse=True)[:limit]

    # ------------------------------------------------------------------ #
    # Export / import                                                      #
    # ------------------------------------------------------------------ #

    def export_document(self) -> str:
        """Serialize all presets into a portable JSON document."""
        document = {
            "filters": [p.to_document() for p in self._presets],
            "exportedAt": self._clock.now().isoformat(),
            "version": EXPORT_VERSION,
        }
        return json.dumps(document, ensure_ascii=False, indent=2)

    def import_document(self, document: str | bytes | Mapping[str, Any]) -> int:
        """Add the presets found in an exported document.

        Entries without a usable name, or whose ``filters`` set no criterion,
        are skipped.  Each imported preset gets a fresh id and a zero usage
        count; its ``createdAt`` and ``lastUsedAt`` are kept when valid.
        Returns the number of presets imported.
        """
        if isinstance(document, (str, bytes)):
            try:
                parsed = json.loads(document)
            except ValueError as exc:
                raise ValidationError("Invalid filter preset data") from exc
        else:
            parsed = document

        entries = parsed.get("filters") if isinstance(parsed, Mapping) else None
        if not isinstance(entries, list):
            raise ValidationError("Invalid filter preset data")

        now = self._clock.now()
        with self._lock:
            taken: set[str] = set()
            imported: list[FilterPreset] = []
            for entry in entries:
                if not isinstance(entry, Mapping):
                    continue
                name = entry.get("name")
                filters = entry.get("filters")
                if not isinstance(name, str) or not isinstance(filters, Mapping):
                    continue
                name = name.strip()
                if (
                    not name
                    or len(name) > NAME_MAX_LENGTH
                    or self._name_taken(name, taken)
                    or not has_criteria(filters)
                ):
                    continue
                taken.add(name.casefold())
                imported.append(
                    FilterPreset(
                        id=new_id(),
                        name=name,
                        filters=dict(filters),
                        created_at=_parse_timestamp(entry.get("createdAt")) or now,
                        last_used_at=_parse_timestamp(entry.get("lastUsedAt")),
                        imported_at=now,
                    )
                )

            if not imported:
                raise ValidationError("No valid filter presets found")
            if len(self._presets) + len(imported) > self._max:
                raise CapacityError(
                    self._max,
                    f"Importing would exceed the limit of {self._max} filter presets",
                )
            self._persist([*self._presets, *imported])

        logger.info("Imported %d filter presets", len(imported))
        return len(imported)
