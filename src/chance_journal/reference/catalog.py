"""Reference catalogs — the vocabulary records are written with.

Currency pairs, timeframes and chart patterns are three structurally
identical lookup lists: labelled entries with a category, an active flag
and a display order.  One :class:`ReferenceCatalog` class serves all three;
a :class:`CatalogSpec` carries the per-list differences (seed data, name
normalisation, categorisation, required attributes).

Catalogs seed their defaults on first use and persist them, so users can
add their own entries, deactivate the ones they never trade, and reorder
the list.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from chance_journal.core.clock import IClock, WallClock
from chance_journal.core.enums import ReferenceKind, StorageKey
from chance_journal.core.errors import NotFoundError, PersistenceError, ValidationError
from chance_journal.storage.kv import KeyValueStore

from .defaults import (
    DEFAULT_CURRENCY_PAIRS,
    DEFAULT_PATTERNS,
    DEFAULT_TIMEFRAMES,
    currency_category,
)

logger = logging.getLogger(__name__)


class ReferenceEntry(BaseModel):
    """One selectable value in a catalog."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: int
    name: str = Field(min_length=1)
    display_name: str = ""
    category: str = ""
    is_active: bool = True
    is_custom: bool = False
    display_order: int = 0
    minutes: int | None = None  # timeframes
    description: str = ""  # patterns
    reliability: int | None = Field(default=None, ge=1, le=5)  # patterns
    created_at: datetime
    updated_at: datetime | None = None

    @property
    def label(self) -> str:
        return self.display_name or self.name

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


ENTRY_LIST = TypeAdapter(list[ReferenceEntry])

_PROTECTED = frozenset({"id", "created_at", "createdAt", "is_custom", "isCustom"})


@dataclass(frozen=True)
class CatalogSpec:
    """Per-catalog behaviour."""

    kind: ReferenceKind
    storage_key: StorageKey
    seed: Callable[[], list[dict[str, Any]]]
    normalize: Callable[[str], str] = str.strip
    categorize: Callable[[str], str] | None = None
    requires: tuple[str, ...] = ()
    protect_defaults: bool = False
    default_reliability: int | None = None


def _clamp_reliability(value: Any) -> int:
    try:
        number = int(float(value))
    except (TypeError, ValueError) as exc:
        raise ValidationError("Reliability must be a number between 1 and 5") from exc
    return max(1, min(5, number))


class ReferenceCatalog:
    """Persistent, ordered list of :class:`ReferenceEntry` values."""

    def __init__(
        self,
        kv: KeyValueStore,
        spec: CatalogSpec,
        *,
        clock: IClock | None = None,
    ) -> None:
        self._kv = kv
        self._spec = spec
        self._clock = clock or WallClock()
        self._lock = threading.RLock()
        self._entries: list[ReferenceEntry] = []
        self.last_error: Exception | None = None
        self.load()

    @property
    def kind(self) -> ReferenceKind:
        return self._spec.kind

    @property
    def entries(self) -> list[ReferenceEntry]:
        return list(self._entries)

    # -- persistence ---------------------------------------------------------

    def load(self) -> None:
        """Read the catalog, seeding and saving the defaults if none is stored."""
        key = self._spec.storage_key.value
        with self._lock:
            try:
                raw = self._kv.get(key)
            except PersistenceError as exc:
                self._fail_load(exc)
                return
            if raw is None:
                self._seed()
                return
            try:
                self._entries = ENTRY_LIST.validate_json(raw)
                self.last_error = None
            except (PydanticValidationError, ValueError) as exc:
                self._fail_load(PersistenceError(key, f"corrupt data: {exc}"))

    def _seed(self) -> None:
        now = self._clock.now()
        entries = [
            ReferenceEntry(
                id=i,
                display_order=i,
                created_at=now,
                **attrs,
            )
            for i, attrs in enumerate(self._spec.seed(), start=1)
        ]
        try:
            self._persist(entries)
        except PersistenceError:
            # Defaults are still usable for this session.
            self._entries = entries
        logger.debug("Seeded %d %s entries", len(entries), self.kind.value)

    def _fail_load(self, exc: PersistenceError) -> None:
        logger.warning("%s catalog load failed, starting empty: %s", self.kind.value, exc)
        self._entries = []
        self.last_error = exc

    def _persist(self, entries: list[ReferenceEntry]) -> None:
        payload = json.dumps([e.to_document() for e in entries], ensure_ascii=False)
        try:
            self._kv.set(self._spec.storage_key.value, payload)
        except PersistenceError as exc:
            logger.error("%s catalog save failed: %s", self.kind.value, exc)
            self.last_error = exc
            raise
        self._entries = entries
        self.last_error = None

    # -- mutations -----------------------------------------------------------

    def add(self, name: str, **attrs: Any) -> ReferenceEntry:
        """Add a custom entry.  Names are unique case-insensitively."""
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(f"Enter a {self.kind.value} name")
        name = self._spec.normalize(name)
        for field in self._spec.requires:
            if attrs.get(field) in (None, ""):
                raise ValidationError(f"Missing required field for {self.kind.value}: {field}")

        with self._lock:
            if self.find_by_name(name) is not None:
                raise ValidationError(f"{self.kind.value} already exists: {name}")
            minutes = attrs.get("minutes")
            if minutes is not None:
                minutes = int(minutes)
                if any(e.minutes == minutes for e in self._entries):
                    raise ValidationError(f"{self.kind.value} already exists: {minutes} minutes")
                attrs["minutes"] = minutes

            category = attrs.pop("category", None)
            if not category and self._spec.categorize is not None:
                category = self._spec.categorize(name)
            if "reliability" in attrs or self._spec.default_reliability is not None:
                attrs["reliability"] = _clamp_reliability(
                    attrs.get("reliability") or self._spec.default_reliability
                )
            if "description" in attrs:
                attrs["description"] = (attrs["description"] or "").strip()

            try:
                entry = ReferenceEntry(
                    id=max((e.id for e in self._entries), default=0) + 1,
                    name=name,
                    category=category or "",
                    is_custom=True,
                    display_order=len(self._entries) + 1,
                    created_at=self._clock.now(),
                    **attrs,
                )
            except (PydanticValidationError, TypeError) as exc:
                raise ValidationError(f"Invalid {self.kind.value}: {exc}") from exc
            self._persist([*self._entries, entry])
        return entry

    def update(self, entry_id: int, **changes: Any) -> ReferenceEntry:
        locked = sorted(_PROTECTED.intersection(changes))
        if locked:
            raise ValidationError(f"Field cannot be updated: {', '.join(locked)}")
        if "reliability" in changes:
            changes["reliability"] = _clamp_reliability(changes["reliability"])
        if "name" in changes:
            changes["name"] = self._spec.normalize(changes["name"] or "")
            if not changes["name"]:
                raise ValidationError(f"Enter a {self.kind.value} name")

        with self._lock:
            current = self.get(entry_id)
            if current is None:
                raise NotFoundError(self.kind.value, str(entry_id))
            if "name" in changes:
                clash = self.find_by_name(changes["name"])
                if clash is not None and clash.id != entry_id:
                    raise ValidationError(f"{self.kind.value} already exists: {changes['name']}")
            try:
                updated = ReferenceEntry.model_validate(
                    {
                        **current.model_dump(),
                        **changes,
                        "updated_at": self._clock.now(),
                    }
                )
            except PydanticValidationError as exc:
                raise ValidationError(f"Invalid {self.kind.value}: {exc}") from exc
            self._persist([updated if e.id == entry_id else e for e in self._entries])
        return updated

    def remove(self, entry_id: int) -> None:
        """Delete an entry.  Unknown ids are ignored."""
        with self._lock:
            entry = self.get(entry_id)
            if entry is None:
                return
            if self._spec.protect_defaults and not entry.is_custom:
                raise ValidationError(f"Default {self.kind.value} entries cannot be deleted")
            self._persist([e for e in self._entries if e.id != entry_id])

    def reorder(self, entry_ids: Iterable[int]) -> list[ReferenceEntry]:
        """Put the given ids first, in that order; the rest keep their order."""
        now = self._clock.now()
        with self._lock:
            by_id = {e.id: e for e in self._entries}
            ordered = [by_id.pop(i) for i in entry_ids if i in by_id]
            ordered.extend(sorted(by_id.values(), key=lambda e: e.display_order))
            entries = [
                e.model_copy(update={"display_order": n, "updated_at": now})
                for n, e in enumerate(ordered, start=1)
            ]
            self._persist(entries)
        return self.active_entries()

    # -- lookups -------------------------------------------------------------

    def get(self, entry_id: int) -> ReferenceEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def find_by_name(self, name: str) -> ReferenceEntry | None:
        folded = name.strip().casefold()
        for entry in self._entries:
            if entry.name.casefold() == folded:
                return entry
        return None

    def active_entries(self) -> list[ReferenceEntry]:
        return sorted(
            (e for e in self._entries if e.is_active), key=lambda e: e.display_order
        )

    def names(self) -> list[str]:
        return [e.name for e in self.active_entries()]

    def categories(self) -> list[str]:
        return sorted({e.category for e in self._entries if e.category})

    def by_category(self, category: str) -> list[ReferenceEntry]:
        return [e for e in self.active_entries() if e.category == category]

    def search(self, term: str | None) -> list[ReferenceEntry]:
        """Active entries whose name, description or category contains *term*."""
        if not term:
            return self.active_entries()
        needle = term.casefold()
        return [
            e
            for e in self.active_entries()
            if needle in e.name.casefold()
            or needle in e.description.casefold()
            or needle in e.category.casefold()
        ]


# ---------------------------------------------------------------------------
# The three catalogs
# ---------------------------------------------------------------------------

def _seed_currency_pairs() -> list[dict[str, Any]]:
    return [
        {"name": pair, "category": currency_category(pair)}
        for pair in DEFAULT_CURRENCY_PAIRS
    ]


def _seed_timeframes() -> list[dict[str, Any]]:
    return [
        {"name": name, "display_name": display, "minutes": minutes}
        for name, display, minutes in DEFAULT_TIMEFRAMES
    ]


def _seed_patterns() -> list[dict[str, Any]]:
    return [
        {
            "name": name,
            "category": category,
            "description": description,
            "reliability": reliability,
        }
        for name, category, description, reliability in DEFAULT_PATTERNS
    ]


def _upper(name: str) -> str:
    return name.strip().upper()


CURRENCY_PAIRS = CatalogSpec(
    kind=ReferenceKind.CURRENCY_PAIR,
    storage_key=StorageKey.CURRENCY_PAIRS,
    seed=_seed_currency_pairs,
    normalize=_upper,
    categorize=currency_category,
)

TIMEFRAMES = CatalogSpec(
    kind=ReferenceKind.TIMEFRAME,
    storage_key=StorageKey.TIMEFRAMES,
    seed=_seed_timeframes,
    normalize=_upper,
    requires=("display_name", "minutes"),
)

PATTERNS = CatalogSpec(
    kind=ReferenceKind.PATTERN,
    storage_key=StorageKey.PATTERNS,
    seed=_seed_patterns,
    requires=("category",),
    protect_defaults=True,
    default_reliability=3,
)

CATALOG_SPECS = {spec.kind: spec for spec in (CURRENCY_PAIRS, TIMEFRAMES, PATTERNS)}


def open_catalogs(
    kv: KeyValueStore, *, clock: IClock | None = None
) -> dict[ReferenceKind, ReferenceCatalog]:
    """Load (or seed) all three catalogs from *kv*."""
    return {
        kind: ReferenceCatalog(kv, spec, clock=clock)
        for kind, spec in CATALOG_SPECS.items()
    }


@dataclass(frozen=True)
class JournalVocabulary:
    """Active names from each catalog, used to validate new records."""

    currency_pairs: frozenset[str]
    timeframes: frozenset[str]
    patterns: frozenset[str]

    @classmethod
    def from_catalogs(
        cls, catalogs: dict[ReferenceKind, ReferenceCatalog]
    ) -> JournalVocabulary:
        return cls(
            currency_pairs=frozenset(catalogs[ReferenceKind.CURRENCY_PAIR].names()),
            timeframes=frozenset(catalogs[ReferenceKind.TIMEFRAME].names()),
            patterns=frozenset(catalogs[ReferenceKind.PATTERN].names()),
        )
