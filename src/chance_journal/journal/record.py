"""Trade-opportunity record — the core data model.

A :class:`ChanceRecord` captures one setup the user spotted: which pair,
on which timeframe, which chart pattern, which way, and how convinced
they were.  Later the user marks whether the trade was taken and how it
ended.

Field names are snake_case in Python; the persisted document uses the
camelCase aliases (``currencyPair``, ``tradeExecuted``, ``createdAt`` ...).
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from chance_journal.core.enums import Direction, TradeResult
from chance_journal.core.errors import ValidationError

MIN_CONFIDENCE = 1
MAX_CONFIDENCE = 5
DEFAULT_CONFIDENCE = 3
MEMO_MAX_LENGTH = 200

# Fields a caller may never overwrite through an update.
IMMUTABLE_FIELDS = frozenset({"id", "created_at", "createdAt", "updated_at", "updatedAt"})

REQUIRED_FIELDS = ("currency_pair", "timeframe", "pattern", "direction")


class ChanceRecord(BaseModel):
    """One logged trading opportunity."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: str
    currency_pair: str = Field(min_length=1)
    timeframe: str = Field(min_length=1)
    pattern: str = Field(min_length=1)
    direction: Direction
    confidence: int = Field(default=DEFAULT_CONFIDENCE, ge=MIN_CONFIDENCE, le=MAX_CONFIDENCE)
    memo: str = ""
    chart_url: str = ""
    trade_executed: bool = False
    trade_result: TradeResult | None = None
    created_at: datetime
    updated_at: datetime

    def to_document(self) -> dict[str, Any]:
        """JSON-ready dict using the at-rest (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)


RECORD_LIST = TypeAdapter(list[ChanceRecord])


class RecordInput(BaseModel):
    """Caller-supplied fields for a new record.

    Everything is optional at this level; the store decides what is
    missing so it can report it as a journal validation error.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    currency_pair: str | None = None
    timeframe: str | None = None
    pattern: str | None = None
    direction: str | None = None
    confidence: Any = None
    memo: str | None = None
    chart_url: str | None = None


class RecordPatch(BaseModel):
    """Partial update.  Only fields explicitly set are applied."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )

    currency_pair: str | None = None
    timeframe: str | None = None
    pattern: str | None = None
    direction: str | None = None
    confidence: Any = None
    memo: str | None = None
    chart_url: str | None = None
    trade_executed: bool | None = None
    trade_result: str | None = None

    def changes(self) -> dict[str, Any]:
        """Explicitly provided fields, keyed by field name."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class RecordFilter(BaseModel):
    """Criteria for :meth:`RecordStore.query`.  All provided criteria must match.

    ``None`` and ``""`` mean "no criterion".  ``trade_executed=False`` is a
    real criterion, distinct from leaving it unset.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    currency_pair: str | None = None
    timeframe: str | None = None
    pattern: str | None = None
    direction: str | None = None
    min_confidence: int | None = None
    trade_executed: bool | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_unset(cls, v: Any) -> Any:
        if isinstance(v, str) and v == "":
            return None
        return v

    @property
    def is_empty(self) -> bool:
        return (
            not self.currency_pair
            and not self.timeframe
            and not self.pattern
            and not self.direction
            and not self.min_confidence
            and self.trade_executed is None
        )

    def matches(self, record: ChanceRecord) -> bool:
        if self.currency_pair and record.currency_pair != self.currency_pair:
            return False
        if self.timeframe and record.timeframe != self.timeframe:
            return False
        if self.pattern and record.pattern != self.pattern:
            return False
        if self.direction and record.direction != self.direction:
            return False
        if self.min_confidence and record.confidence < self.min_confidence:
            return False
        if self.trade_executed is not None and record.trade_executed != self.trade_executed:
            return False
        return True


# ---------------------------------------------------------------------------
# Field rules shared by add and update
# ---------------------------------------------------------------------------

def clamp_confidence(value: Any) -> int:
    """Coerce *value* to an integer in [1, 5].

    Strings and floats are truncated toward zero (``"4.7"`` → 4) before
    clamping.  Out-of-range numbers are clamped, not rejected.
    """
    if isinstance(value, bool):
        raise ValidationError("Confidence must be a number between 1 and 5")
    try:
        number = float(value.strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Confidence must be a number between 1 and 5") from exc
    if math.isnan(number):
        raise ValidationError("Confidence must be a number between 1 and 5")
    if math.isinf(number):
        return MAX_CONFIDENCE if number > 0 else MIN_CONFIDENCE
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, int(number)))


def parse_direction(value: Any) -> Direction:
    try:
        return Direction(value)
    except ValueError as exc:
        raise ValidationError("Direction must be Long or Short") from exc


def parse_trade_result(value: Any) -> TradeResult | None:
    if value is None or value == "":
        return None
    try:
        return TradeResult(value)
    except ValueError as exc:
        raise ValidationError("Trade result must be Success or Failure") from exc


def check_memo(memo: str) -> str:
    """Reject memos over the limit (measured as typed), return it trimmed."""
    if len(memo) > MEMO_MAX_LENGTH:
        raise ValidationError(f"Memo must be {MEMO_MAX_LENGTH} characters or fewer")
    return memo.strip()


def coerce_model(model_cls: type[BaseModel], data: BaseModel | Mapping[str, Any]) -> Any:
    """Build *model_cls* from a mapping, reporting bad input as a journal error."""
    if isinstance(data, model_cls):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return model_cls.model_validate(dict(data))
    except PydanticValidationError as exc:
        fields = ", ".join(
            ".".join(str(p) for p in err["loc"]) or "input" for err in exc.errors()
        )
        raise ValidationError(f"Invalid value for: {fields}") from exc
