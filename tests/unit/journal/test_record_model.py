"""Tests for record field rules and the pydantic models."""

import math
from datetime import datetime, timezone

import pytest

from chance_journal.core.enums import Direction, TradeResult
from chance_journal.core.errors import ValidationError
from chance_journal.journal.record import (
    ChanceRecord,
    RecordFilter,
    RecordPatch,
    check_memo,
    clamp_confidence,
    coerce_model,
    parse_direction,
    parse_trade_result,
)

NOW = datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc)


class TestClampConfidence:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (3, 3),
            (0, 1),
            (-50, 1),
            (99, 5),
            (4.99, 4),
            (1.2, 1),
            ("2", 2),
            (" 5 ", 5),
            ("-3", 1),
            (math.inf, 5),
            (-math.inf, 1),
        ],
    )
    def test_clamps(self, value, expected):
        assert clamp_confidence(value) == expected

    @pytest.mark.parametrize("value", ["high", "", None, True, math.nan, [3]])
    def test_rejects(self, value):
        with pytest.raises(ValidationError, match="between 1 and 5"):
            clamp_confidence(value)


class TestFieldParsers:
    def test_direction(self):
        assert parse_direction("Long") is Direction.LONG
        assert parse_direction("Short") is Direction.SHORT
        with pytest.raises(ValidationError, match="Long or Short"):
            parse_direction("SHORT")

    def test_trade_result(self):
        assert parse_trade_result("Success") is TradeResult.SUCCESS
        assert parse_trade_result(None) is None
        assert parse_trade_result("") is None
        with pytest.raises(ValidationError):
            parse_trade_result("Win")

    def test_memo_measured_before_trimming(self):
        with pytest.raises(ValidationError):
            check_memo(" " + "x" * 200)
        assert check_memo("  ok  ") == "ok"


class TestChanceRecord:
    def _record(self, **overrides):
        data = dict(
            id="abc",
            currency_pair="EUR/USD",
            timeframe="4H",
            pattern="Flag",
            direction=Direction.LONG,
            created_at=NOW,
            updated_at=NOW,
        )
        data.update(overrides)
        return ChanceRecord(**data)

    def test_document_uses_camel_case(self):
        doc = self._record(trade_result=TradeResult.FAILURE).to_document()
        assert set(doc) == {
            "id", "currencyPair", "timeframe", "pattern", "direction", "confidence",
            "memo", "chartUrl", "tradeExecuted", "tradeResult", "createdAt", "updatedAt",
        }
        assert doc["direction"] == "Long"
        assert doc["tradeResult"] == "Failure"
        assert doc["confidence"] == 3

    def test_parses_at_rest_document(self):
        record = self._record()
        assert ChanceRecord.model_validate(record.to_document()) == record

    def test_is_frozen(self):
        record = self._record()
        with pytest.raises(Exception):
            record.confidence = 5

    def test_confidence_range_enforced_on_load(self):
        with pytest.raises(Exception):
            self._record(confidence=9)


class TestRecordFilter:
    def _record(self, **overrides):
        data = dict(
            id="abc",
            currency_pair="EUR/USD",
            timeframe="4H",
            pattern="Flag",
            direction="Long",
            confidence=3,
            created_at=NOW,
            updated_at=NOW,
        )
        data.update(overrides)
        return ChanceRecord(**data)

    def test_blank_strings_become_unset(self):
        criteria = RecordFilter.model_validate({"currencyPair": "", "minConfidence": "", "tradeExecuted": ""})
        assert criteria.is_empty
        assert criteria.matches(self._record())

    def test_unknown_keys_are_ignored(self):
        assert RecordFilter.model_validate({"sortBy": "date"}).is_empty

    def test_direction_matches_enum_value(self):
        assert RecordFilter(direction="Long").matches(self._record())
        assert not RecordFilter(direction="Short").matches(self._record())

    def test_trade_executed_false(self):
        criteria = RecordFilter(trade_executed=False)
        assert not criteria.is_empty
        assert criteria.matches(self._record())
        assert not criteria.matches(self._record(trade_executed=True))

    def test_min_confidence(self):
        assert RecordFilter(min_confidence=3).matches(self._record(confidence=3))
        assert not RecordFilter(min_confidence=4).matches(self._record(confidence=3))


class TestRecordPatch:
    def test_changes_contains_only_set_fields(self):
        patch = RecordPatch.model_validate({"tradeExecuted": True, "memo": None})
        assert patch.changes() == {"trade_executed": True, "memo": None}

    def test_coerce_rejects_unknown_fields(self):
        with pytest.raises(ValidationError, match="Invalid value for"):
            coerce_model(RecordPatch, {"stopLoss": 1.5})

    def test_coerce_passes_instances_through(self):
        patch = RecordPatch(memo="x")
        assert coerce_model(RecordPatch, patch) is patch
