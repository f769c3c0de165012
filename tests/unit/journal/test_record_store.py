"""Tests for RecordStore mutations — validation, clamping, persistence."""

import json
from datetime import timezone

import pytest

from chance_journal.core.enums import Direction, TradeResult
from chance_journal.core.errors import NotFoundError, PersistenceError, ValidationError
from chance_journal.journal.record import RecordInput, RecordPatch
from chance_journal.journal.store import RecordStore


class TestAdd:
    def test_add_returns_stamped_record(self, record_store, make_input, sim_clock):
        record = record_store.add(make_input())

        assert record.id
        assert record.currency_pair == "USD/JPY"
        assert record.direction == Direction.SHORT
        assert record.confidence == 4
        assert record.trade_executed is False
        assert record.trade_result is None
        assert record.created_at == sim_clock.now()
        assert record.updated_at == record.created_at
        assert len(record_store) == 1

    def test_add_accepts_model_and_camel_case(self, record_store):
        record = record_store.add(
            RecordInput(currencyPair="EUR/USD", timeframe="4H", pattern="Flag", direction="Long")
        )
        assert record.currency_pair == "EUR/USD"

    def test_ids_are_unique(self, record_store, make_input):
        ids = {record_store.add(make_input()).id for _ in range(20)}
        assert len(ids) == 20

    def test_confidence_defaults_to_three(self, record_store, make_input):
        data = make_input()
        del data["confidence"]
        assert record_store.add(data).confidence == 3

    @pytest.mark.parametrize(
        "given, stored",
        [(10, 5), (-1, 1), (0, 1), (6, 5), (1, 1), (5, 5), ("4", 4), ("4.7", 4), (2.9, 2)],
    )
    def test_confidence_is_clamped(self, record_store, make_input, given, stored):
        assert record_store.add(make_input(confidence=given)).confidence == stored

    def test_non_numeric_confidence_rejected(self, record_store, make_input):
        with pytest.raises(ValidationError, match="Confidence"):
            record_store.add(make_input(confidence="high"))
        assert len(record_store) == 0

    @pytest.mark.parametrize("field", ["currency_pair", "timeframe", "pattern", "direction"])
    def test_missing_required_field_rejected(self, record_store, make_input, field):
        data = make_input()
        del data[field]
        with pytest.raises(ValidationError, match="Missing required field"):
            record_store.add(data)
        assert len(record_store) == 0

    @pytest.mark.parametrize("field", ["currency_pair", "timeframe", "pattern"])
    def test_blank_required_field_rejected(self, record_store, make_input, field):
        with pytest.raises(ValidationError):
            record_store.add(make_input(**{field: "   "}))
        assert len(record_store) == 0

    @pytest.mark.parametrize("direction", ["Diagonal", "long", "Buy", ""])
    def test_invalid_direction_rejected(self, record_store, make_input, direction):
        with pytest.raises(ValidationError):
            record_store.add(make_input(direction=direction))
        assert len(record_store) == 0

    def test_memo_limit(self, record_store, make_input):
        with pytest.raises(ValidationError, match="200"):
            record_store.add(make_input(memo="x" * 201))
        assert len(record_store) == 0

        record = record_store.add(make_input(memo="x" * 200))
        assert len(record.memo) == 200

    def test_memo_and_chart_url_are_trimmed(self, record_store, make_input):
        record = record_store.add(
            make_input(memo="  breakout retest  ", chart_url=" https://example.com/c.png ")
        )
        assert record.memo == "breakout retest"
        assert record.chart_url == "https://example.com/c.png"

    def test_wrong_type_reported_as_validation_error(self, record_store, make_input):
        with pytest.raises(ValidationError, match="memo"):
            record_store.add(make_input(memo=["not", "a", "string"]))


class TestUpdate:
    def test_merge_only_provided_fields(self, record_store, add_record):
        record = add_record()
        updated = record_store.update(record.id, {"trade_executed": True})

        assert updated.trade_executed is True
        assert updated.memo == record.memo
        assert updated.confidence == record.confidence
        assert updated.created_at == record.created_at
        assert record_store.get(record.id) == updated

    def test_confidence_reclamped_and_updated_at_refreshed(self, record_store, add_record):
        record = add_record()
        updated = record_store.update(record.id, {"confidence": 7})

        assert updated.confidence == 5
        assert updated.updated_at > record.updated_at

    def test_accepts_patch_model(self, record_store, add_record):
        record = add_record()
        updated = record_store.update(
            record.id, RecordPatch(tradeExecuted=True, tradeResult="Success")
        )
        assert updated.trade_result == TradeResult.SUCCESS

    def test_trade_result_can_be_cleared(self, record_store, add_record):
        record = add_record()
        record_store.update(record.id, {"trade_executed": True, "trade_result": "Failure"})
        cleared = record_store.update(record.id, {"trade_result": None})
        assert cleared.trade_result is None

    def test_unknown_id_rejected(self, record_store, add_record):
        add_record()
        with pytest.raises(NotFoundError):
            record_store.update("missing", {"memo": "x"})

    def test_long_memo_rejects_whole_update(self, record_store, add_record):
        record = add_record()
        with pytest.raises(ValidationError):
            record_store.update(record.id, {"confidence": 1, "memo": "y" * 201})
        assert record_store.get(record.id) == record

    def test_invalid_direction_rejected(self, record_store, add_record):
        record = add_record()
        with pytest.raises(ValidationError):
            record_store.update(record.id, {"direction": "Sideways"})
        assert record_store.get(record.id).direction == Direction.SHORT

    def test_invalid_trade_result_rejected(self, record_store, add_record):
        record = add_record()
        with pytest.raises(ValidationError, match="Success or Failure"):
            record_store.update(record.id, {"trade_result": "Draw"})

    def test_required_field_cannot_be_blanked(self, record_store, add_record):
        record = add_record()
        with pytest.raises(ValidationError):
            record_store.update(record.id, {"pattern": ""})

    @pytest.mark.parametrize("field", ["id", "created_at", "createdAt", "updatedAt"])
    def test_immutable_fields_rejected(self, record_store, add_record, field):
        record = add_record()
        with pytest.raises(ValidationError, match="cannot be updated"):
            record_store.update(record.id, {field: "x"})

    def test_unknown_field_rejected(self, record_store, add_record):
        record = add_record()
        with pytest.raises(ValidationError):
            record_store.update(record.id, {"stop_loss": 1.2})


class TestRemove:
    def test_remove_existing(self, record_store, add_record):
        keep = add_record()
        gone = add_record()
        record_store.remove(gone.id)
        assert [r.id for r in record_store.records] == [keep.id]

    def test_remove_unknown_is_silent(self, record_store, add_record, kv):
        add_record()
        writes = kv.writes
        record_store.remove("does-not-exist")
        assert len(record_store) == 1
        assert kv.writes == writes


class TestPersistence:
    def test_every_mutation_is_written(self, record_store, add_record, kv):
        record = add_record()
        record_store.update(record.id, {"memo": "updated"})
        stored = json.loads(kv.get("records"))
        assert stored[0]["memo"] == "updated"
        assert stored[0]["currencyPair"] == "USD/JPY"
        assert stored[0]["tradeResult"] is None

    def test_round_trip_is_lossless(self, record_store, add_record, kv, sim_clock):
        first = add_record(memo="first")
        add_record(direction="Long", confidence=2, chart_url="https://x.test/1")
        record_store.update(first.id, {"trade_executed": True, "trade_result": "Success"})

        reloaded = RecordStore(kv, clock=sim_clock)
        assert reloaded.records == record_store.records
        assert reloaded.records[0].created_at.tzinfo is not None

    def test_failed_write_leaves_memory_unchanged(self, record_store, add_record, kv, make_input):
        record = add_record()
        kv.fail_writes = True

        with pytest.raises(PersistenceError):
            record_store.add(make_input(currency_pair="EUR/USD"))
        with pytest.raises(PersistenceError):
            record_store.update(record.id, {"confidence": 1})
        with pytest.raises(PersistenceError):
            record_store.remove(record.id)

        assert record_store.records == [record]
        assert isinstance(record_store.last_error, PersistenceError)

    def test_successful_write_clears_error(self, record_store, make_input, kv):
        kv.fail_writes = True
        with pytest.raises(PersistenceError):
            record_store.add(make_input())
        kv.fail_writes = False
        record_store.add(make_input())
        assert record_store.last_error is None

    def test_quota_exceeded_is_persistence_error(self, sim_clock, make_input):
        from chance_journal.storage.kv import InMemoryKeyValueStore

        store = RecordStore(InMemoryKeyValueStore(quota_bytes=600), clock=sim_clock)
        store.add(make_input())
        with pytest.raises(PersistenceError, match="quota"):
            for _ in range(10):
                store.add(make_input())
        assert 1 <= len(store) < 10


class TestLoad:
    def test_empty_storage_loads_empty(self, record_store):
        assert record_store.records == []
        assert record_store.last_error is None

    def test_corrupt_data_degrades_to_empty(self, kv, sim_clock, make_input):
        kv.set("records", "{not json")
        store = RecordStore(kv, clock=sim_clock)

        assert store.records == []
        assert isinstance(store.last_error, PersistenceError)
        # Still usable.
        store.add(make_input())
        assert len(store) == 1

    def test_invalid_record_shape_degrades_to_empty(self, kv, sim_clock):
        kv.set("records", json.dumps([{"id": "1", "direction": "Diagonal"}]))
        store = RecordStore(kv, clock=sim_clock)
        assert store.records == []
        assert store.last_error is not None

    def test_read_failure_degrades_to_empty(self, kv, sim_clock):
        kv.fail_reads = True
        store = RecordStore(kv, clock=sim_clock)
        assert store.records == []
        assert "storage disabled" in str(store.last_error)

    def test_reload_picks_up_external_changes(self, record_store, kv, sim_clock, make_input):
        other = RecordStore(kv, clock=sim_clock)
        other.add(make_input())
        assert len(record_store) == 0
        record_store.load()
        assert len(record_store) == 1

    def test_timestamps_are_utc_aware(self, record_store, make_input):
        record = record_store.add(make_input())
        assert record.created_at.tzinfo == timezone.utc
