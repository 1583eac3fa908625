from unittest.mock import MagicMock

import pytest

from pgcollectors.core import Instance, ValueType, registered_collectors
from pgcollectors.pg_replication_slot import (
    REPLICATION_SLOT_NEW_QUERY,
    REPLICATION_SLOT_QUERY,
    PGReplicationSlotCollector,
)

SLOT = {"slot_name": "test_slot", "slot_type": "physical"}
UNKNOWN = {"slot_name": "unknown", "slot_type": "unknown"}
GAUGE = ValueType.GAUGE


def slot_scrape(rows, version="13.3.7"):
    link = MagicMock()
    link.cursor.return_value.fetchone.side_effect = [*rows, None]
    metrics = list(PGReplicationSlotCollector().update(Instance(link, version)))
    return link.cursor.return_value, metrics


@pytest.mark.parametrize(
    "row, expected",
    [
        (
            ("test_slot", "physical", 5, 3, True, 323906992, "reserved"),
            [(SLOT, 5.0), (SLOT, 3.0), (SLOT, 1.0), (SLOT, 323906992.0),
             ({**SLOT, "wal_status": "reserved"}, 1.0)],
        ),
        (
            ("test_slot", "physical", 6, 12, False, -4000, "extended"),
            [(SLOT, 6.0), (SLOT, 0.0), (SLOT, -4000.0),
             ({**SLOT, "wal_status": "extended"}, 1.0)],
        ),
        (
            ("test_slot", "physical", 6, 12, None, None, "lost"),
            [(SLOT, 6.0), (SLOT, 0.0), ({**SLOT, "wal_status": "lost"}, 1.0)],
        ),
        (
            (None, None, None, None, True, None, None),
            [(UNKNOWN, 0.0), (UNKNOWN, 0.0), (UNKNOWN, 1.0)],
        ),
    ],
)
def test_slot_metrics(row, expected):
    cursor, metrics = slot_scrape([row])
    cursor.execute.assert_called_once_with(REPLICATION_SLOT_NEW_QUERY)
    assert [(m.label_map(), m.value) for m in metrics] == expected
    assert all(m.value_type is GAUGE for m in metrics)


def test_old_server_uses_short_query():
    cursor, metrics = slot_scrape([("test_slot", "logical", 7, 4, True)], version="12.9.0")
    cursor.execute.assert_called_once_with(REPLICATION_SLOT_QUERY)
    logical = {"slot_name": "test_slot", "slot_type": "logical"}
    assert [(m.label_map(), m.value) for m in metrics] == [
        (logical, 7.0),
        (logical, 4.0),
        (logical, 1.0),
    ]


def test_metric_names():
    _, metrics = slot_scrape([("s", "physical", 1, 2, True, 3, "reserved")], "13.0.0")
    assert [m.desc.fq_name for m in metrics] == [
        "pg_replication_slot_slot_current_wal_lsn",
        "pg_replication_slot_slot_confirmed_flush_lsn",
        "pg_replication_slot_slot_is_active",
        "pg_replication_slot_safe_wal_size_bytes",
        "pg_replication_slot_wal_status",
    ]


def test_no_rows_yields_nothing_and_closes_cursor():
    cursor, metrics = slot_scrape([])
    assert metrics == []
    assert cursor.close.call_count == 1


def test_wrong_row_shape_raises():
    with pytest.raises(ValueError):
        slot_scrape([("test_slot", "physical", 5, 3, True)])


def test_registered_enabled():
    assert registered_collectors()["replication_slot"].enabled_by_default is True