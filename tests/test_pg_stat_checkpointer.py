import logging
from datetime import datetime, timedelta, timezone

import pytest

from pgcollectors.core import Instance, ValueType, registered_collectors
from pgcollectors.pg_stat_checkpointer import (
    NUM_TIMED,
    STAT_CHECKPOINTER_QUERY,
    STATS_RESET,
    PGStatCheckpointerCollector,
)


class FakeCursor:
    def __init__(self, connection):
        self.connection = connection
        self.rows = []

    def execute(self, sql):
        self.connection.queries.append(sql)
        self.rows = list(self.connection.rows)

    def fetchone(self):
        return self.rows.pop(0) if self.rows else None

    def close(self):
        pass


class FakeConnection:
    def __init__(self, rows):
        self.rows = rows
        self.queries = []

    def cursor(self):
        return FakeCursor(self)


STATS_RESET_TIME = datetime(
    2023, 5, 25, 17, 10, 42, 811320, tzinfo=timezone(timedelta(hours=-7))
)


def test_collects_metrics():
    conn = FakeConnection(
        [
            (
                354, 4945, 289097744, 1242257, 3275602074, 89320867, 450139,
                2034563757, STATS_RESET_TIME,
            )
        ]
    )
    metrics = list(PGStatCheckpointerCollector().update(Instance(conn, "17.0.0")))
    assert conn.queries == [STAT_CHECKPOINTER_QUERY]
    assert [m.value for m in metrics] == [
        354, 4945, 289097744, 1242257, 3275602074, 89320867, 450139,
        2034563757, 1685059842,
    ]
    assert all(m.value_type is ValueType.COUNTER for m in metrics)
    assert all(m.label_map() == {} for m in metrics)
    assert metrics[0].desc is NUM_TIMED
    assert metrics[-1].desc is STATS_RESET


def test_null_values():
    conn = FakeConnection([(None,) * 9])
    metrics = list(PGStatCheckpointerCollector().update(Instance(conn, "17.0.0")))
    assert [m.value for m in metrics] == [0.0] * 9
    assert all(m.value_type is ValueType.COUNTER for m in metrics)


def test_skipped_before_17(caplog):
    conn = FakeConnection([(1,) * 9])
    with caplog.at_level(logging.WARNING, logger="pgcollectors"):
        metrics = list(PGStatCheckpointerCollector().update(Instance(conn, "16.4.0")))
    assert metrics == []
    assert conn.queries == []
    assert "not available" in caplog.text


def test_no_row_raises():
    conn = FakeConnection([])
    with pytest.raises(LookupError):
        list(PGStatCheckpointerCollector().update(Instance(conn, "17.1.0")))


def test_metric_names():
    conn = FakeConnection([(1, 2, 3, 4, 5, 6.0, 7.0, 8, STATS_RESET_TIME)])
    metrics = list(PGStatCheckpointerCollector().update(Instance(conn, "17.0.0")))
    assert [m.desc.fq_name for m in metrics] == [
        "pg_stat_checkpointer_num_timed_total",
        "pg_stat_checkpointer_num_requested_total",
        "pg_stat_checkpointer_restartpoints_timed_total",
        "pg_stat_checkpointer_restartpoints_req_total",
        "pg_stat_checkpointer_restartpoints_done_total",
        "pg_stat_checkpointer_write_time_total",
        "pg_stat_checkpointer_sync_time_total",
        "pg_stat_checkpointer_buffers_written_total",
        "pg_stat_checkpointer_stats_reset_total",
    ]


def test_registered_disabled():
    registration = registered_collectors()["stat_checkpointer"]
    assert registration.factory is PGStatCheckpointerCollector
    assert registration.enabled_by_default is False