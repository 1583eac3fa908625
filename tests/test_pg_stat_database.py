import logging
from datetime import datetime, timedelta, timezone

import pytest

from pgcollectors.core import Instance, ValueType
from pgcollectors.pg_stat_database import (
    BASE_COLUMNS,
    PGStatDatabaseCollector,
    stat_database_query,
)

COLUMNS_14 = list(BASE_COLUMNS) + ["active_time"]

STATS_RESET = datetime(2023, 5, 25, 17, 10, 42, 811320, tzinfo=timezone(timedelta(hours=-7)))

LABELS = {"datid": "pid", "datname": "postgres"}


class FakeCursor:
    def __init__(self, rows, executed):
        self._rows = iter(rows)
        self._executed = executed

    def execute(self, sql):
        self._executed.append(sql)

    def fetchone(self):
        return next(self._rows, None)

    def close(self):
        pass


class FakeConnection:
    def __init__(self, rows):
        self.rows = rows
        self.executed = []

    def cursor(self):
        return FakeCursor(self.rows, self.executed)


def results(metrics):
    return [(m.label_map(), m.value_type, m.value) for m in metrics]


def full_row(active_time, stats_reset=STATS_RESET):
    return (
        "pid", "postgres", 354, 4945, 289097744, 1242257, 3275602074, 89320867,
        450139, 2034563757, 0, 2725688749, 23, 52, 74, 925, 16, 823,
        stats_reset, active_time,
    )


def expected_values(values):
    first, *rest = values
    out = [(LABELS, ValueType.GAUGE, first)]
    out.extend((LABELS, ValueType.COUNTER, v) for v in rest)
    return out


FIRST_VALUES = [
    354, 4945, 289097744, 1242257, 3275602074, 89320867, 450139, 2034563757,
    0, 2725688749, 23, 52, 74, 925, 16, 823,
]


def run(rows, version="14.0.0"):
    connection = FakeConnection(rows)
    instance = Instance(connection, version)
    metrics = list(PGStatDatabaseCollector().update(instance))
    return connection, metrics


def test_stat_database_query():
    assert stat_database_query(["datid", "datname"]) == "SELECT datid,datname FROM pg_stat_database;"


def test_collector():
    connection, metrics = run([full_row(33)])
    assert connection.executed == [stat_database_query(COLUMNS_14)]
    assert results(metrics) == expected_values(FIRST_VALUES + [1685059842, 0.033])


def test_collector_null_values():
    null_datid = (None,) + full_row(32)[1:]
    _, metrics = run([null_datid, full_row(32)])
    assert results(metrics) == expected_values(FIRST_VALUES + [1685059842, 0.032])


def test_collector_row_leak():
    second = (
        "pid", "postgres", 355, 4946, 289097745, 1242258, 3275602075, 89320868,
        450140, 2034563758, 1, 2725688750, 24, 53, 75, 926, 17, 824, STATS_RESET, 15,
    )
    _, metrics = run([full_row(14), (None,) * 20, second])
    second_values = [
        355, 4946, 289097745, 1242258, 3275602075, 89320868, 450140, 2034563758,
        1, 2725688750, 24, 53, 75, 926, 17, 824,
    ]
    assert results(metrics) == (
        expected_values(FIRST_VALUES + [1685059842, 0.014])
        + expected_values(second_values + [1685059842, 0.015])
    )


def test_collector_nil_stat_reset():
    _, metrics = run([full_row(7, stats_reset=None)])
    assert results(metrics) == expected_values(FIRST_VALUES + [0, 0.007])


def test_before_14_has_no_active_time():
    row = full_row(0)[:-1]
    connection, metrics = run([row], version="13.2.0")
    assert connection.executed == [stat_database_query(BASE_COLUMNS)]
    assert results(metrics) == expected_values(FIRST_VALUES + [1685059842])


def test_metric_names():
    _, metrics = run([full_row(33)])
    names = [m.desc.fq_name for m in metrics]
    assert names[0] == "pg_stat_database_numbackends"
    assert names[-2] == "pg_stat_database_stats_reset"
    assert names[-1] == "pg_stat_database_active_time_seconds_total"


def test_skipped_row_is_logged(caplog):
    caplog.set_level(logging.DEBUG, logger="pgcollectors")
    row = full_row(5)[:2] + (None,) + full_row(5)[3:]
    _, metrics = run([row])
    assert metrics == []
    assert "Skipping collecting metric because it has no numbackends" in caplog.text


@pytest.mark.parametrize("missing_index", [16, 17, 19])
def test_row_missing_a_value_is_skipped(missing_index):
    row = list(full_row(5))
    row[missing_index] = None
    _, metrics = run([tuple(row), full_row(9)])
    assert len(metrics) == 18
    assert metrics[-1].value == 0.009


def test_no_rows_gives_no_metrics():
    connection, metrics = run([])
    assert metrics == []
    assert len(connection.executed) == 1