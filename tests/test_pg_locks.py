from unittest.mock import MagicMock, call

import pytest

from pgcollectors.core import Instance, ValueType, registered_collectors
from pgcollectors.pg_locks import LOCKS_QUERY, PGLocksCollector


def run_locks(rows):
    conn = MagicMock()
    conn.cursor.return_value.fetchone.side_effect = [*rows, None]
    metrics = list(PGLocksCollector().update(Instance(conn)))
    assert conn.cursor.return_value.execute.call_args_list == [call(LOCKS_QUERY)]
    return metrics


@pytest.mark.parametrize(
    "rows, expected",
    [
        (
            [("test", "exclusivelock", 42)],
            [({"datname": "test", "mode": "exclusivelock"}, 42)],
        ),
        (
            [(None, "sharelock", 3), ("test", None, 3), ("test", "sharelock", None)],
            [({"datname": "test", "mode": "sharelock"}, 0)],
        ),
    ],
)
def test_pg_locks_collector(rows, expected):
    metrics = run_locks(rows)
    assert [(m.label_map(), m.value) for m in metrics] == expected
    assert {m.value_type for m in metrics} == {ValueType.GAUGE}


def test_pg_locks_metric_name():
    (metric,) = run_locks([("test", "exclusivelock", 42)])
    assert (metric.desc.fq_name, metric.desc.help) == ("pg_locks_count", "Number of locks")


def test_pg_locks_registered_enabled():
    entry = registered_collectors()["locks"]
    assert (entry.factory, entry.enabled_by_default) == (PGLocksCollector, True)


def test_pg_locks_query_error_propagates():
    failing = MagicMock()
    failing.cursor.side_effect = RuntimeError("boom")
    with pytest.raises(RuntimeError):
        list(PGLocksCollector().update(Instance(failing)))