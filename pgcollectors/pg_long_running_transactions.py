"""Count and age of the oldest long running transactions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator

from pgcollectors import core

SUBSYSTEM = "long_running_transactions"

LONG_RUNNING_TRANSACTIONS_COUNT = core.Desc(
    "pg_long_running_transactions",
    "Current number of long running transactions",
)

LONG_RUNNING_TRANSACTIONS_AGE = core.Desc(
    core.build_fq_name(core.NAMESPACE, SUBSYSTEM, "oldest_timestamp_seconds"),
    "The current maximum transaction age in seconds",
)

LONG_RUNNING_TRANSACTIONS_QUERY = (
    "SELECT count(*) AS transactions,"
    " max(extract(epoch FROM clock_timestamp() - act.xact_start))"
    " AS oldest_timestamp_seconds"
    " FROM pg_catalog.pg_stat_activity AS act"
    " WHERE act.state IS DISTINCT FROM 'idle'"
    " AND act.query NOT LIKE 'autovacuum:%'"
    " AND act.xact_start IS NOT NULL"
)


@core.register_collector(SUBSYSTEM, False)
@dataclass
class PGLongRunningTransactionsCollector:
    """Exposes how many transactions are running and the age of the oldest."""

    log: logging.Logger = field(default=core.LOGGER)

    def update(self, instance: core.Instance) -> Iterator[core.Metric]:
        gauge = core.ValueType.GAUGE
        for transactions, age_seconds in instance.query(LONG_RUNNING_TRANSACTIONS_QUERY):
            yield LONG_RUNNING_TRANSACTIONS_COUNT.metric(gauge, float(transactions))
            yield LONG_RUNNING_TRANSACTIONS_AGE.metric(gauge, float(age_seconds))