"""Replication lag and replica status."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from pgcollectors.core import (
    NAMESPACE,
    Desc,
    Instance,
    Metric,
    ValueType,
    build_fq_name,
    register_collector,
)

SUBSYSTEM = "replication"

REPLICATION_LAG = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "lag_seconds"),
    "Replication lag behind master in seconds",
)
REPLICATION_IS_REPLICA = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "is_replica"),
    "Indicates if the server is a replica",
)
REPLICATION_LAST_REPLAY = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "last_replay_seconds"),
    "Age of last replay in seconds",
)

_REPLAY_AGE = "greatest(0, extract(epoch FROM (now() - pg_last_xact_replay_timestamp())))"

REPLICATION_QUERY = (
    "SELECT CASE WHEN NOT pg_is_in_recovery() THEN 0"
    " WHEN pg_last_wal_receive_lsn() = pg_last_wal_replay_lsn() THEN 0"
    f" ELSE {_REPLAY_AGE} END AS lag,"
    " CASE WHEN pg_is_in_recovery() THEN 1 ELSE 0 END AS is_replica,"
    f" {_REPLAY_AGE} AS last_replay"
)


@register_collector(SUBSYSTEM, True)
@dataclass
class PGReplicationCollector:
    """Exposes replication lag, replica status and last replay age."""

    def update(self, instance: Instance) -> Iterator[Metric]:
        lag, is_replica, replay_age = instance.query_row(REPLICATION_QUERY)
        lag, is_replica, replay_age = float(lag), int(is_replica), float(replay_age)
        yield REPLICATION_LAG.metric(ValueType.GAUGE, lag)
        yield REPLICATION_IS_REPLICA.metric(ValueType.GAUGE, float(is_replica))
        yield REPLICATION_LAST_REPLAY.metric(ValueType.GAUGE, replay_age)