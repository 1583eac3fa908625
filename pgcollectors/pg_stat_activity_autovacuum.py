"""Start timestamps of running autovacuum processes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator

from pgcollectors.core import LOGGER, NAMESPACE, Desc, Instance, Metric, ValueType
from pgcollectors.core import build_fq_name, register_collector

SUBSYSTEM = "stat_activity_autovacuum"

STAT_ACTIVITY_AUTOVACUUM_TIMESTAMP = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "timestamp_seconds"),
    "Start timestamp of the vacuum process in seconds",
    ("relname",),
)

STAT_ACTIVITY_AUTOVACUUM_QUERY = """
SELECT
    SPLIT_PART(query, '.', 2) AS relname,
    EXTRACT(EPOCH FROM xact_start) AS timestamp_seconds
FROM
    pg_catalog.pg_stat_activity
WHERE
    query LIKE 'autovacuum:%'
"""


@register_collector(SUBSYSTEM, enabled_by_default=False)
@dataclass
class PGStatActivityAutovacuumCollector:
    """Exposes when each running autovacuum process started."""

    log: logging.Logger = field(default=LOGGER)

    def update(self, instance: Instance) -> Iterator[Metric]:
        for relname, started in instance.query(STAT_ACTIVITY_AUTOVACUUM_QUERY):
            if relname is None or started is None:
                raise TypeError("cannot convert NULL in autovacuum activity row")
            yield STAT_ACTIVITY_AUTOVACUUM_TIMESTAMP.metric(
                ValueType.GAUGE, float(started), relname
            )