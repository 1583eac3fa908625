"""Number of locks per database and lock mode."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator

from pgcollectors.core import (
    LOGGER,
    NAMESPACE,
    Desc,
    Instance,
    Metric,
    ValueType,
    build_fq_name,
    register_collector,
)

SUBSYSTEM = "locks"

LOCK_MODES = (
    "accesssharelock",
    "rowsharelock",
    "rowexclusivelock",
    "shareupdateexclusivelock",
    "sharelock",
    "sharerowexclusivelock",
    "exclusivelock",
    "accessexclusivelock",
    "sireadlock",
)

LOCKS_COUNT = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "count"),
    "Number of locks",
    ("datname", "mode"),
)

_MODE_VALUES = ", ".join(f"('{mode}')" for mode in LOCK_MODES)

LOCKS_QUERY = (
    "SELECT pg_database.datname AS datname, modes.mode AS mode,"
    " COALESCE(held.count, 0) AS count"
    f" FROM (VALUES {_MODE_VALUES}) AS modes(mode)"
    " CROSS JOIN pg_database"
    " LEFT JOIN (SELECT database, lower(mode) AS mode, count(*) AS count"
    " FROM pg_locks WHERE database IS NOT NULL"
    " GROUP BY database, lower(mode)) AS held"
    " ON modes.mode = held.mode AND pg_database.oid = held.database"
    " ORDER BY 1"
)


@register_collector(SUBSYSTEM, True)
@dataclass
class PGLocksCollector:
    """Exposes the number of locks held per database and mode."""

    log: logging.Logger = LOGGER

    def update(self, instance: Instance) -> Iterator[Metric]:
        for datname, mode, count in instance.query(LOCKS_QUERY):
            if datname is None or mode is None:
                continue
            value = 0.0 if count is None else float(int(count))
            yield LOCKS_COUNT.metric(ValueType.GAUGE, value, datname, mode)