"""Per-database statistics from pg_stat_database."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
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

SUBSYSTEM = "stat_database"

_LABELS = ("datid", "datname")


def _desc(name: str, help_text: str) -> Desc:
    return Desc(build_fq_name(NAMESPACE, SUBSYSTEM, name), help_text, _LABELS)


NUMBACKENDS = _desc(
    "numbackends",
    "Number of backends currently connected to this database. This is the only column "
    "in this view that returns a value reflecting current state; all other columns "
    "return the accumulated values since the last reset.",
)
XACT_COMMIT = _desc(
    "xact_commit",
    "Number of transactions in this database that have been committed",
)
XACT_ROLLBACK = _desc(
    "xact_rollback",
    "Number of transactions in this database that have been rolled back",
)
BLKS_READ = _desc(
    "blks_read",
    "Number of disk blocks read in this database",
)
BLKS_HIT = _desc(
    "blks_hit",
    "Number of times disk blocks were found already in the buffer cache, so that a "
    "read was not necessary (this only includes hits in the PostgreSQL buffer cache, "
    "not the operating system's file system cache)",
)
TUP_RETURNED = _desc(
    "tup_returned",
    "Number of rows returned by queries in this database",
)
TUP_FETCHED = _desc(
    "tup_fetched",
    "Number of rows fetched by queries in this database",
)
TUP_INSERTED = _desc(
    "tup_inserted",
    "Number of rows inserted by queries in this database",
)
TUP_UPDATED = _desc(
    "tup_updated",
    "Number of rows updated by queries in this database",
)
TUP_DELETED = _desc(
    "tup_deleted",
    "Number of rows deleted by queries in this database",
)
CONFLICTS = _desc(
    "conflicts",
    "Number of queries canceled due to conflicts with recovery in this database. "
    "(Conflicts occur only on standby servers; see pg_stat_database_conflicts for "
    "details.)",
)
TEMP_FILES = _desc(
    "temp_files",
    "Number of temporary files created by queries in this database. All temporary "
    "files are counted, regardless of why the temporary file was created (e.g., "
    "sorting or hashing), and regardless of the log_temp_files setting.",
)
TEMP_BYTES = _desc(
    "temp_bytes",
    "Total amount of data written to temporary files by queries in this database. "
    "All temporary files are counted, regardless of why the temporary file was "
    "created, and regardless of the log_temp_files setting.",
)
DEADLOCKS = _desc(
    "deadlocks",
    "Number of deadlocks detected in this database",
)
BLK_READ_TIME = _desc(
    "blk_read_time",
    "Time spent reading data file blocks by backends in this database, in milliseconds",
)
BLK_WRITE_TIME = _desc(
    "blk_write_time",
    "Time spent writing data file blocks by backends in this database, in milliseconds",
)
STATS_RESET = _desc(
    "stats_reset",
    "Time at which these statistics were last reset",
)
ACTIVE_TIME = _desc(
    "active_time_seconds_total",
    "Time spent executing SQL statements in this database, in seconds",
)

BASE_COLUMNS = (
    "datid",
    "datname",
    "numbackends",
    "xact_commit",
    "xact_rollback",
    "blks_read",
    "blks_hit",
    "tup_returned",
    "tup_fetched",
    "tup_inserted",
    "tup_updated",
    "tup_deleted",
    "conflicts",
    "temp_files",
    "temp_bytes",
    "deadlocks",
    "blk_read_time",
    "blk_write_time",
    "stats_reset",
)

# Numeric columns in emission order with their descriptor and value type.
_NUMERIC = (
    ("numbackends", NUMBACKENDS, ValueType.GAUGE),
    ("xact_commit", XACT_COMMIT, ValueType.COUNTER),
    ("xact_rollback", XACT_ROLLBACK, ValueType.COUNTER),
    ("blks_read", BLKS_READ, ValueType.COUNTER),
    ("blks_hit", BLKS_HIT, ValueType.COUNTER),
    ("tup_returned", TUP_RETURNED, ValueType.COUNTER),
    ("tup_fetched", TUP_FETCHED, ValueType.COUNTER),
    ("tup_inserted", TUP_INSERTED, ValueType.COUNTER),
    ("tup_updated", TUP_UPDATED, ValueType.COUNTER),
    ("tup_deleted", TUP_DELETED, ValueType.COUNTER),
    ("conflicts", CONFLICTS, ValueType.COUNTER),
    ("temp_files", TEMP_FILES, ValueType.COUNTER),
    ("temp_bytes", TEMP_BYTES, ValueType.COUNTER),
    ("deadlocks", DEADLOCKS, ValueType.COUNTER),
    ("blk_read_time", BLK_READ_TIME, ValueType.COUNTER),
    ("blk_write_time", BLK_WRITE_TIME, ValueType.COUNTER),
)


def stat_database_query(columns: Iterable[str]) -> str:
    """The query selecting ``columns`` from pg_stat_database."""
    return f"SELECT {','.join(columns)} FROM pg_stat_database;"


def _as_unix(value: datetime) -> float:
    """Whole seconds since the epoch; naive timestamps are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return float(math.floor(value.timestamp()))


@register_collector(SUBSYSTEM, True)
@dataclass
class PGStatDatabaseCollector:
    """Exposes activity and I/O statistics of every database."""

    log: logging.Logger = LOGGER

    def update(self, instance: Instance) -> Iterator[Metric]:
        active_time_avail = instance.version_at_least("14.0.0")
        columns = list(BASE_COLUMNS)
        if active_time_avail:
            columns.append("active_time")

        for row in instance.query(stat_database_query(columns)):
            values = dict(zip(columns, row))

            missing = next(
                (
                    name
                    for name in columns
                    if name != "stats_reset" and values.get(name) is None
                ),
                None,
            )
            if missing is not None:
                self.log.debug("Skipping collecting metric because it has no %s", missing)
                continue

            stats_reset = values["stats_reset"]
            if stats_reset is None:
                self.log.debug("No metric for stats_reset, will collect 0 instead")
                stats_reset_value = 0.0
            else:
                stats_reset_value = _as_unix(stats_reset)

            labels = (str(values["datid"]), str(values["datname"]))

            for name, desc, value_type in _NUMERIC:
                yield desc.metric(value_type, float(values[name]), *labels)

            yield STATS_RESET.metric(ValueType.COUNTER, stats_reset_value, *labels)

            if active_time_avail:
                yield ACTIVE_TIME.metric(
                    ValueType.COUNTER, float(values["active_time"]) / 1000.0, *labels
                )