"""Background writer statistics."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterator

from pgcollectors import core

SUBSYSTEM = "stat_bgwriter"


def _desc(name: str, help_text: str) -> core.Desc:
    return core.Desc(core.build_fq_name(core.NAMESPACE, SUBSYSTEM, name), help_text)


CHECKPOINTS_TIMED = _desc(
    "checkpoints_timed_total",
    "Number of scheduled checkpoints that have been performed",
)
CHECKPOINTS_REQ = _desc(
    "checkpoints_req_total",
    "Number of requested checkpoints that have been performed",
)
CHECKPOINT_WRITE_TIME = _desc(
    "checkpoint_write_time_total",
    "Total amount of time that has been spent in the portion of checkpoint processing "
    "where files are written to disk, in milliseconds",
)
CHECKPOINT_SYNC_TIME = _desc(
    "checkpoint_sync_time_total",
    "Total amount of time that has been spent in the portion of checkpoint processing "
    "where files are synchronized to disk, in milliseconds",
)
BUFFERS_CHECKPOINT = _desc(
    "buffers_checkpoint_total",
    "Number of buffers written during checkpoints",
)
BUFFERS_CLEAN = _desc(
    "buffers_clean_total",
    "Number of buffers written by the background writer",
)
MAXWRITTEN_CLEAN = _desc(
    "maxwritten_clean_total",
    "Number of times the background writer stopped a cleaning scan because it had "
    "written too many buffers",
)
BUFFERS_BACKEND = _desc(
    "buffers_backend_total",
    "Number of buffers written directly by a backend",
)
BUFFERS_BACKEND_FSYNC = _desc(
    "buffers_backend_fsync_total",
    "Number of times a backend had to execute its own fsync call (normally the "
    "background writer handles those even when the backend does its own write)",
)
BUFFERS_ALLOC = _desc(
    "buffers_alloc_total",
    "Number of buffers allocated",
)
STATS_RESET = _desc(
    "stats_reset_total",
    "Time at which these statistics were last reset",
)

STAT_BGWRITER_QUERY_BEFORE_17 = """SELECT
    checkpoints_timed
    ,checkpoints_req
    ,checkpoint_write_time
    ,checkpoint_sync_time
    ,buffers_checkpoint
    ,buffers_clean
    ,maxwritten_clean
    ,buffers_backend
    ,buffers_backend_fsync
    ,buffers_alloc
    ,stats_reset
FROM pg_stat_bgwriter;"""

STAT_BGWRITER_QUERY_AFTER_17 = """SELECT
    buffers_clean
    ,maxwritten_clean
    ,buffers_alloc
    ,stats_reset
FROM pg_stat_bgwriter;"""


def _whole(value: Any) -> float:
    return float(int(value)) if value is not None else 0.0


def _real(value: Any) -> float:
    return float(value) if value is not None else 0.0


def _epoch(value: datetime | None) -> float:
    """Whole seconds since the epoch; naive timestamps are taken as UTC."""
    if value is None:
        return 0.0
    aware = value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    return float(math.floor(aware.timestamp()))


_Column = tuple[core.Desc, Callable[[Any], float]]

_COLUMNS_BEFORE_17: tuple[_Column, ...] = (
    (CHECKPOINTS_TIMED, _whole),
    (CHECKPOINTS_REQ, _whole),
    (CHECKPOINT_WRITE_TIME, _real),
    (CHECKPOINT_SYNC_TIME, _real),
    (BUFFERS_CHECKPOINT, _whole),
    (BUFFERS_CLEAN, _whole),
    (MAXWRITTEN_CLEAN, _whole),
    (BUFFERS_BACKEND, _whole),
    (BUFFERS_BACKEND_FSYNC, _whole),
    (BUFFERS_ALLOC, _whole),
    (STATS_RESET, _epoch),
)

_COLUMNS_AFTER_17: tuple[_Column, ...] = (
    (BUFFERS_CLEAN, _whole),
    (MAXWRITTEN_CLEAN, _whole),
    (BUFFERS_ALLOC, _whole),
    (STATS_RESET, _epoch),
)


@core.register_collector(SUBSYSTEM, True)
@dataclass
class PGStatBGWriterCollector:
    """Exposes background writer and checkpoint statistics."""

    def update(self, instance: core.Instance) -> Iterator[core.Metric]:
        if instance.version_at_least("17.0.0"):
            query, columns = STAT_BGWRITER_QUERY_AFTER_17, _COLUMNS_AFTER_17
        else:
            query, columns = STAT_BGWRITER_QUERY_BEFORE_17, _COLUMNS_BEFORE_17
        row = tuple(instance.query_row(query))
        if len(row) != len(columns):
            raise ValueError(
                f"expected {len(columns)} columns from pg_stat_bgwriter, got {len(row)}"
            )
        for (desc, convert), raw in zip(columns, row):
            yield desc.metric(core.ValueType.COUNTER, convert(raw))