"""Checkpointer statistics, available from PostgreSQL 17."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator

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

SUBSYSTEM = "stat_checkpointer"


def _desc(name: str, help_text: str) -> Desc:
    return Desc(build_fq_name(NAMESPACE, SUBSYSTEM, name), help_text)


NUM_TIMED = _desc(
    "num_timed_total",
    "Number of scheduled checkpoints due to timeout",
)
NUM_REQUESTED = _desc(
    "num_requested_total",
    "Number of requested checkpoints that have been performed",
)
RESTARTPOINTS_TIMED = _desc(
    "restartpoints_timed_total",
    "Number of scheduled restartpoints due to timeout or after a failed attempt to "
    "perform it",
)
RESTARTPOINTS_REQ = _desc(
    "restartpoints_req_total",
    "Number of requested restartpoints",
)
RESTARTPOINTS_DONE = _desc(
    "restartpoints_done_total",
    "Number of restartpoints that have been performed",
)
WRITE_TIME = _desc(
    "write_time_total",
    "Total amount of time that has been spent in the portion of processing checkpoints "
    "and restartpoints where files are written to disk, in milliseconds",
)
SYNC_TIME = _desc(
    "sync_time_total",
    "Total amount of time that has been spent in the portion of processing checkpoints "
    "and restartpoints where files are synchronized to disk, in milliseconds",
)
BUFFERS_WRITTEN = _desc(
    "buffers_written_total",
    "Number of buffers written during checkpoints and restartpoints",
)
STATS_RESET = _desc(
    "stats_reset_total",
    "Time at which these statistics were last reset",
)

STAT_CHECKPOINTER_QUERY = """SELECT
    num_timed
    ,num_requested
    ,restartpoints_timed
    ,restartpoints_req
    ,restartpoints_done
    ,write_time
    ,sync_time
    ,buffers_written
    ,stats_reset
FROM pg_stat_checkpointer;"""


def _as_int(value: Any) -> float:
    return 0.0 if value is None else float(int(value))


def _as_float(value: Any) -> float:
    return 0.0 if value is None else float(value)


def _as_unix(value: datetime | None) -> float:
    """Whole seconds since the epoch; naive timestamps are taken as UTC."""
    if value is None:
        return 0.0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return float(math.floor(value.timestamp()))


# Disabled by default: pg_stat_checkpointer only exists from PostgreSQL 17.


@register_collector(SUBSYSTEM, False)
@dataclass
class PGStatCheckpointerCollector:
    """Exposes checkpoint and restartpoint statistics."""

    log: logging.Logger = LOGGER

    def update(self, instance: Instance) -> Iterator[Metric]:
        if not instance.version_at_least("17.0.0"):
            self.log.warning(
                "pg_stat_checkpointer collector is not available on "
                "PostgreSQL < 17.0.0, skipping"
            )
            return

        nt, nr, rpt, rpr, rpd, wt, st, bw, sr = instance.query_row(
            STAT_CHECKPOINTER_QUERY
        )
        values = [
            (NUM_TIMED, _as_int(nt)),
            (NUM_REQUESTED, _as_int(nr)),
            (RESTARTPOINTS_TIMED, _as_int(rpt)),
            (RESTARTPOINTS_REQ, _as_int(rpr)),
            (RESTARTPOINTS_DONE, _as_int(rpd)),
            (WRITE_TIME, _as_float(wt)),
            (SYNC_TIME, _as_float(st)),
            (BUFFERS_WRITTEN, _as_int(bw)),
            (STATS_RESET, _as_unix(sr)),
        ]
        for desc, value in values:
            yield desc.metric(ValueType.COUNTER, value)