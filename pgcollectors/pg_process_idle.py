"""Histogram of how long server processes have been idle."""

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
    build_fq_name,
    register_collector,
)

SUBSYSTEM = "process_idle"

IDLE_BUCKET_BOUNDS = (1, 2, 5, 15, 30, 60, 90, 120, 300)

PROCESS_IDLE_SECONDS = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "seconds"),
    "Idle time of server processes",
    ("state", "application_name"),
)

_IDLE_AGE = "extract(epoch FROM (current_timestamp - state_change))"
_BOUNDS = ", ".join(str(bound) for bound in IDLE_BUCKET_BOUNDS)

PROCESS_IDLE_QUERY = (
    "WITH metrics AS ("
    " SELECT state, application_name,"
    f" sum({_IDLE_AGE}::bigint)::float AS process_idle_seconds_sum,"
    " count(*) AS process_idle_seconds_count"
    " FROM pg_stat_activity WHERE state ~ '^idle'"
    " GROUP BY state, application_name"
    "), buckets AS ("
    " SELECT state, application_name, le,"
    f" sum(CASE WHEN {_IDLE_AGE} <= le THEN 1 ELSE 0 END)::bigint AS bucket"
    f" FROM pg_stat_activity, unnest(ARRAY[{_BOUNDS}]) AS le"
    " GROUP BY state, application_name, le"
    " ORDER BY state, application_name, le"
    ")"
    " SELECT state, application_name,"
    " process_idle_seconds_sum AS seconds_sum,"
    " process_idle_seconds_count AS seconds_count,"
    " array_agg(le) AS seconds, array_agg(bucket) AS seconds_bucket"
    " FROM metrics JOIN buckets USING (state, application_name)"
    " GROUP BY 1, 2, 3, 4"
)

# Disabled by default: there is no test data from a real server for it.


@register_collector(SUBSYSTEM, False)
@dataclass
class PGProcessIdleCollector:
    """Exposes idle time of server processes as a histogram."""

    log: logging.Logger = LOGGER

    def update(self, instance: Instance) -> Iterator[Metric]:
        state, application_name, seconds_sum, seconds_count, seconds, counts = (
            instance.query_row(PROCESS_IDLE_QUERY)
        )
        buckets = {
            float(bound): int(count)
            for bound, count in zip(seconds or [], counts or [])
        }
        yield PROCESS_IDLE_SECONDS.histogram(
            0 if seconds_count is None else int(seconds_count),
            0.0 if seconds_sum is None else float(seconds_sum),
            buckets,
            "unknown" if state is None else state,
            "unknown" if application_name is None else application_name,
        )