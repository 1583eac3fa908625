"""Postmaster start time."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from pgcollectors.core import NAMESPACE, Desc, Instance, Metric, ValueType
from pgcollectors.core import build_fq_name, register_collector

SUBSYSTEM = "postmaster"

POSTMASTER_START_TIME_SECONDS = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "start_time_seconds"),
    "Time at which postmaster started",
)

POSTMASTER_QUERY = (
    "SELECT extract(epoch from pg_postmaster_start_time) from pg_postmaster_start_time();"
)


@register_collector(SUBSYSTEM, enabled_by_default=False)
@dataclass
class PGPostmasterCollector:
    """Exposes the time at which the postmaster started."""

    def update(self, instance: Instance) -> Iterator[Metric]:
        (start_time,) = instance.query_row(POSTMASTER_QUERY)
        seconds = float(start_time) if start_time is not None else 0.0
        yield POSTMASTER_START_TIME_SECONDS.metric(ValueType.GAUGE, seconds)