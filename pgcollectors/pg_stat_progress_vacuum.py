"""Progress of running VACUUM operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
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

SUBSYSTEM = "stat_progress_vacuum"

VACUUM_PHASES = (
    "initializing",
    "scanning heap",
    "vacuuming indexes",
    "vacuuming heap",
    "cleaning up indexes",
    "truncating heap",
    "performing final cleanup",
)

_LABELS = ("datname", "relname")


def _desc(name: str, help_text: str, labels: tuple[str, ...] = _LABELS) -> Desc:
    return Desc(build_fq_name(NAMESPACE, SUBSYSTEM, name), help_text, labels)


PHASE = _desc(
    "phase",
    "Current vacuum phase (1 = active, 0 = inactive). Label 'phase' is human-readable.",
    (*_LABELS, "phase"),
)
HEAP_BLKS_TOTAL = _desc("heap_blks", "Total number of heap blocks in the table being vacuumed.")
HEAP_BLKS_SCANNED = _desc("heap_blks_scanned", "Number of heap blocks scanned so far.")
HEAP_BLKS_VACUUMED = _desc("heap_blks_vacuumed", "Number of heap blocks vacuumed so far.")
INDEX_VACUUM_COUNT = _desc("index_vacuums", "Number of completed index vacuum cycles.")
MAX_DEAD_TUPLES = _desc(
    "max_dead_tuples",
    "Maximum number of dead tuples that can be stored before cleanup is performed.",
)
NUM_DEAD_TUPLES = _desc("num_dead_tuples", "Current number of dead tuples found so far.")

# Progress columns param1.. in the order the server reports them for VACUUM.
_PROGRESS_FIELDS = (
    "phase",
    "heap_blks_total",
    "heap_blks_scanned",
    "heap_blks_vacuumed",
    "index_vacuum_count",
    "max_dead_tuples",
    "num_dead_tuples",
)
_PROGRESS_COLUMNS = ", ".join(("pid", "datid", "relid", *(f"param{n}" for n in range(1, 21))))
_SELECTED_FIELDS = ", ".join(
    f"s.param{n} AS {name}" for n, name in enumerate(_PROGRESS_FIELDS, start=1)
)

# The view definition of pg_stat_progress_vacuum, keeping the phase numeric.
STAT_PROGRESS_VACUUM_QUERY = (
    f"SELECT d.datname, s.relid::regclass::text AS relname, {_SELECTED_FIELDS}"
    f" FROM pg_stat_get_progress_info('VACUUM'::text) s({_PROGRESS_COLUMNS})"
    " LEFT JOIN pg_database d ON s.datid = d.oid"
)


def _as_int(value: Any) -> float:
    return 0.0 if value is None else float(int(value))


@register_collector(SUBSYSTEM, True)
@dataclass
class PGStatProgressVacuumCollector:
    """Exposes the phase and block and tuple counters of running vacuums."""

    log: logging.Logger = LOGGER

    def update(self, instance: Instance) -> Iterator[Metric]:
        for row in instance.query(STAT_PROGRESS_VACUUM_QUERY):
            datname, relname, phase, *counters = row

            labels = (
                "unknown" if datname is None else datname,
                "unknown" if relname is None else relname,
            )
            current_phase = None if phase is None else float(int(phase))

            for position, label in enumerate(VACUUM_PHASES):
                active = current_phase is not None and float(position) == current_phase
                yield PHASE.metric(ValueType.GAUGE, 1.0 if active else 0.0, *labels, label)

            descs = (
                HEAP_BLKS_TOTAL,
                HEAP_BLKS_SCANNED,
                HEAP_BLKS_VACUUMED,
                INDEX_VACUUM_COUNT,
                MAX_DEAD_TUPLES,
                NUM_DEAD_TUPLES,
            )
            for desc, value in zip(descs, counters):
                yield desc.metric(ValueType.GAUGE, _as_int(value), *labels)