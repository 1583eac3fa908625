"""Replication slot positions, activity and WAL status."""

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

SUBSYSTEM = "replication_slot"

_SLOT_LABELS = ("slot_name", "slot_type")

REPLICATION_SLOT_CURRENT_WAL = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "slot_current_wal_lsn"),
    "current wal lsn value",
    _SLOT_LABELS,
)
REPLICATION_SLOT_CONFIRMED_FLUSH = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "slot_confirmed_flush_lsn"),
    "last lsn confirmed flushed to the replication slot",
    _SLOT_LABELS,
)
REPLICATION_SLOT_IS_ACTIVE = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "slot_is_active"),
    "whether the replication slot is active or not",
    _SLOT_LABELS,
)
REPLICATION_SLOT_SAFE_WAL = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "safe_wal_size_bytes"),
    "number of bytes that can be written to WAL such that this slot is not in danger "
    "of getting in state lost",
    _SLOT_LABELS,
)
REPLICATION_SLOT_WAL_STATUS = Desc(
    build_fq_name(NAMESPACE, SUBSYSTEM, "wal_status"),
    "availability of WAL files claimed by this slot",
    (*_SLOT_LABELS, "wal_status"),
)

REPLICATION_SLOT_QUERY = """SELECT
    slot_name,
    slot_type,
    CASE WHEN pg_is_in_recovery() THEN
        pg_last_wal_receive_lsn() - '0/0'
    ELSE
        pg_current_wal_lsn() - '0/0'
    END AS current_wal_lsn,
    COALESCE(confirmed_flush_lsn, '0/0') - '0/0' AS confirmed_flush_lsn,
    active
FROM pg_replication_slots;"""

REPLICATION_SLOT_NEW_QUERY = """SELECT
    slot_name,
    slot_type,
    CASE WHEN pg_is_in_recovery() THEN
        pg_last_wal_receive_lsn() - '0/0'
    ELSE
        pg_current_wal_lsn() - '0/0'
    END AS current_wal_lsn,
    COALESCE(confirmed_flush_lsn, '0/0') - '0/0' AS confirmed_flush_lsn,
    active,
    safe_wal_size,
    wal_status
FROM pg_replication_slots;"""


@register_collector(SUBSYSTEM, True)
@dataclass
class PGReplicationSlotCollector:
    """Exposes WAL positions, activity and WAL retention of replication slots."""

    log: logging.Logger = LOGGER

    def update(self, instance: Instance) -> Iterator[Metric]:
        above_pg13 = instance.version_at_least("13.0.0")
        query = REPLICATION_SLOT_NEW_QUERY if above_pg13 else REPLICATION_SLOT_QUERY

        for row in instance.query(query):
            if above_pg13:
                slot_name, slot_type, wal_lsn, flush_lsn, active, safe_wal_size, wal_status = row
            else:
                slot_name, slot_type, wal_lsn, flush_lsn, active = row
                safe_wal_size = wal_status = None

            is_active = active is not None and bool(active)
            labels = (
                "unknown" if slot_name is None else slot_name,
                "unknown" if slot_type is None else slot_type,
            )

            yield REPLICATION_SLOT_CURRENT_WAL.metric(
                ValueType.GAUGE, 0.0 if wal_lsn is None else float(wal_lsn), *labels
            )
            if is_active:
                yield REPLICATION_SLOT_CONFIRMED_FLUSH.metric(
                    ValueType.GAUGE, 0.0 if flush_lsn is None else float(flush_lsn), *labels
                )
            yield REPLICATION_SLOT_IS_ACTIVE.metric(
                ValueType.GAUGE, 1.0 if is_active else 0.0, *labels
            )
            if safe_wal_size is not None:
                yield REPLICATION_SLOT_SAFE_WAL.metric(
                    ValueType.GAUGE, float(int(safe_wal_size)), *labels
                )
            if wal_status is not None:
                yield REPLICATION_SLOT_WAL_STATUS.metric(
                    ValueType.GAUGE, 1.0, *labels, wal_status
                )