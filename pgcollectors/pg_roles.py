"""Connection limits of roles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator

from pgcollectors import core

SUBSYSTEM = "roles"

ROLES_CONNECTION_LIMIT = core.Desc(
    core.build_fq_name(core.NAMESPACE, SUBSYSTEM, "connection_limit"),
    "Connection limit set for the role",
    ("rolname",),
)

ROLES_CONNECTION_LIMITS_QUERY = "SELECT pg_roles.rolname, pg_roles.rolconnlimit FROM pg_roles"


@core.register_collector(SUBSYSTEM, enabled_by_default=True)
@dataclass
class PGRolesCollector:
    """Exposes the connection limit of every role."""

    log: logging.Logger = core.LOGGER

    def update(self, instance: core.Instance) -> Iterator[core.Metric]:
        rows = instance.query(ROLES_CONNECTION_LIMITS_QUERY)
        for rolname, conn_limit in rows:
            if None in (rolname, conn_limit):
                continue
            limit = float(int(conn_limit))
            yield ROLES_CONNECTION_LIMIT.metric(core.ValueType.GAUGE, limit, rolname)