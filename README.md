# pgcollectors

Collectors that query a PostgreSQL server's statistics views and turn the
results into Prometheus-style metrics: gauges, counters and histograms with
labels.

Each collector lives in its own module and covers one area of the server:

| Module | Collector | Subsystem | Enabled by default |
|---|---|---|---|
| `pgcollectors.pg_locks` | `PGLocksCollector` | `locks` | yes |
| `pgcollectors.pg_long_running_transactions` | `PGLongRunningTransactionsCollector` | `long_running_transactions` | no |
| `pgcollectors.pg_postmaster` | `PGPostmasterCollector` | `postmaster` | no |
| `pgcollectors.pg_process_idle` | `PGProcessIdleCollector` | `process_idle` | no |
| `pgcollectors.pg_replication` | `PGReplicationCollector` | `replication` | yes |
| `pgcollectors.pg_replication_slot` | `PGReplicationSlotCollector` | `replication_slot` | yes |
| `pgcollectors.pg_roles` | `PGRolesCollector` | `roles` | yes |
| `pgcollectors.pg_stat_activity_autovacuum` | `PGStatActivityAutovacuumCollector` | `stat_activity_autovacuum` | no |
| `pgcollectors.pg_stat_bgwriter` | `PGStatBGWriterCollector` | `stat_bgwriter` | yes |
| `pgcollectors.pg_stat_checkpointer` | `PGStatCheckpointerCollector` | `stat_checkpointer` | no |
| `pgcollectors.pg_stat_database` | `PGStatDatabaseCollector` | `stat_database` | yes |
| `pgcollectors.pg_stat_progress_vacuum` | `PGStatProgressVacuumCollector` | `stat_progress_vacuum` | yes |

## Installation

```
pip install pgcollectors
```

The package has no runtime dependencies. You bring your own database
connection: any DB-API 2.0 connection to PostgreSQL whose cursors support
`execute`, `fetchone` and `close`. Timestamp columns are expected as
`datetime` objects (naive ones are read as UTC) and array columns as lists.

## Usage

Wrap a connection in `pgcollectors.core.Instance`, giving the server version
as a `(major, minor, patch)` tuple or a `"major.minor.patch"` string, so that
collectors can pick the right query. A collector's `update(instance)` is a
generator that yields `Metric` objects in a fixed order.

```python
from pgcollectors.core import Instance
from pgcollectors.pg_locks import PGLocksCollector
from pgcollectors.pg_stat_database import PGStatDatabaseCollector

instance = Instance(connection, version="16.2.0")

for collector in (PGLocksCollector(), PGStatDatabaseCollector()):
    for metric in collector.update(instance):
        print(metric.desc.fq_name, metric.label_map(), metric.value)
```

Version-dependent behaviour:

- `PGReplicationSlotCollector` also reports safe WAL size and WAL status
  from 13.0.0.
- `PGStatDatabaseCollector` adds `active_time_seconds_total` from 14.0.0.
- `PGStatBGWriterCollector` reports only the four remaining columns from
  17.0.0.
- `PGStatCheckpointerCollector` logs a warning and yields nothing below
  17.0.0.

## The building blocks

`pgcollectors.core` provides:

- `ValueType` — `COUNTER`, `GAUGE`, `UNTYPED` and `HISTOGRAM`.
- `Desc(fq_name, help, variable_labels, const_labels)` — describes a metric
  family. `Desc.metric(value_type, value, *label_values)` builds a counter,
  gauge or untyped sample; `Desc.histogram(count, total, buckets,
  *label_values)` builds a histogram from cumulative bucket counts. Both
  raise `ValueError` when the number of label values does not match.
- `Metric` — a frozen sample with `desc`, `value_type`, `value`,
  `label_values`, and for histograms `count`, `total` and `buckets`;
  `label_map()` returns all labels, constant ones included.
- `Instance` — `query(sql)` yields rows, `query_row(sql)` returns the first
  row or raises `LookupError`, `version_at_least(version)` compares versions.
- `parse_version(text)` — parses `"major.minor.patch"` (with an optional
  pre-release or build suffix), raising `ValueError` otherwise.
- `build_fq_name(namespace, subsystem, name)` — joins the non-empty parts
  with underscores, so names look like `pg_locks_count` or
  `pg_stat_database_xact_commit`.
- `register_collector(subsystem, enabled_by_default)` and
  `registered_collectors()` — collectors register themselves when their
  module is imported; `registered_collectors()` returns a mapping from
  subsystem to the collector class and whether it is enabled by default.
  Importing `pgcollectors` alone imports no collector modules.

## Missing values and errors

Errors raised by the database driver propagate out of `update` unchanged.
Missing values are handled per collector: most turn absent numbers into `0`
and absent names into `"unknown"`; `PGLocksCollector`, `PGRolesCollector`
and `PGStatDatabaseCollector` skip rows that lack an identifying or required
column; `PGStatActivityAutovacuumCollector` raises `TypeError` on a NULL
value.

## What this package does not do

It only collects. There is no command-line program, no HTTP endpoint
serving metrics, no text exposition format, no connection handling and no
scheduling: you open the connection, call the collectors and publish the
resulting `Metric` objects yourself.

## Running the tests

```
pip install -e ".[test]"
pytest
```