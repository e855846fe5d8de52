"""
SRT Tool Core Types

Data types shared by the core modules: environment and result types used by
every operation, plus the descriptors and run state of a replication run.
"""

import re
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Tuple

from srt.core.exceptions import ReplicationError

# Size limits of the run log columns
LOG_FIELD_LENGTH = 200
LOG_MESSAGE_LENGTH = 500

NOT_APPLICABLE = 'N/A'

_DATE_RANGE_PATTERN = re.compile(r"\bTO_DATE\s*\(|\bTIMESTAMP\s*'", re.IGNORECASE)


class DatabaseType(Enum):
    """Supported database types."""
    ORACLE = "ORACLE"
    POSTGRES = "POSTGRES"
    MYSQL = "MYSQL"
    MSSQL = "MSSQL"


class Side(Enum):
    """Which end of the replication a catalog read targets."""
    SOURCE = "source"
    TARGET = "target"


class BoundaryKind(Enum):
    """Syntactic kind of a partition boundary expression."""
    DATE_RANGE = "date_range"
    LITERAL_LIST = "literal_list"


class AuditLevel(Enum):
    """Levels accepted by the audit log table."""
    INFO = "INFO"
    WARN = "WARN"
    ERR = "ERR"
    FATAL = "FATAL"


class RunState(Enum):
    """Phases of a replication run."""
    PRE = "PRE"
    RECONCILE = "RECONCILE"
    SYNC = "SYNC"
    REFRESH = "REFRESH"
    POST = "POST"
    REPORT = "REPORT"
    DONE = "DONE"
    ABORTED = "ABORTED"


class RunOutcome(Enum):
    """Terminal outcome of a replication run."""
    FULL_SUCCESS = "FULL_SUCCESS"
    PARTIAL_FAILURE = "PARTIAL_FAILURE"
    FATAL_FAILURE = "FATAL_FAILURE"


# Allowed successors of each run state; DONE and ABORTED are terminal
_NEXT_STATES = {
    RunState.PRE: (RunState.RECONCILE, RunState.ABORTED),
    RunState.RECONCILE: (RunState.SYNC, RunState.ABORTED),
    RunState.SYNC: (RunState.REFRESH, RunState.ABORTED),
    RunState.REFRESH: (RunState.POST, RunState.ABORTED),
    RunState.POST: (RunState.REPORT, RunState.ABORTED),
    RunState.REPORT: (RunState.DONE, RunState.ABORTED),
    RunState.DONE: (),
    RunState.ABORTED: (),
}


@dataclass
class OperationResult:
    """Result of an operation exposed by the API or the CLI."""
    success: bool
    message: str
    data: Any = None
    record_count: Optional[int] = None
    error_details: Optional[str] = None

    def to_dict(self) -> dict:
        result = {'success': self.success, 'message': self.message}
        if self.data is not None:
            result['data'] = self.data
        if self.record_count is not None:
            result['record_count'] = self.record_count
        if self.error_details:
            result['error_details'] = self.error_details
        return result


@dataclass(frozen=True)
class TableDescriptor:
    """A table discovered in the source catalog."""
    name: str
    is_temporary: bool = False
    is_materialized_view: bool = False


@dataclass(frozen=True)
class PartitionDescriptor:
    """One partition of a partitioned table and its boundary expression."""
    table_name: str
    partition_name: str
    high_value: str = ''

    @property
    def key(self) -> Tuple[str, str]:
        return (self.table_name, self.partition_name)

    @property
    def boundary_kind(self) -> BoundaryKind:
        """DATE_RANGE for TO_DATE/TIMESTAMP boundaries, LITERAL_LIST for anything else."""
        if _DATE_RANGE_PATTERN.search(self.high_value or ''):
            return BoundaryKind.DATE_RANGE
        return BoundaryKind.LITERAL_LIST


@dataclass(frozen=True)
class ConstraintDescriptor:
    """A referential (foreign key) constraint."""
    table_name: str
    constraint_name: str


@dataclass
class LogEntry:
    """A failure recorded during a run; persisted to the run log at the end."""
    procedure_name: str
    table_name: str
    phase: str
    message: str
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        self.table_name = (self.table_name or NOT_APPLICABLE)[:LOG_FIELD_LENGTH]
        self.procedure_name = (self.procedure_name or '')[:LOG_FIELD_LENGTH]
        self.phase = (self.phase or '')[:LOG_FIELD_LENGTH]
        self.message = (self.message or '')[:LOG_MESSAGE_LENGTH]

    def to_row(self) -> dict:
        """Column layout of the run log table."""
        return {
            'log_timestamp': self.timestamp,
            'log_procedure_name': self.procedure_name,
            'log_table': self.table_name,
            'log_level': self.phase,
            'log_msg': self.message,
        }


@dataclass
class UnitResult:
    """Outcome of one isolated unit of work."""
    unit: str
    table_name: str
    phase: str
    success: bool
    error: Optional[str] = None


@dataclass
class PartitionPlan:
    """Partitions to drop from and add to the target."""
    drops: List[PartitionDescriptor] = field(default_factory=list)
    adds: List[PartitionDescriptor] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.drops and not self.adds


@dataclass
class CatalogSnapshot:
    """Everything discovered from the catalogs at the start of a run."""
    constraints: List[ConstraintDescriptor] = field(default_factory=list)
    source_partitions: List[PartitionDescriptor] = field(default_factory=list)
    target_partitions: List[PartitionDescriptor] = field(default_factory=list)
    tables: List[TableDescriptor] = field(default_factory=list)
    demand_views: List[str] = field(default_factory=list)


@dataclass
class ReplicationSettings:
    """Tunables of a replication run (see srt.core.config for the defaults)."""
    seed_partition_prefix: str = 'INIT_'
    log_table_prefix: str = 'LOG_'
    run_log_table: str = 'LOG_DATA_REPLICATION'
    audit_log_table: str = 'LOG_DATA_REPLICATION'
    max_report_entries: int = 12
    error_detail_length: int = 100
    backtrace_length: int = 1999
    copy_batch_size: int = 10000
    parallel_workers: int = 1
    unit_timeout: Optional[float] = None
    purge_recyclebin: bool = True
    post_replication_sql: List[str] = field(default_factory=list)


@dataclass
class ReplicationRun:
    """State of one replication run. Exists only for the duration of the run."""
    target_env: str
    source_env: Optional[str] = None
    procedure_name: str = 'replicate_tables'
    entries: List[LogEntry] = field(default_factory=list)
    tables_attempted: int = 0
    tables_synchronized: int = 0
    failed_tables: List[str] = field(default_factory=list)
    late_tables: List[str] = field(default_factory=list)
    state: RunState = RunState.PRE
    state_history: List[RunState] = field(default_factory=lambda: [RunState.PRE])
    fatal_error: Optional[str] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, entry: LogEntry) -> None:
        with self._lock:
            self.entries.append(entry)

    def mark_table_failed(self, table_name: str) -> None:
        with self._lock:
            if table_name not in self.late_tables:
                self.failed_tables.append(table_name)

    def mark_table_late(self, table_name: str) -> None:
        """A table that timed out but was fully reloaded afterwards."""
        with self._lock:
            self.late_tables.append(table_name)
            self.tables_synchronized += 1
            if table_name in self.failed_tables:
                self.failed_tables.remove(table_name)

    def mark_table_synchronized(self) -> None:
        with self._lock:
            self.tables_synchronized += 1

    def transition(self, state: RunState) -> None:
        if state not in _NEXT_STATES[self.state]:
            raise ReplicationError(f"Invalid run state transition: {self.state.value} -> {state.value}")
        self.state = state
        self.state_history.append(state)

    @property
    def failure_count(self) -> int:
        return len(self.entries)

    @property
    def outcome(self) -> RunOutcome:
        if self.state == RunState.ABORTED:
            return RunOutcome.FATAL_FAILURE
        if self.entries:
            return RunOutcome.PARTIAL_FAILURE
        return RunOutcome.FULL_SUCCESS
