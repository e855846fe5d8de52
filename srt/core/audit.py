"""
SRT Tool Audit Log

Both durable logs of a run live in the run log table on the target side
(``LOG_DATA_REPLICATION`` by default):

* audit records: the begin/end milestones and the fatal error of an aborted
  run, written the moment they happen, each in its own committed transaction
  so nothing the run does afterwards can roll it back;
* failure entries: collected during the run and appended as one batch in the
  report phase.

``log_level`` is free text (phase labels, INFO, FATAL) and ``log_msg`` holds
a full fatal backtrace, see RUN_LOG_TABLE_DDL.
"""

from typing import List, Union

import pandas as pd

from srt.core.connectivity import DatabaseEndpoint
from srt.core.types import AuditLevel, LogEntry, LOG_FIELD_LENGTH, NOT_APPLICABLE
from srt.core.utils import safe_print, truncate

# Widest message an audit record carries (a truncated fatal backtrace)
AUDIT_MESSAGE_LENGTH = 1999

RUN_LOG_TABLE_DDL = """
    CREATE TABLE {table_name} (
        log_timestamp       TIMESTAMP,
        log_procedure_name  VARCHAR2(200),
        log_table           VARCHAR2(200),
        log_level           VARCHAR2(200),
        log_msg             VARCHAR2(2000)
    )
"""

_LEVEL_MARKERS = {
    AuditLevel.INFO: 'ℹ',
    AuditLevel.WARN: '⚠',
    AuditLevel.ERR: '✗',
    AuditLevel.FATAL: '✗',
}


class AuditLog:
    """Autonomous audit sink. A write that fails is reported on the console and dropped."""

    def __init__(self, endpoint: DatabaseEndpoint, table_name: str = 'LOG_DATA_REPLICATION',
                 message_length: int = AUDIT_MESSAGE_LENGTH):
        self.endpoint = endpoint
        self.table_name = table_name
        self.message_length = message_length

    @property
    def insert_sql(self) -> str:
        return (f"INSERT INTO {self.table_name} "
                f"(log_timestamp, log_procedure_name, log_table, log_level, log_msg) "
                f"VALUES (CURRENT_TIMESTAMP, :log_procedure_name, :log_table, :log_level, :log_msg)")

    def record(self, level: Union[AuditLevel, str], module: str, message: str) -> bool:
        """
        Write one audit record and commit it immediately.

        Args:
            level: INFO, WARN, ERR or FATAL
            module: Name of the procedure the record is about
            message: Record text

        Returns:
            True if the record reached the audit table
        """
        level = AuditLevel(level)
        safe_print(f"{_LEVEL_MARKERS[level]} [{level.value}] {module}: {message}")

        try:
            self.endpoint.execute(self.insert_sql, {
                'log_procedure_name': truncate(module, LOG_FIELD_LENGTH),
                'log_table': NOT_APPLICABLE,
                'log_level': level.value,
                'log_msg': truncate(message, self.message_length),
            })
            return True
        except Exception as e:  # noqa: BLE001 - the audit log must never fail its caller
            safe_print(f"⚠ Failed to write audit record to {self.table_name}: {e}")
            return False

    def info(self, module: str, message: str) -> bool:
        return self.record(AuditLevel.INFO, module, message)

    def fatal(self, module: str, message: str) -> bool:
        return self.record(AuditLevel.FATAL, module, message)


class RunLogStore:
    """Batch writer for the failure entries of one run."""

    def __init__(self, endpoint: DatabaseEndpoint, table_name: str = 'LOG_DATA_REPLICATION'):
        self.endpoint = endpoint
        self.table_name = table_name

    def write(self, entries: List[LogEntry]) -> int:
        """
        Append entries to the run log table.

        The table name is passed to pandas in lower case so SQLAlchemy
        treats it as case-insensitive and matches the existing table.

        Returns:
            Number of rows written
        """
        if not entries:
            return 0

        frame = pd.DataFrame([entry.to_row() for entry in entries])
        frame.to_sql(self.table_name.lower(), self.endpoint.engine, if_exists='append', index=False)
        return len(frame)
