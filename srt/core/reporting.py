"""
SRT Tool Run Reporter

Turns the failures collected during a run into the run report, stores them
in the run log and hands the report to the notifier.
"""

from typing import List, Optional, Tuple

from srt.core.audit import RunLogStore
from srt.core.types import LogEntry, ReplicationRun
from srt.core.utils import safe_print

ENTRY_SEPARATOR = '  ***'


def format_entry(entry: LogEntry) -> str:
    return (f"Table: {entry.table_name}\n"
            f"level of procedure: {entry.phase}\n"
            f"{entry.message}\n"
            f"{ENTRY_SEPARATOR}")


class RunReporter:
    """Builds, stores and sends the report of one replication run."""

    def __init__(self, store: Optional[RunLogStore] = None, notifier=None, max_entries: int = 12):
        self.store = store
        self.notifier = notifier
        self.max_entries = max_entries

    def summarize(self, run: ReplicationRun) -> Tuple[str, str]:
        """
        Build the report subject and body.

        Args:
            run: The run to report on

        Returns:
            Tuple of (subject, body)
        """
        failures = run.failure_count
        subject = f"Data replication - env: {run.target_env} - result: {run.tables_attempted} tables processed, "

        lines: List[str] = [
            f"{run.tables_synchronized} of {run.tables_attempted} tables synchronized",
        ]

        if failures == 0:
            subject += "FULL SUCCESS"
            lines.append("")
            lines.append("    *** No errors detected. All tables, partitioned tables, MVs successfully replicated ***")
            return subject, "\n".join(lines)

        subject += f"COMPLETED, {failures} failed"

        shown = run.entries[:self.max_entries]
        lines.extend(format_entry(entry) for entry in shown)

        omitted = failures - len(shown)
        if omitted > 0:
            lines.append(f"... {omitted} more failure(s) not shown, see the run log for the full list")

        if run.failed_tables:
            lines.append("")
            lines.append("Tables that may have been left truncated on target: " + ", ".join(run.failed_tables))

        if run.late_tables:
            lines.append("Tables reloaded after their timeout: " + ", ".join(run.late_tables))

        return subject, "\n".join(lines)

    def persist(self, run: ReplicationRun) -> int:
        """Write every collected entry to the run log."""
        if self.store is None:
            return 0
        return self.store.write(run.entries)

    def notify(self, subject: str, body: str) -> bool:
        """Send the report. Delivery problems are reported and swallowed."""
        if self.notifier is None:
            return False
        try:
            self.notifier.send(subject, body)
            return True
        except Exception as e:  # noqa: BLE001 - a lost notification does not fail the run
            safe_print(f"⚠ Failed to send replication report: {e}")
            return False

    def finalize(self, run: ReplicationRun) -> Tuple[str, str]:
        subject, body = self.summarize(run)
        self.persist(run)
        self.notify(subject, body)
        return subject, body
