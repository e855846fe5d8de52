"""
SRT Tool Table Synchronizer

Replaces the content of every replicable target table with the source rows.
Truncate and copy of one table form a single unit: if either step fails the
table is recorded as failed and the next table starts. A table whose truncate
succeeded but whose copy failed stays empty until the next run; the run report
names such tables.
"""

from typing import Callable, List, Optional

from srt.core.connectivity import DatabaseEndpoint, copy_table_rows
from srt.core.types import ReplicationRun, TableDescriptor, UnitResult
from srt.core.units import Unit, UnitRunner
from srt.core.utils import safe_print

SYNC_PHASE = 'truncate/insert together'

# copier(source, target, table_name, batch_size) -> rows copied
RowCopier = Callable[[DatabaseEndpoint, DatabaseEndpoint, str, int], int]


class TableSynchronizer:
    """Truncate-and-reload of target tables from source."""

    def __init__(
        self,
        source: DatabaseEndpoint,
        target: DatabaseEndpoint,
        run: ReplicationRun,
        runner: UnitRunner,
        batch_size: int = 10000,
        copier: Optional[RowCopier] = None
    ):
        self.source = source
        self.target = target
        self.run = run
        self.runner = runner
        self.batch_size = batch_size
        self.copier = copier or copy_table_rows

    def sync_table(self, table_name: str) -> int:
        """Truncate one target table and reload it. Raises on failure."""
        self.target.execute(self.target.dialect.truncate_table(table_name))
        return self.copier(self.source, self.target, table_name, self.batch_size)

    def _on_synchronized(self, table_name: str):
        def _done(row_count: int) -> None:
            self.run.mark_table_synchronized()
            safe_print(f"  ✓ {table_name}: {row_count} rows")
        return _done

    def _on_late(self, table_name: str):
        def _done(row_count: int) -> None:
            self.run.mark_table_late(table_name)
            safe_print(f"  ✓ {table_name}: {row_count} rows, after its timeout")
        return _done

    def sync_all(self, tables: List[TableDescriptor]) -> int:
        """
        Synchronize every table in discovery order.

        Args:
            tables: Replicable tables from the source catalog

        Returns:
            Number of tables attempted
        """
        units = [
            Unit(
                name=table.name,
                table_name=table.name,
                phase=SYNC_PHASE,
                action=lambda name=table.name: self.sync_table(name),
                on_success=self._on_synchronized(table.name),
                on_late_success=self._on_late(table.name),
            )
            for table in tables
        ]
        self.run.tables_attempted = len(units)

        results: List[UnitResult] = self.runner.run_all(units)
        for result in results:
            if not result.success:
                self.run.mark_table_failed(result.table_name)
                safe_print(f"  ✗ {result.table_name}: {result.error.splitlines()[-1]}")

        return len(units)
