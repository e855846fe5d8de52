"""
SRT Tool Core Replication

Runs a full refresh of a target schema from a source schema:

    PRE        purge recycle bins, read both catalogs, disable foreign keys
    RECONCILE  drop/add partitions so target matches source
    SYNC       truncate and reload every replicable table
    REFRESH    refresh demand-mode materialized views
    POST       enable foreign keys, run post-replication statements
    REPORT     build, store and send the run report

Failures of individual units are collected on the run and never change the
sequence. Anything else ends the run in ABORTED with a single FATAL audit
record; constraints disabled before that point stay disabled.
"""

import traceback
from dataclasses import replace
from typing import List, Optional

from srt.core.audit import AuditLog, RunLogStore
from srt.core.catalog import CatalogReader
from srt.core.connectivity import DatabaseEndpoint
from srt.core.constraints import ConstraintGate
from srt.core.config import get_config_manager, get_replication_settings
from srt.core.exceptions import ReplicationError, ValidationError
from srt.core.notification import ConsoleNotifier
from srt.core.partitions import PartitionReconciler
from srt.core.reporting import RunReporter
from srt.core.synchronizer import RowCopier, TableSynchronizer
from srt.core.types import (
    NOT_APPLICABLE, OperationResult, ReplicationRun, ReplicationSettings, RunOutcome, RunState,
    UnitResult
)
from srt.core.units import Unit, UnitRunner
from srt.core.utils import (
    create_error_result, create_success_result, get_error_detail, handle_exception, safe_print,
    truncate, validate_required_params
)
from srt.core.views import ViewRefresher

PURGE_PHASE = 'purge recyclebin'
POST_UPDATE_PHASE = 'post-replication update'


class ReplicationOrchestrator:
    """Sequences the phases of one replication run and owns its state."""

    def __init__(
        self,
        source: DatabaseEndpoint,
        target: DatabaseEndpoint,
        settings: Optional[ReplicationSettings] = None,
        notifier=None,
        audit: Optional[AuditLog] = None,
        run_log: Optional[RunLogStore] = None,
        copier: Optional[RowCopier] = None,
        procedure_name: str = 'replicate_tables'
    ):
        self.source = source
        self.target = target
        self.settings = settings or ReplicationSettings()
        self.audit = audit or AuditLog(
            target, self.settings.audit_log_table, message_length=self.settings.backtrace_length
        )
        self.run = ReplicationRun(
            target_env=target.name,
            source_env=source.name,
            procedure_name=procedure_name,
        )

        # Constraints, views and housekeeping run one at a time; partitions
        # and tables may run on a pool
        self.serial_runner = UnitRunner(
            self.run, self.settings.error_detail_length, workers=1, timeout=self.settings.unit_timeout
        )
        self.pool_runner = UnitRunner(
            self.run, self.settings.error_detail_length,
            workers=self.settings.parallel_workers, timeout=self.settings.unit_timeout
        )

        self.catalog = CatalogReader(source, target, self.settings.log_table_prefix)
        self.constraints = ConstraintGate(target, self.serial_runner)
        self.partitions = PartitionReconciler(target, self.pool_runner, self.settings.seed_partition_prefix)
        self.synchronizer = TableSynchronizer(
            source, target, self.run, self.pool_runner,
            batch_size=self.settings.copy_batch_size, copier=copier
        )
        self.views = ViewRefresher(target, self.serial_runner)
        self.reporter = RunReporter(
            store=run_log or RunLogStore(target, self.settings.run_log_table),
            notifier=notifier if notifier is not None else ConsoleNotifier(),
            max_entries=self.settings.max_report_entries,
        )

    def _enter(self, state: RunState, description: str) -> None:
        self.run.transition(state)
        safe_print(f"→ [{state.value}] {description}")

    def purge_recyclebins(self) -> List[UnitResult]:
        units = []
        for endpoint in (self.target, self.source):
            units.append(Unit(
                name=f"{endpoint.name}: {endpoint.dialect.PURGE_RECYCLEBIN_SQL}",
                table_name=NOT_APPLICABLE,
                phase=PURGE_PHASE,
                action=lambda endpoint=endpoint: endpoint.execute(endpoint.dialect.PURGE_RECYCLEBIN_SQL),
            ))
        return self.serial_runner.run_all(units)

    def run_post_replication_updates(self) -> List[UnitResult]:
        return self.serial_runner.run_all([
            Unit(
                name=statement,
                table_name=NOT_APPLICABLE,
                phase=POST_UPDATE_PHASE,
                action=lambda statement=statement: self.target.execute(statement),
            )
            for statement in self.settings.post_replication_sql
        ])

    def _abort(self, e: Exception) -> None:
        message = truncate(
            f"{get_error_detail(e)}\n{traceback.format_exc()}", self.settings.backtrace_length
        )
        self.run.fatal_error = message
        self.run.transition(RunState.ABORTED)
        self.audit.fatal(self.run.procedure_name, message)

    def execute(self) -> ReplicationRun:
        """
        Run every phase against the configured endpoints.

        Returns:
            The finished ReplicationRun, in state DONE or ABORTED
        """
        run = self.run
        settings = self.settings
        self.audit.info(run.procedure_name, "Replication started")

        try:
            safe_print(f"→ [{RunState.PRE.value}] Reading catalogs of {self.source.name} and {self.target.name}")
            if settings.purge_recyclebin:
                self.purge_recyclebins()
            snapshot = self.catalog.snapshot()
            safe_print(f"  {len(snapshot.tables)} tables, {len(snapshot.constraints)} foreign keys, "
                       f"{len(snapshot.demand_views)} demand-mode views")
            self.constraints.disable_all(snapshot.constraints)

            self._enter(RunState.RECONCILE, "Reconciling partitions")
            plan = self.partitions.reconcile(snapshot.source_partitions, snapshot.target_partitions)
            if plan.is_empty:
                safe_print("  Partitions already match")
            else:
                safe_print(f"  {len(plan.drops)} to drop, {len(plan.adds)} to add")
                self.partitions.apply(plan)

            self._enter(RunState.SYNC, f"Synchronizing {len(snapshot.tables)} tables")
            self.synchronizer.sync_all(snapshot.tables)

            self._enter(RunState.REFRESH, "Refreshing materialized views")
            self.views.refresh_all(snapshot.demand_views)

            self._enter(RunState.POST, "Enabling constraints")
            self.constraints.enable_all(snapshot.constraints)
            self.run_post_replication_updates()

            self._enter(RunState.REPORT, "Writing run report")
            self.reporter.finalize(run)

            self.audit.info(run.procedure_name, "Replication ended")
            run.transition(RunState.DONE)
        except Exception as e:
            self._abort(e)

        return run


def _resolve_settings(parallel_workers: Optional[int], unit_timeout: Optional[float]) -> ReplicationSettings:
    settings = get_replication_settings()
    if parallel_workers is not None:
        if parallel_workers < 1:
            raise ValidationError(f"parallel_workers must be at least 1, got {parallel_workers}")
        settings = replace(settings, parallel_workers=parallel_workers)
    if unit_timeout is not None:
        if unit_timeout <= 0:
            raise ValidationError(f"unit_timeout must be positive, got {unit_timeout}")
        settings = replace(settings, unit_timeout=unit_timeout)
    return settings


def replicate(
    target_env: str,
    source_env: Optional[str] = None,
    source_encryption_key: Optional[str] = None,
    target_encryption_key: Optional[str] = None,
    parallel_workers: Optional[int] = None,
    unit_timeout: Optional[float] = None,
    notifier=None
) -> OperationResult:
    """
    Refresh a target environment from a source environment.

    Args:
        target_env: Environment to refresh
        source_env: Environment to copy from (defaults to the SOURCE_ENV setting)
        source_encryption_key: Encryption key of the source environment, if encrypted
        target_encryption_key: Encryption key of the target environment, if encrypted
        parallel_workers: Number of tables/partitions processed at once
        unit_timeout: Seconds after which a single unit counts as failed
        notifier: Object with send(subject, body); defaults to the console

    Returns:
        OperationResult whose data is the ReplicationRun. success is False
        only when the run was aborted.
    """
    try:
        source_env = source_env or get_config_manager().get_config_value('SOURCE_ENV')
        validate_required_params(
            {'target_env': target_env, 'source_env': source_env},
            ['target_env', 'source_env']
        )
        if source_env == target_env:
            raise ReplicationError(f"Source and target environment are the same: '{target_env}'")

        settings = _resolve_settings(parallel_workers, unit_timeout)

        source = DatabaseEndpoint.from_environment(source_env, source_encryption_key)
        target = DatabaseEndpoint.from_environment(target_env, target_encryption_key)
        try:
            run = ReplicationOrchestrator(source, target, settings=settings, notifier=notifier).execute()
        finally:
            source.dispose()
            target.dispose()

        if run.outcome == RunOutcome.FATAL_FAILURE:
            return create_error_result(
                f"Replication of '{target_env}' aborted",
                run.fatal_error,
                data=run
            )
        if run.outcome == RunOutcome.PARTIAL_FAILURE:
            return create_success_result(
                f"Replication of '{target_env}' completed with {run.failure_count} failure(s)",
                data=run,
                record_count=run.tables_synchronized
            )
        return create_success_result(
            f"Replication of '{target_env}' completed successfully",
            data=run,
            record_count=run.tables_synchronized
        )

    except Exception as e:
        return handle_exception(e, "replication")
