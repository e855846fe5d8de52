"""
Tests for the replication orchestrator and the replicate() entry point.
"""
from unittest.mock import MagicMock, patch

import pytest

from conftest import FakeCopier, FakeDriverError, FakeEndpoint, audit_records, oracle_catalog

from srt.core import replication
from srt.core.dialect import OracleDialect
from srt.core.replication import POST_UPDATE_PHASE, PURGE_PHASE, ReplicationOrchestrator
from srt.core.types import ReplicationSettings, RunOutcome, RunState

DATE_BOUND = "TO_DATE(' 2024-03-01 00:00:00', 'SYYYY-MM-DD HH24:MI:SS')"

FULL_SEQUENCE = [
    RunState.PRE, RunState.RECONCILE, RunState.SYNC, RunState.REFRESH,
    RunState.POST, RunState.REPORT, RunState.DONE,
]


def make_source():
    return FakeEndpoint("prod", catalog=oracle_catalog(
        constraints=[('ORDERS', 'FK_ORDERS_CUSTOMER'), ('ORDER_LINES', 'FK_LINES_ORDER')],
        partitions=[
            ('SALES', 'INIT_P0', "TO_DATE(' 2000-01-01 00:00:00', 'SYYYY-MM-DD HH24:MI:SS')"),
            ('SALES', 'P_2024_02', DATE_BOUND),
            ('REGIONS', 'P_EU', "'DE', 'FR'"),
        ],
        tables=[
            ('CUSTOMERS', 'N', 'N'),
            ('ORDERS', 'N', 'N'),
            ('ORDER_LINES', 'N', 'N'),
            ('LOG_DATA_REPLICATION', 'N', 'N'),
            ('MV_SALES', 'N', 'Y'),
        ],
        views=[('MV_SALES',)],
    ))


def make_target():
    return FakeEndpoint("test", catalog=oracle_catalog(
        partitions=[
            ('SALES', 'INIT_P0', "TO_DATE(' 2000-01-01 00:00:00', 'SYYYY-MM-DD HH24:MI:SS')"),
            ('SALES', 'P_2023_01', "TO_DATE(' 2023-02-01 00:00:00', 'SYYYY-MM-DD HH24:MI:SS')"),
        ],
    ))


class TestReplicationOrchestrator:
    """End-to-end runs against in-memory endpoints."""

    def setup_method(self):
        self.source = make_source()
        self.target = make_target()
        self.notifier = MagicMock()
        self.run_log = MagicMock()

    def orchestrate(self, copier=None, **settings):
        return ReplicationOrchestrator(
            self.source,
            self.target,
            settings=ReplicationSettings(**settings),
            notifier=self.notifier,
            run_log=self.run_log,
            copier=copier or FakeCopier(),
        )

    def test_full_success(self):
        run = self.orchestrate().execute()

        assert run.state_history == FULL_SEQUENCE
        assert run.outcome == RunOutcome.FULL_SUCCESS
        assert run.tables_attempted == 3
        assert run.tables_synchronized == 3
        subject, body = self.notifier.send.call_args[0]
        assert subject.endswith("3 tables processed, FULL SUCCESS")
        assert [r['log_msg'] for r in audit_records(self.target)] == [
            "Replication started", "Replication ended"
        ]

    def test_phase_order_on_target(self):
        self.orchestrate().execute()

        statements = [s for s in self.target.statements() if not s.startswith('INSERT INTO LOG_DATA')]
        assert statements == [
            'PURGE RECYCLEBIN',
            'ALTER TABLE "ORDERS" DISABLE CONSTRAINT "FK_ORDERS_CUSTOMER"',
            'ALTER TABLE "ORDER_LINES" DISABLE CONSTRAINT "FK_LINES_ORDER"',
            'ALTER TABLE "SALES" DROP PARTITION "P_2023_01"',
            """ALTER TABLE "REGIONS" ADD PARTITION "P_EU" VALUES ( 'DE', 'FR' )""",
            f'ALTER TABLE "SALES" ADD PARTITION "P_2024_02" VALUES LESS THAN ( {DATE_BOUND} )',
            'TRUNCATE TABLE "CUSTOMERS"',
            'TRUNCATE TABLE "ORDERS"',
            'TRUNCATE TABLE "ORDER_LINES"',
            OracleDialect.REFRESH_VIEW_SQL,
            'ALTER TABLE "ORDERS" ENABLE CONSTRAINT "FK_ORDERS_CUSTOMER"',
            'ALTER TABLE "ORDER_LINES" ENABLE CONSTRAINT "FK_LINES_ORDER"',
        ]
        assert self.source.statements() == ['PURGE RECYCLEBIN']

    def test_partial_failure_end_to_end(self):
        copier = FakeCopier(failures={'ORDERS': FakeDriverError(1400, "ORA-01400: cannot insert NULL")})

        run = self.orchestrate(copier=copier).execute()

        assert run.state_history == FULL_SEQUENCE
        assert run.outcome == RunOutcome.PARTIAL_FAILURE
        assert run.failure_count == 1
        assert run.tables_synchronized == 2
        assert run.failed_tables == ['ORDERS']
        assert run.entries[0].phase == 'truncate/insert together'
        subject, body = self.notifier.send.call_args[0]
        assert "COMPLETED, 1 failed" in subject
        assert "Table: ORDERS" in body
        self.run_log.write.assert_called_once_with(run.entries)

    def test_constraints_reenabled_after_failures(self):
        self.target.fail_on['DISABLE CONSTRAINT "FK_LINES_ORDER"'] = FakeDriverError(2443, "ORA-02443")
        copier = FakeCopier(failures={'CUSTOMERS': RuntimeError('copy failed')})

        run = self.orchestrate(copier=copier).execute()

        disables = [s for s in self.target.statements() if 'DISABLE CONSTRAINT' in s]
        enables = [s for s in self.target.statements() if 'ENABLE CONSTRAINT' in s and 'DISABLE' not in s]
        assert len(disables) == len(enables) == 2
        assert run.state == RunState.DONE

    def test_constraints_enabled_after_all_parallel_work(self):
        run = self.orchestrate(parallel_workers=4).execute()

        statements = self.target.statements()
        first_enable = next(i for i, s in enumerate(statements) if 'ENABLE CONSTRAINT' in s and 'DISABLE' not in s)
        last_work = max(i for i, s in enumerate(statements) if 'PARTITION' in s or 'TRUNCATE' in s)
        assert last_work < first_enable
        assert run.outcome == RunOutcome.FULL_SUCCESS

    def test_catalog_failure_aborts_before_any_constraint_change(self):
        self.source.catalog[OracleDialect.TABLES_SQL] = FakeDriverError(942, "ORA-00942: table or view does not exist")

        run = self.orchestrate().execute()

        assert run.state == RunState.ABORTED
        assert run.state_history == [RunState.PRE, RunState.ABORTED]
        assert run.outcome == RunOutcome.FATAL_FAILURE
        assert not any('CONSTRAINT' in s for s in self.target.statements())
        fatal = audit_records(self.target, 'FATAL')
        assert len(fatal) == 1
        assert "ORA-00942" in fatal[0]['log_msg']
        assert "Traceback" in fatal[0]['log_msg']
        assert run.entries == []
        self.run_log.write.assert_not_called()
        self.notifier.send.assert_not_called()

    def test_fatal_message_truncated_to_backtrace_length(self):
        self.source.catalog[OracleDialect.REFERENTIAL_CONSTRAINTS_SQL] = RuntimeError('x' * 5000)

        run = self.orchestrate(backtrace_length=1999).execute()

        assert len(run.fatal_error) == 1999

    def test_unexpected_error_after_disable_leaves_constraints(self):
        self.run_log.write.side_effect = RuntimeError("log table full")

        run = self.orchestrate().execute()

        assert run.state == RunState.ABORTED
        assert RunState.REPORT in run.state_history
        assert len(audit_records(self.target, 'FATAL')) == 1
        assert [r['log_msg'] for r in audit_records(self.target, 'INFO')] == ["Replication started"]

    def test_purge_failure_is_isolated(self):
        self.source.fail_on['PURGE RECYCLEBIN'] = FakeDriverError(38301, "ORA-38301: cannot perform DDL")

        run = self.orchestrate().execute()

        assert run.state == RunState.DONE
        assert [(e.table_name, e.phase) for e in run.entries] == [('N/A', PURGE_PHASE)]

    def test_purge_can_be_disabled(self):
        self.orchestrate(purge_recyclebin=False).execute()

        assert 'PURGE RECYCLEBIN' not in self.target.statements()
        assert self.source.statements() == []

    def test_post_replication_statements_run_after_enable(self):
        statements = ["UPDATE app_settings SET env_name = 'TEST'", "DELETE FROM outbound_mail"]
        self.target.fail_on['outbound_mail'] = RuntimeError('no such table')

        run = self.orchestrate(post_replication_sql=statements).execute()

        executed = self.target.statements()
        last_enable = max(i for i, s in enumerate(executed) if 'ENABLE CONSTRAINT' in s and 'DISABLE' not in s)
        assert executed.index(statements[0]) > last_enable
        assert statements[1] in executed
        assert [e.phase for e in run.entries] == [POST_UPDATE_PHASE]

    def test_report_notes_truncated_tables(self):
        copier = FakeCopier(failures={'ORDER_LINES': RuntimeError('copy failed')})

        self.orchestrate(copier=copier).execute()

        _, body = self.notifier.send.call_args[0]
        assert "left truncated on target: ORDER_LINES" in body


class TestReplicate:
    """Test the replicate() entry point."""

    def test_missing_source_env(self, config_home):
        result = replication.replicate("test")

        assert result.success is False
        assert "source_env" in result.message

    def test_same_source_and_target(self, config_home):
        result = replication.replicate("test", source_env="test")

        assert result.success is False
        assert "same" in result.message

    def test_invalid_parallel_workers(self, config_home):
        result = replication.replicate("test", source_env="prod", parallel_workers=0)

        assert result.success is False
        assert "parallel_workers" in result.message

    def test_unknown_environment(self, config_home, envs_file):
        result = replication.replicate("test", source_env="prod")

        assert result.success is False
        assert "Environment 'prod' not found" in result.message

    def _replicate_with(self, source, target, copier=None, **kwargs):
        def from_environment(name, key=None):
            return {'prod': source, 'test': target}[name]

        real = ReplicationOrchestrator.__init__

        def init(self, *args, **kw):
            kw['copier'] = copier or FakeCopier()
            kw['run_log'] = MagicMock()
            real(self, *args, **kw)

        with patch('srt.core.replication.DatabaseEndpoint.from_environment', side_effect=from_environment), \
                patch.object(ReplicationOrchestrator, '__init__', init):
            return replication.replicate("test", notifier=MagicMock(), **kwargs)

    def test_source_env_from_configuration(self, config_home):
        from srt.core.config import set_config
        set_config('SOURCE_ENV', 'prod')
        source, target = make_source(), make_target()

        result = self._replicate_with(source, target)

        assert result.success is True
        assert result.data.source_env == 'prod'
        assert result.record_count == 3
        assert "completed successfully" in result.message
        assert source.disposed and target.disposed

    def test_partial_failure_result(self, config_home):
        copier = FakeCopier(failures={'ORDERS': RuntimeError('copy failed')})

        result = self._replicate_with(make_source(), make_target(), copier=copier, source_env='prod')

        assert result.success is True
        assert result.data.outcome == RunOutcome.PARTIAL_FAILURE
        assert "1 failure(s)" in result.message

    def test_aborted_run_result(self, config_home):
        source = make_source()
        source.catalog[OracleDialect.PARTITIONS_SQL] = RuntimeError('lost connection')

        result = self._replicate_with(source, make_target(), source_env='prod')

        assert result.success is False
        assert "aborted" in result.message
        assert "lost connection" in result.error_details
        assert result.data.outcome == RunOutcome.FATAL_FAILURE

    def test_overrides_reach_settings(self, config_home):
        captured = {}
        real = replication._resolve_settings

        def resolve(workers, timeout):
            settings = real(workers, timeout)
            captured['settings'] = settings
            return settings

        with patch('srt.core.replication._resolve_settings', side_effect=resolve):
            self._replicate_with(make_source(), make_target(), source_env='prod',
                                 parallel_workers=3, unit_timeout=30)

        assert captured['settings'].parallel_workers == 3
        assert captured['settings'].unit_timeout == 30

    @pytest.mark.parametrize("timeout", [0, -5])
    def test_invalid_unit_timeout(self, config_home, timeout):
        result = replication.replicate("test", source_env="prod", unit_timeout=timeout)

        assert result.success is False
        assert "unit_timeout" in result.message
