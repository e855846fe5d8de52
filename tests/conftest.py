import threading

import pandas as pd
import pytest

from srt.core import config as core_config
from srt.core.dialect import OracleDialect
from srt.srt_utils import variables


class FakeDriverError(Exception):
    """Driver error carrying an error code the way python-oracledb errors do."""

    def __init__(self, code, message):
        super().__init__(message)
        self.code = code


class FakeEndpoint:
    """In-memory stand-in for DatabaseEndpoint.

    Catalog queries are answered from ``catalog`` (SQL text -> DataFrame or
    exception), executed statements are recorded, and any statement that
    contains a key of ``fail_on`` raises the mapped exception.
    """

    def __init__(self, name, catalog=None, fail_on=None, engine=None):
        self.name = name
        self.db_type = 'oracle'
        self.dialect = OracleDialect()
        self.catalog = catalog or {}
        self.fail_on = dict(fail_on or {})
        self.engine = engine
        self.executed = []
        self.disposed = False
        self._lock = threading.Lock()

    def query(self, sql, params=None):
        result = self.catalog.get(sql)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return pd.DataFrame()
        return result.copy()

    def execute(self, statement, params=None):
        with self._lock:
            self.executed.append((statement, params))
        for fragment, error in self.fail_on.items():
            if fragment in statement:
                raise error

    def statements(self, prefix=''):
        return [statement for statement, _ in self.executed if statement.startswith(prefix)]

    def dispose(self):
        self.disposed = True


class FakeCopier:
    """Row copier that returns canned row counts and raises for chosen tables."""

    def __init__(self, rows=None, failures=None):
        self.rows = rows or {}
        self.failures = failures or {}
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, source, target, table_name, batch_size):
        with self._lock:
            self.calls.append(table_name)
        if table_name in self.failures:
            raise self.failures[table_name]
        return self.rows.get(table_name, 0)


def oracle_catalog(constraints=(), partitions=(), tables=(), views=()):
    """Build the catalog answers of one side from plain tuples."""
    return {
        OracleDialect.REFERENTIAL_CONSTRAINTS_SQL: pd.DataFrame(
            list(constraints), columns=['table_name', 'constraint_name']),
        OracleDialect.PARTITIONS_SQL: pd.DataFrame(
            list(partitions), columns=['table_name', 'partition_name', 'high_value']),
        OracleDialect.TABLES_SQL: pd.DataFrame(
            list(tables), columns=['table_name', 'temporary', 'is_mview']),
        OracleDialect.DEMAND_VIEWS_SQL: pd.DataFrame(
            list(views), columns=['mview_name']),
    }


def audit_records(endpoint, level=None):
    """Parameters of the audit inserts an endpoint received."""
    records = [
        params for statement, params in endpoint.executed
        if statement.startswith('INSERT INTO LOG_DATA_REPLICATION')
    ]
    if level is not None:
        records = [params for params in records if params['log_level'] == level]
    return records


@pytest.fixture
def envs_file(tmp_path, monkeypatch):
    """Point the environments file to a temporary location."""
    path = str(tmp_path / "environments.ini")
    monkeypatch.setattr(variables, "ENVS_FILE", path)
    return path


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Isolated SRT_TOOL_HOME with a fresh configuration singleton."""
    monkeypatch.setenv("SRT_TOOL_HOME", str(tmp_path))
    monkeypatch.setattr(core_config, "_config_manager", None)
    return tmp_path


@pytest.fixture
def source_endpoint():
    return FakeEndpoint("prod")


@pytest.fixture
def target_endpoint():
    return FakeEndpoint("test")
