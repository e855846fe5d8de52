"""
SRT Tool Connectivity

Source and target endpoints of a replication and the bulk row copier.

An endpoint wraps one SQLAlchemy engine. Components receive the endpoint of
the side they act on, so "run this on target" is always an explicit
parameter and never a qualifier embedded in SQL text.
"""

from typing import Any, Dict, Iterator, List, Optional, Tuple
import pandas as pd
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from srt.core.dialect import get_dialect
from srt.core.environment import get_connection_url, _initialize_oracle_client


def detect_database_type(connection_url: str) -> str:
    """
    Detect database type from connection URL.

    Args:
        connection_url: SQLAlchemy connection URL

    Returns:
        Database type: 'postgresql', 'oracle', 'mysql', 'mssql', or 'unknown'
    """
    url_lower = connection_url.lower()

    if 'postgresql' in url_lower or 'postgres' in url_lower:
        return 'postgresql'
    elif 'oracle' in url_lower:
        return 'oracle'
    elif 'mysql' in url_lower:
        return 'mysql'
    elif 'mssql' in url_lower or 'sqlserver' in url_lower:
        return 'mssql'
    else:
        return 'unknown'


class DatabaseEndpoint:
    """One side (source or target) of a replication."""

    def __init__(self, name: str, connection_url: str, engine: Optional[Engine] = None):
        self.name = name
        self.connection_url = connection_url
        self.db_type = detect_database_type(connection_url)
        self.dialect = get_dialect(self.db_type)
        self._engine = engine

    @classmethod
    def from_environment(cls, env_name: str, encryption_key: Optional[str] = None) -> 'DatabaseEndpoint':
        """Build an endpoint from a named environment."""
        return cls(env_name, get_connection_url(env_name, encryption_key))

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            if self.db_type == 'oracle':
                _initialize_oracle_client()
            self._engine = create_engine(self.connection_url)
        return self._engine

    def query(self, sql: str, params: Optional[Dict[str, Any]] = None) -> pd.DataFrame:
        """Run a read-only query and return the result as a DataFrame with lower-case columns."""
        with self.engine.connect() as connection:
            result = pd.read_sql_query(text(sql), connection, params=params)
        result.columns = [str(column).lower() for column in result.columns]
        return result

    def execute(self, statement: str, params: Optional[Dict[str, Any]] = None) -> None:
        """Execute one statement in its own transaction and commit it."""
        with self.engine.begin() as connection:
            connection.execute(text(statement), params or {})

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()

    def __repr__(self) -> str:
        return f"DatabaseEndpoint(name={self.name!r}, db_type={self.db_type!r})"


def _fetch_batches(result, batch_size: int) -> Iterator[List[Tuple]]:
    while True:
        rows = result.fetchmany(batch_size)
        if not rows:
            return
        yield rows


def copy_table_rows(
    source: DatabaseEndpoint,
    target: DatabaseEndpoint,
    table_name: str,
    batch_size: int = 10000
) -> int:
    """
    Copy every row of a table from source to target.

    Rows are streamed from the source cursor in batches and inserted on the
    target with executemany, all inside one target transaction that commits
    when the last batch is written. Values go from driver to driver as
    returned by the source, without a DataFrame in between, so no type
    coercion happens on the way.

    Args:
        source: Source endpoint
        target: Target endpoint
        table_name: Table name (as reported by the source catalog)
        batch_size: Rows per fetch / insert batch

    Returns:
        Number of rows copied
    """
    total = 0
    with source.engine.connect() as source_conn, target.engine.begin() as target_conn:
        result = source_conn.execution_options(stream_results=True).execute(
            text(source.dialect.select_all(table_name))
        )
        column_count = len(result.keys())
        insert = text(target.dialect.insert_values(table_name, column_count))

        for rows in _fetch_batches(result, batch_size):
            target_conn.execute(
                insert,
                [{f"p{index}": value for index, value in enumerate(row)} for row in rows]
            )
            total += len(rows)
    return total
