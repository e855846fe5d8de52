"""
SRT Tool Catalog Reader

Read-only discovery of what has to be replicated: referential constraints,
partitions on both sides, replicable tables and demand-mode materialized
views. A failure here is fatal to the run and is raised as CatalogError.
"""

from typing import List

import pandas as pd

from srt.core.connectivity import DatabaseEndpoint
from srt.core.exceptions import CatalogError
from srt.core.types import (
    CatalogSnapshot, ConstraintDescriptor, PartitionDescriptor, Side, TableDescriptor
)
from srt.core.utils import get_error_detail


def _flag(value) -> bool:
    return str(value).strip().upper() in ('Y', 'YES', 'TRUE', '1')


def _text(value) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ''
    return str(value)


class CatalogReader:
    """Reads table, partition, constraint and view metadata from both sides."""

    def __init__(self, source: DatabaseEndpoint, target: DatabaseEndpoint, log_table_prefix: str = 'LOG_'):
        self.source = source
        self.target = target
        self.log_table_prefix = log_table_prefix

    def _endpoint(self, side: Side) -> DatabaseEndpoint:
        return self.source if side == Side.SOURCE else self.target

    def _query(self, side: Side, sql: str, what: str) -> pd.DataFrame:
        endpoint = self._endpoint(side)
        try:
            return endpoint.query(sql)
        except Exception as e:
            raise CatalogError(
                f"Failed to read {what} from {side.value} catalog '{endpoint.name}': {get_error_detail(e)}",
                type(e).__name__
            ) from e

    def list_referential_constraints(self) -> List[ConstraintDescriptor]:
        """Foreign keys of the source schema, ordered by table and constraint name."""
        frame = self._query(Side.SOURCE, self.source.dialect.REFERENTIAL_CONSTRAINTS_SQL,
                            "referential constraints")
        return [
            ConstraintDescriptor(table_name=row.table_name, constraint_name=row.constraint_name)
            for row in frame.itertuples(index=False)
        ]

    def list_partitions(self, side: Side) -> List[PartitionDescriptor]:
        endpoint = self._endpoint(side)
        frame = self._query(side, endpoint.dialect.PARTITIONS_SQL, "partitions")
        return [
            PartitionDescriptor(
                table_name=row.table_name,
                partition_name=row.partition_name,
                high_value=_text(row.high_value),
            )
            for row in frame.itertuples(index=False)
        ]

    def list_replicable_tables(self) -> List[TableDescriptor]:
        """
        Tables whose content is copied.

        Temporary tables are always empty from another session, log tables
        belong to the environment itself and materialized views are refreshed
        instead of copied, so all three are left out.
        """
        frame = self._query(Side.SOURCE, self.source.dialect.TABLES_SQL, "tables")
        tables = []
        for row in frame.itertuples(index=False):
            table = TableDescriptor(
                name=row.table_name,
                is_temporary=_flag(row.temporary),
                is_materialized_view=_flag(row.is_mview),
            )
            if table.is_temporary or table.is_materialized_view:
                continue
            if self.log_table_prefix and table.name.upper().startswith(self.log_table_prefix.upper()):
                continue
            tables.append(table)
        return tables

    def list_demand_views(self) -> List[str]:
        frame = self._query(Side.SOURCE, self.source.dialect.DEMAND_VIEWS_SQL, "materialized views")
        return [row.mview_name for row in frame.itertuples(index=False)]

    def snapshot(self) -> CatalogSnapshot:
        """Read everything a run needs, once."""
        return CatalogSnapshot(
            constraints=self.list_referential_constraints(),
            source_partitions=self.list_partitions(Side.SOURCE),
            target_partitions=self.list_partitions(Side.TARGET),
            tables=self.list_replicable_tables(),
            demand_views=self.list_demand_views(),
        )
