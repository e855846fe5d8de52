"""
SRT Tool Catalog Dialect

Catalog queries and generated statements for the supported replication
backend. Every statement is built for one side of the replication and is
executed through that side's endpoint, so no remote qualifier is ever part of
the SQL text.
"""

from srt.core.types import BoundaryKind, ConstraintDescriptor, PartitionDescriptor
from srt.core.exceptions import ValidationError


class OracleDialect:
    """Oracle data dictionary queries and DDL."""

    name = 'oracle'

    REFERENTIAL_CONSTRAINTS_SQL = """
        SELECT table_name, constraint_name
          FROM user_constraints
         WHERE constraint_type = 'R'
         ORDER BY table_name, constraint_name
    """

    PARTITIONS_SQL = """
        SELECT table_name, partition_name, high_value
          FROM user_tab_partitions
         ORDER BY table_name, partition_name
    """

    TABLES_SQL = """
        SELECT ut.table_name,
               ut.temporary,
               CASE WHEN mv.mview_name IS NULL THEN 'N' ELSE 'Y' END AS is_mview
          FROM user_tables ut
          LEFT JOIN user_mviews mv ON mv.mview_name = ut.table_name
         ORDER BY ut.table_name
    """

    DEMAND_VIEWS_SQL = """
        SELECT mview_name
          FROM user_mviews
         WHERE refresh_mode = 'DEMAND'
         ORDER BY mview_name
    """

    PURGE_RECYCLEBIN_SQL = "PURGE RECYCLEBIN"

    REFRESH_VIEW_SQL = "BEGIN DBMS_MVIEW.REFRESH(:view_name); END;"

    @staticmethod
    def quote(identifier: str) -> str:
        """Quote an identifier exactly as the catalog reported it."""
        return '"' + identifier.replace('"', '""') + '"'

    def disable_constraint(self, constraint: ConstraintDescriptor) -> str:
        return (f"ALTER TABLE {self.quote(constraint.table_name)} "
                f"DISABLE CONSTRAINT {self.quote(constraint.constraint_name)}")

    def enable_constraint(self, constraint: ConstraintDescriptor) -> str:
        return (f"ALTER TABLE {self.quote(constraint.table_name)} "
                f"ENABLE CONSTRAINT {self.quote(constraint.constraint_name)}")

    def drop_partition(self, partition: PartitionDescriptor) -> str:
        return (f"ALTER TABLE {self.quote(partition.table_name)} "
                f"DROP PARTITION {self.quote(partition.partition_name)}")

    def add_partition(self, partition: PartitionDescriptor) -> str:
        """
        Build the ADD PARTITION statement for a partition missing on target.

        Date boundaries belong to range-partitioned tables and get a
        ``VALUES LESS THAN`` clause; any other boundary is a value list.
        """
        if partition.boundary_kind == BoundaryKind.DATE_RANGE:
            bound = f"VALUES LESS THAN ( {partition.high_value} )"
        else:
            bound = f"VALUES ( {partition.high_value} )"
        return (f"ALTER TABLE {self.quote(partition.table_name)} "
                f"ADD PARTITION {self.quote(partition.partition_name)} {bound}")

    def truncate_table(self, table_name: str) -> str:
        return f"TRUNCATE TABLE {self.quote(table_name)}"

    def select_all(self, table_name: str) -> str:
        return f"SELECT * FROM {self.quote(table_name)}"

    def insert_values(self, table_name: str, column_count: int) -> str:
        """
        INSERT without a column list, binds :p0 .. :pN in SELECT * order.

        Source and target share the same table structure, so the positional
        form matches the source column order.
        """
        binds = ', '.join(f":p{index}" for index in range(column_count))
        return f"INSERT INTO {self.quote(table_name)} VALUES ({binds})"


DIALECTS = {
    'oracle': OracleDialect,
}


def get_dialect(db_type: str):
    """Return the dialect for a database type detected from a connection URL."""
    try:
        return DIALECTS[db_type]()
    except KeyError:
        raise ValidationError(
            f"Replication is not supported for database type '{db_type}'. "
            f"Supported types: {sorted(DIALECTS)}"
        )
