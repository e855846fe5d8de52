"""
SRT Tool Partition Reconciler

Aligns the partition layout of the target with the source before any data
moves: partitions only the target has are dropped, partitions only the source
has are added with the source boundary. Seed partitions (named with the
reserved prefix) are structural and never touched.
"""

from typing import Iterable, List

from srt.core.connectivity import DatabaseEndpoint
from srt.core.types import PartitionDescriptor, PartitionPlan, UnitResult
from srt.core.units import Unit, UnitRunner


def _sort_key(partition: PartitionDescriptor):
    return partition.key


def is_seed_partition(partition: PartitionDescriptor, seed_prefix: str) -> bool:
    return bool(seed_prefix) and partition.partition_name.upper().startswith(seed_prefix.upper())


def reconcile(
    source_partitions: Iterable[PartitionDescriptor],
    target_partitions: Iterable[PartitionDescriptor],
    seed_prefix: str = 'INIT_'
) -> PartitionPlan:
    """
    Compute the partitions to drop from and add to the target.

    Partitions are matched by (table, partition name) only. Both inputs come
    from one catalog snapshot, and a key can only be missing on one side, so
    the two sets are disjoint.

    Args:
        source_partitions: Partitions of the source schema
        target_partitions: Partitions of the target schema
        seed_prefix: Reserved name prefix of seed partitions

    Returns:
        PartitionPlan with drops and adds, each sorted by (table, partition)
    """
    source = {p.key: p for p in source_partitions if not is_seed_partition(p, seed_prefix)}
    target = {p.key: p for p in target_partitions if not is_seed_partition(p, seed_prefix)}

    drops = sorted((p for key, p in target.items() if key not in source), key=_sort_key)
    adds = sorted((p for key, p in source.items() if key not in target), key=_sort_key)

    return PartitionPlan(drops=drops, adds=adds)


class PartitionReconciler:
    """Applies a PartitionPlan to the target, one isolated unit per partition."""

    def __init__(self, target: DatabaseEndpoint, runner: UnitRunner, seed_prefix: str = 'INIT_'):
        self.target = target
        self.runner = runner
        self.seed_prefix = seed_prefix

    def reconcile(
        self,
        source_partitions: List[PartitionDescriptor],
        target_partitions: List[PartitionDescriptor]
    ) -> PartitionPlan:
        return reconcile(source_partitions, target_partitions, self.seed_prefix)

    def build_add_partition_statement(self, partition: PartitionDescriptor) -> str:
        return self.target.dialect.add_partition(partition)

    def _unit(self, partition: PartitionDescriptor, statement: str, phase: str) -> Unit:
        return Unit(
            name=partition.partition_name,
            table_name=partition.table_name,
            phase=f"{phase}: {partition.partition_name}",
            action=lambda: self.target.execute(statement),
        )

    def apply_drops(self, partitions: List[PartitionDescriptor]) -> List[UnitResult]:
        return self.runner.run_all([
            self._unit(p, self.target.dialect.drop_partition(p), 'partition to drop')
            for p in partitions
        ])

    def apply_adds(self, partitions: List[PartitionDescriptor]) -> List[UnitResult]:
        return self.runner.run_all([
            self._unit(p, self.build_add_partition_statement(p), 'partition to add')
            for p in partitions
        ])

    def apply(self, plan: PartitionPlan) -> List[UnitResult]:
        """All drops, then all adds."""
        return self.apply_drops(plan.drops) + self.apply_adds(plan.adds)
