"""
SRT Tool Constraint Gate

Disables the referential constraints on target before the bulk load and
enables them again afterwards. Each constraint is its own unit: one that is
already disabled, or no longer exists on target, never blocks the others.
"""

from typing import List

from srt.core.connectivity import DatabaseEndpoint
from srt.core.types import ConstraintDescriptor, UnitResult
from srt.core.units import Unit, UnitRunner

DISABLE_PHASE = 'disabling constraints'
ENABLE_PHASE = 'enable constraints'


class ConstraintGate:
    """Toggles foreign keys on the target side."""

    def __init__(self, target: DatabaseEndpoint, runner: UnitRunner):
        self.target = target
        self.runner = runner

    def _units(self, constraints: List[ConstraintDescriptor], build_statement, phase: str) -> List[Unit]:
        return [
            Unit(
                name=constraint.constraint_name,
                table_name=constraint.table_name,
                phase=phase,
                action=lambda statement=build_statement(constraint): self.target.execute(statement),
            )
            for constraint in constraints
        ]

    def disable_all(self, constraints: List[ConstraintDescriptor]) -> List[UnitResult]:
        return self.runner.run_all(
            self._units(constraints, self.target.dialect.disable_constraint, DISABLE_PHASE)
        )

    def enable_all(self, constraints: List[ConstraintDescriptor]) -> List[UnitResult]:
        """Enable every constraint of the original list, whatever happened to the disables."""
        return self.runner.run_all(
            self._units(constraints, self.target.dialect.enable_constraint, ENABLE_PHASE)
        )
