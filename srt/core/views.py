"""
SRT Tool View Refresher

Refreshes the demand-mode materialized views on target once table content
has been reloaded.
"""

from typing import List

from srt.core.connectivity import DatabaseEndpoint
from srt.core.types import UnitResult
from srt.core.units import Unit, UnitRunner

REFRESH_PHASE = 'refresh MV'


class ViewRefresher:

    def __init__(self, target: DatabaseEndpoint, runner: UnitRunner):
        self.target = target
        self.runner = runner

    def refresh_all(self, demand_views: List[str]) -> List[UnitResult]:
        statement = self.target.dialect.REFRESH_VIEW_SQL
        return self.runner.run_all([
            Unit(
                name=view,
                table_name=view,
                phase=REFRESH_PHASE,
                action=lambda view=view: self.target.execute(statement, {'view_name': view}),
            )
            for view in demand_views
        ])
