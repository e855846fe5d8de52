"""
SRT Tool Unit Isolation

Every independent piece of replication work (one constraint toggle, one
partition action, one table copy, one view refresh) runs as a unit. A unit
that raises is recorded as a LogEntry on the run and the next unit starts;
no unit failure ever unwinds past its own boundary.

Units run sequentially by default. With more than one worker, or with a
timeout, they run on a thread pool and the phase ends once every unit has
either finished or timed out. A unit that timed out is abandoned: it is
recorded as failed, its slot goes to the next unit and its thread is left to
finish on its own. If it then succeeds, on_late_success lets the caller
correct the run.
"""

import time
import concurrent.futures
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from srt.core.types import LogEntry, ReplicationRun, UnitResult
from srt.core.utils import format_error_message, safe_print

# Seconds between timeout checks while waiting on a pool
_POLL_INTERVAL = 0.5


@dataclass
class Unit:
    """One isolated piece of work."""
    name: str
    table_name: str
    phase: str
    action: Callable[[], Any]
    on_success: Optional[Callable[[Any], None]] = None
    # Called from the worker thread when a unit that timed out succeeds after all
    on_late_success: Optional[Callable[[Any], None]] = None


def record_failure(run: ReplicationRun, table_name: str, phase: str, message: str) -> None:
    """Append a failure to the run. Never raises."""
    try:
        run.record(LogEntry(
            procedure_name=run.procedure_name,
            table_name=table_name,
            phase=phase,
            message=message,
        ))
    except Exception as e:  # noqa: BLE001 - recording must not abort the run
        safe_print(f"⚠ Could not record failure for {table_name} ({phase}): {e!r}")


def describe_error(e: BaseException, detail_length: int) -> str:
    try:
        return format_error_message(e, detail_length)
    except Exception:  # noqa: BLE001 - str() of a driver error can itself fail
        return f"error number: {type(e).__name__}\nerr message: <unprintable error>"


def _invoke(action: Callable[[], Any]) -> Tuple[Any, Optional[BaseException]]:
    try:
        return action(), None
    except Exception as e:  # noqa: BLE001 - unit boundary
        return None, e


class UnitRunner:
    """Runs units for one replication run and records their failures."""

    def __init__(
        self,
        run: ReplicationRun,
        detail_length: int = 100,
        workers: int = 1,
        timeout: Optional[float] = None
    ):
        self.run = run
        self.detail_length = detail_length
        self.workers = max(int(workers or 1), 1)
        self.timeout = timeout

    def _finish(self, unit: Unit, value: Any, error: Optional[BaseException]) -> UnitResult:
        if error is not None:
            message = describe_error(error, self.detail_length)
            record_failure(self.run, unit.table_name, unit.phase, message)
            return UnitResult(unit.name, unit.table_name, unit.phase, False, message)

        if unit.on_success is not None:
            unit.on_success(value)
        return UnitResult(unit.name, unit.table_name, unit.phase, True)

    def _timed_out(self, unit: Unit) -> UnitResult:
        message = f"error number: TIMEOUT\nerr message: timed out after {self.timeout:g} s"
        record_failure(self.run, unit.table_name, unit.phase, message)
        return UnitResult(unit.name, unit.table_name, unit.phase, False, message)

    def run_one(self, unit: Unit) -> UnitResult:
        return self.run_all([unit])[0]

    def run_all(self, units: List[Unit]) -> List[UnitResult]:
        """
        Run units and return their results in the order given.

        Failures are recorded on the calling thread only, so a unit that timed
        out is recorded once; its late outcome only reaches on_late_success.
        """
        if not units:
            return []

        if self.workers <= 1 and not self.timeout:
            return [self._finish(unit, *_invoke(unit.action)) for unit in units]

        return self._run_pooled(units)

    def _finish_late(self, unit: Unit, future: concurrent.futures.Future) -> None:
        value, error = future.result()
        if error is not None:
            safe_print(f"  ⚠ {unit.name} failed after its timeout: {describe_error(error, self.detail_length)}")
            return
        safe_print(f"  ⚠ {unit.name} finished after its timeout")
        if unit.on_late_success is not None:
            try:
                unit.on_late_success(value)
            except Exception as e:  # noqa: BLE001 - runs on a worker thread after the phase
                safe_print(f"⚠ Could not record late completion of {unit.name}: {e!r}")

    def _run_pooled(self, units: List[Unit]) -> List[UnitResult]:
        results: List[Optional[UnitResult]] = [None] * len(units)
        started: Dict[int, float] = {}

        def _call(index: int) -> Tuple[Any, Optional[BaseException]]:
            started[index] = time.monotonic()
            return _invoke(units[index].action)

        poll = min(self.timeout, _POLL_INTERVAL) if self.timeout else None

        # A thread per unit at most; self.workers caps how many run at once.
        # A timed-out unit gives up its slot and keeps its thread.
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=len(units))
        future_to_index: Dict[concurrent.futures.Future, int] = {}
        pending = set()
        next_index = 0

        try:
            while next_index < len(units) or pending:
                while next_index < len(units) and len(pending) < self.workers:
                    future = executor.submit(_call, next_index)
                    future_to_index[future] = next_index
                    pending.add(future)
                    next_index += 1

                done, pending = concurrent.futures.wait(
                    pending, timeout=poll, return_when=concurrent.futures.FIRST_COMPLETED
                )
                for future in done:
                    index = future_to_index[future]
                    results[index] = self._finish(units[index], *future.result())

                if self.timeout:
                    now = time.monotonic()
                    for future in list(pending):
                        index = future_to_index[future]
                        if index in started and now - started[index] > self.timeout:
                            results[index] = self._timed_out(units[index])
                            pending.discard(future)
                            future.add_done_callback(
                                lambda f, unit=units[index]: self._finish_late(unit, f)
                            )
        finally:
            executor.shutdown(wait=False)

        return results
