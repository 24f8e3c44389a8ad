# scheduler.py
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Sequence

from . import settings
from .executor import Executor
from .model import Parallel, RunOutcome, Single, Step, StepOutcome
from .variables import VariableStore


class GroupScheduler:
    """
    Walks a step sequence in order.

    - Single steps go straight to the Executor; a fatal outcome stops the walk.
    - Parallel groups fan out to a bounded thread pool (max_lanes) and join
      before the next step starts. Lanes that are already running always
      finish; a fatal lane only withholds what comes after the group.
    """

    def __init__(self, executor: Executor, max_lanes: int = settings.MAX_PARALLEL_LANES):
        if max_lanes < 1:
            raise ValueError(f"max_lanes must be >= 1, got {max_lanes}")
        self.executor = executor
        self.max_lanes = max_lanes

    def run(self, steps: Sequence[Step], store: VariableStore) -> RunOutcome:
        for index, step in enumerate(steps):
            outcome = self._run_step(step, store)
            if outcome.is_fatal:
                return RunOutcome(aborted_at=index)
        return RunOutcome()

    def _run_step(self, step: Step, store: VariableStore) -> StepOutcome:
        if isinstance(step, Single):
            return self.executor.execute(step.command, store)
        if isinstance(step, Parallel):
            return self._run_group(step, store)
        raise TypeError(f"Unknown step type: {type(step).__name__}")

    def _run_group(self, group: Parallel, store: VariableStore) -> StepOutcome:
        if not group.steps:
            return StepOutcome.SUCCEEDED

        console = self.executor.console
        console.print_debug(
            f"parallel group: {len(group.steps)} lane(s), max {self.max_lanes} at once"
        )

        outcomes: List[StepOutcome] = []
        errors: List[Exception] = []

        # all snapshots are taken before any lane starts
        forks = [store.fork() for _ in group.steps]

        workers = min(self.max_lanes, len(group.steps))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                pool.submit(self._run_step, lane, fork): i
                for i, (lane, fork) in enumerate(zip(group.steps, forks))
            }

            # barrier: drain every lane, even after a failure
            for future in as_completed(futures):
                lane = futures[future]
                try:
                    outcomes.append(future.result())
                except Exception as e:
                    console.print_debug(f"lane {lane + 1} raised {type(e).__name__}")
                    errors.append(e)

        if errors:
            raise errors[0]
        if any(o.is_fatal for o in outcomes):
            return StepOutcome.FAILED_FATAL
        if any(o is StepOutcome.FAILED_TOLERATED for o in outcomes):
            return StepOutcome.FAILED_TOLERATED
        return StepOutcome.SUCCEEDED
