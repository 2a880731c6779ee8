from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

logger = logging.getLogger("adrelevance.pipeline")


@dataclass(frozen=True)
class PipelineStep:
    """Named unit of per-request work with an optional skip guard."""
    name: str
    fn: Callable[[Any], None]
    skip_if: Optional[Callable[[Any], bool]] = None


class StepRunner:
    """Runs request steps in order against one mutable context object."""

    def __init__(self, steps: Sequence[PipelineStep]) -> None:
        """Purpose: Freeze the ordered step list for later execution.
        Inputs/Outputs: Input is a sequence of PipelineStep; no return value.
        Side Effects / State: Copies the steps into a tuple.
        Dependencies: None beyond PipelineStep.
        Failure Modes: Duplicate step names raise ValueError.
        If Removed: Engines would inline their request flow and lose per-step timing.
        Testing Notes: Build two steps with a skip guard and check which ones ran.
        """
        # Names double as trace labels, so they must be unique.
        names = [step.name for step in steps]
        if len(names) != len(set(names)):
            raise ValueError("pipeline step names must be unique")
        self._steps = tuple(steps)

    @property
    def step_names(self) -> List[str]:
        return [step.name for step in self._steps]

    def run(self, context: Any) -> List[str]:
        """Purpose: Execute each step unless its skip guard says otherwise.
        Inputs/Outputs: Input is the context; output is the names of steps that ran.
        Side Effects / State: Steps mutate the context.
        Dependencies: PipelineStep.fn and PipelineStep.skip_if.
        Failure Modes: A step's exception propagates after logging which step raised.
        If Removed: No request flows through the engines.
        Testing Notes: A raising step stops the run; later steps never execute.
        """
        # Guards are evaluated lazily so earlier steps can change the outcome.
        executed: List[str] = []
        for step in self._steps:
            if step.skip_if is not None and step.skip_if(context):
                continue
            started = time.perf_counter()
            try:
                step.fn(context)
            except Exception:
                logger.warning("step=%s status=error", step.name)
                raise
            executed.append(step.name)
            logger.debug("step=%s status=success elapsed_ms=%.2f", step.name, (time.perf_counter() - started) * 1000)
        return executed
