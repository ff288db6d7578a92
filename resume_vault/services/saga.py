"""
Minimal compensating-action runner.

A saga is an ordered list of steps. Each step has a forward action and an
optional compensation. When a step fails, compensations of the steps that
already completed run in reverse order; their own failures are logged and
never replace the original error.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import structlog

from resume_vault.core.errors import ResumeVaultError, UnexpectedError

logger = structlog.get_logger(__name__)


@dataclass
class SagaStep:
    name: str
    action: Callable[[Any], None]
    compensation: Optional[Callable[[Any], None]] = None


class Saga:
    def __init__(self, steps: List[SagaStep], log=None):
        self.steps = steps
        self.log = log or logger

    def run(self, context) -> None:
        """
        Run every step against context, which must have a `stage` attribute.

        Domain errors propagate unchanged; anything else becomes an
        UnexpectedError naming the failed stage.
        """
        completed: List[SagaStep] = []
        for step in self.steps:
            context.stage = step.name
            self.log.debug("stage_started", stage=step.name)
            try:
                step.action(context)
            except ResumeVaultError:
                self._compensate(completed, context)
                raise
            except Exception as e:
                self._compensate(completed, context)
                raise UnexpectedError(
                    f"Unexpected error during step: {step.name}.",
                    stage=step.name,
                    details=str(e),
                ) from e
            completed.append(step)

    def _compensate(self, completed: List[SagaStep], context) -> None:
        for step in reversed(completed):
            if step.compensation is None:
                continue
            try:
                step.compensation(context)
                self.log.info("compensation_succeeded", stage=step.name)
            except Exception as e:
                self.log.error("compensation_failed", stage=step.name, error=str(e))
