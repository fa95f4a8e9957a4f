"""Outcome tracking for the steps of a backup or restore run."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from .. import __util__

logger = logging.getLogger(__name__)


@dataclass
class StepResult:
    """Result of one flow step."""

    name: str
    passed: bool
    skipped: bool = False
    message: str = ""
    duration_seconds: float = 0.0


@dataclass
class FlowReport:
    """All step results of one run."""

    command: str
    started_at: float = field(default_factory=time.time)
    completed_at: float = 0.0
    results: list[StepResult] = field(default_factory=list)

    @property
    def failed(self) -> list[StepResult]:
        return [r for r in self.results if not r.passed]

    @property
    def ok(self) -> bool:
        return not self.failed

    def result(self, name: str) -> StepResult | None:
        for r in self.results:
            if r.name == name:
                return r
        return None

    def skip(self, name: str, message: str) -> None:
        logger.info("Skipping %s: %s", name, message)
        self.results.append(StepResult(name, True, skipped=True, message=message))

    def run(self, name: str, func: Callable[..., Any], *args, **kwargs) -> Any:
        """Run a non-fatal step.

        An ``AbortError`` or ``OSError`` is logged and recorded as a failed
        step; the flow carries on with its next step.
        """
        start = time.time()
        try:
            value = func(*args, **kwargs)
        except (__util__.AbortError, OSError) as e:
            logger.error("%s failed: %s", name, e)
            self.results.append(
                StepResult(
                    name, False, message=str(e), duration_seconds=time.time() - start
                )
            )
            return None
        self.results.append(
            StepResult(name, True, duration_seconds=time.time() - start)
        )
        return value

    def run_fatal(self, name: str, func: Callable[..., Any], *args, **kwargs) -> Any:
        """Run a step whose failure ends the run with an ``AbortError``."""
        start = time.time()
        try:
            value = func(*args, **kwargs)
        except (__util__.AbortError, OSError) as e:
            self.results.append(
                StepResult(
                    name, False, message=str(e), duration_seconds=time.time() - start
                )
            )
            if isinstance(e, __util__.AbortError):
                raise
            raise __util__.AbortError(f"{name} failed: {e}") from e
        self.results.append(
            StepResult(name, True, duration_seconds=time.time() - start)
        )
        return value

    def finish(self) -> "FlowReport":
        self.completed_at = time.time()
        if self.ok:
            logger.info("%s: all %d step(s) succeeded", self.command, len(self.results))
        else:
            logger.warning(
                "%s completed with errors: %s",
                self.command,
                ", ".join(r.name for r in self.failed),
            )
        return self
