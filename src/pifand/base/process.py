"""Process classes for timed control execution.

A Process is a unit of work that a Runner executes on a fixed interval.
Timing state lives on the process so a runner can ask when the next
execution is due; control state lives on concrete subclasses.
"""

import logging
import time
from abc import ABC
from typing import Any

from pydantic import ConfigDict, Field

from .entity import Entity


class Process(Entity, ABC):
    """Base class for units of work executed by a Runner.

    Execution follows a three-method pattern:
    ``_import_state()`` gathers inputs, ``_think()`` decides, and
    ``_export_state()`` acts on the decision and returns a result. The
    template method ``execute()`` runs the three in order and counts
    completed executions, which drives modulo timing: execution N is due
    at ``start_time + N * interval_ns``.
    """

    model_config = ConfigDict(frozen=False)

    interval_ns: int = Field(
        default=1_000_000_000,
        gt=0,
        description="Execution interval in nanoseconds",
    )
    start_time: int = Field(
        default=0,
        description="Time the current run started (nanoseconds)",
    )
    execution_count: int = Field(
        default=0,
        description="Number of executions completed or skipped this run",
    )

    def __init__(self, **data: Any) -> None:
        """Initialize process with a per-instance logger."""
        super().__init__(**data)
        self._logger = logging.getLogger(
            f"{self.__class__.__module__}."
            f"{self.__class__.__name__}."
            f"{self.name}"
        )

    def execute(self) -> Any:
        """Execute one cycle and count it.

        Returns:
            Whatever ``_export_state()`` produced

        Note:
            The execution count is only advanced when the cycle completes.
            Runners that choose to continue after a failure call
            ``update_execution_count()`` themselves.

        """
        self._import_state()
        self._think()
        result = self._export_state()
        self.update_execution_count()
        return result

    def _import_state(self) -> None:
        """Gather inputs for this cycle. Default does nothing."""

    def _think(self) -> None:
        """Decide what to do with the gathered inputs. Default does nothing."""

    def _export_state(self) -> Any:
        """Act on the decision and return a result. Default returns None."""
        return None

    def get_time(self) -> int:
        """Get current time in nanoseconds.

        Under a Runner this is the runner's clock, which may be simulated
        time in tests. Otherwise it is the monotonic clock.
        """
        from .runner import TimeSource

        runner = TimeSource.get_current()
        if runner:
            return runner.get_time()
        return time.monotonic_ns()

    def update_execution_count(self) -> None:
        """Advance the execution count by one."""
        self.execution_count += 1

    def get_next_execution_time(self) -> int:
        """Return when the next execution is due, in nanoseconds."""
        return self.start_time + (self.execution_count * self.interval_ns)

    def initialize(self) -> None:
        """Reset timing so the first execution is due immediately."""
        self.start_time = self.get_time()
        self.execution_count = 0


class Controller(Process, ABC):
    """Base class for processes that decide actuator levels.

    A Controller reads sensors and writes actuators. One controller owns
    one piece of control logic; ``pifand.controllers`` holds the
    concrete ones.
    """
