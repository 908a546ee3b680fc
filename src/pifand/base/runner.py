"""Runner classes for interval-driven execution of a process."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any

from pydantic import Field

from .entity import Entity
from .process import Process


class TimeSource:
    """Thread-local discovery of the runner driving the current thread.

    Processes ask TimeSource for the active runner so that their clock
    follows the runner's, which lets tests run on simulated time.
    """

    _thread_locals = threading.local()

    @classmethod
    def set_current(cls, runner: "Runner") -> None:
        """Set the time source (runner) for the current thread."""
        cls._thread_locals.runner = runner

    @classmethod
    def get_current(cls) -> "Runner | None":
        """Get the time source for the current thread, or None."""
        return getattr(cls._thread_locals, "runner", None)

    @classmethod
    def clear_current(cls) -> None:
        """Clear the time source for the current thread."""
        if hasattr(cls._thread_locals, "runner"):
            del cls._thread_locals.runner


class CancellationToken:
    """One-way cancellation flag whose waits wake up on cancel.

    ``cancel()`` only sets an event, so it is safe to call from a signal
    handler while the main thread is blocked in ``wait()``.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Return True once cancellation has been requested."""
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds, returning early on cancel.

        Returns:
            True if cancellation was requested

        """
        return self._event.wait(timeout)


class Runner(Entity, ABC):
    """Base class for executing a process on its own schedule.

    The runner asks the process when its next execution is due, waits
    until then, and executes it. Waiting is done on a cancellation token
    so a stop request interrupts the wait immediately.
    """

    main_process: Process = Field(
        description="The process to execute on its interval"
    )

    def __init__(
        self, token: CancellationToken | None = None, **data: Any
    ) -> None:
        super().__init__(**data)
        self._logger = logging.getLogger(
            f"{self.__class__.__module__}.{self.__class__.__name__}."
            f"{self.name}"
        )
        self._token = token or CancellationToken()

    @property
    def token(self) -> CancellationToken:
        """Return the token that stops this runner."""
        return self._token

    @abstractmethod
    def get_time(self) -> int:
        """Get current time in nanoseconds."""

    def stop(self) -> None:
        """Request the runner to stop at the next opportunity."""
        self._token.cancel()

    def _execute_process_once(self) -> None:
        """Execute the main process, keeping the schedule on failure.

        Errors inside one cycle are logged and the cycle is counted as
        done, so the next cycle runs at its normal time rather than
        immediately.
        """
        self._logger.debug(f"Executing {self.main_process.name}")
        try:
            self.main_process.execute()
        except Exception as e:
            self._logger.error(
                f"Error executing {self.main_process.name}: {e}",
                exc_info=True,
            )
            self.main_process.update_execution_count()


class StandardRunner(Runner):
    """Runner that executes in real time in the calling thread.

    ``run()`` blocks until the token is cancelled. This is the production
    runner: exactly one tick executes at a time and nothing runs
    between ticks except the wait.
    """

    def get_time(self) -> int:
        """Return monotonic time in nanoseconds."""
        return time.monotonic_ns()

    def run(self) -> None:
        """Execute the main process on its interval until cancelled."""
        self._logger.info(f"Starting runner {self.name}")
        TimeSource.set_current(self)
        self.main_process.initialize()

        try:
            while not self._token.cancelled:
                next_time = self.main_process.get_next_execution_time()
                current_time = self.get_time()
                if next_time <= current_time:
                    self._execute_process_once()
                else:
                    self._token.wait(
                        (next_time - current_time) / 1_000_000_000.0
                    )
        finally:
            TimeSource.clear_current()
            self._logger.info(f"Runner {self.name} stopped")


class FastRunner(Runner):
    """Test runner that jumps simulated time between executions.

    No real sleeping happens; time advances straight to the next due
    execution. Useful for checking how many ticks a process gets over a
    long period.
    """

    max_duration_ns: int = Field(
        default=3600_000_000_000,  # 1 hour in nanoseconds
        description="Maximum simulation duration to prevent infinite loops",
    )

    def __init__(self, **data: Any) -> None:
        super().__init__(**data)
        self._simulation_time = 0

    def get_time(self) -> int:
        """Return current simulation time in nanoseconds."""
        return self._simulation_time

    def run_for_duration(self, duration_seconds: float) -> None:
        """Run the main process for a span of simulated time.

        Args:
            duration_seconds: Simulated duration in seconds

        """
        self._simulation_time = 0
        TimeSource.set_current(self)
        self.main_process.initialize()

        end_time = min(
            int(duration_seconds * 1_000_000_000), self.max_duration_ns
        )
        try:
            while self._simulation_time < end_time:
                if self._token.cancelled:
                    break
                next_time = self.main_process.get_next_execution_time()
                if next_time <= self._simulation_time:
                    self._execute_process_once()
                else:
                    self._simulation_time = next_time
        finally:
            TimeSource.clear_current()
