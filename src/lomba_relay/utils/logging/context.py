# ABOUTME: Run-scoped logging context carrying a run id, bound logger, and timers
# ABOUTME: Passed explicitly down the pipeline so concurrent runs never share timer state

import time
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import structlog

from .utils import generate_operation_id, get_logger

T = TypeVar("T")


@dataclass
class RunContext:
    """Per-run logging state.

    Timers are keyed by name and live only as long as the context, so two
    overlapping runs can use the same timer names without interfering.
    """

    pipeline: str
    run_id: str = field(default_factory=generate_operation_id)
    logger: structlog.stdlib.BoundLogger = field(default=None)  # type: ignore[assignment]
    _timers: dict[str, float] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if self.logger is None:
            self.logger = get_logger("lomba_relay").bind(pipeline=self.pipeline, run_id=self.run_id)

    def child(self, **context: Any) -> "RunContext":
        """Derive a context sharing this run's id and timers with extra bound fields."""
        return RunContext(
            pipeline=self.pipeline,
            run_id=self.run_id,
            logger=self.logger.bind(**context),
            _timers=self._timers,
        )

    def start_timer(self, key: str) -> None:
        self._timers[key] = time.perf_counter()

    def end_timer(self, key: str) -> float:
        """Stop a timer and return elapsed milliseconds (0.0 if it was never started)."""
        started = self._timers.pop(key, None)
        if started is None:
            self.logger.warning("Timer was not started", timer=key)
            return 0.0
        elapsed_ms = (time.perf_counter() - started) * 1000
        self.logger.debug("Timer finished", timer=key, duration_ms=round(elapsed_ms, 1))
        return elapsed_ms

    async def time(self, key: str, awaitable: Awaitable[T]) -> T:
        """Await and time an operation, stopping the timer even on failure."""
        self.start_timer(key)
        try:
            return await awaitable
        finally:
            self.end_timer(key)
