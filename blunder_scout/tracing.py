# blunder_scout/tracing.py

"""
tracing
~~~~~~~

Correlation IDs and operation tracing for concurrent game analyses.

Every game analyzed in a batch gets a `CorrelationID`; binding it puts the
short form on every log event emitted while that game is being analyzed, so
interleaved output from concurrent games can be told apart.
"""

import functools
import time
import uuid
from contextlib import AbstractContextManager
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CorrelationID:
    """Identifies one game analysis within one batch run."""
    run_id: str
    game_id: str
    task_id: str

    @classmethod
    def for_game(cls, run_id: str, game_id: str) -> "CorrelationID":
        return cls(run_id=run_id, game_id=game_id, task_id=uuid.uuid4().hex[:8])

    @property
    def short_id(self) -> str:
        """`<game_id>:<task_id>`, short enough for every log line."""
        return f"{self.game_id}:{self.task_id}"

    def as_dict(self) -> Dict[str, str]:
        return asdict(self)

    def bound(self) -> AbstractContextManager:
        """Binds this ID into structlog's context variables for the duration of a `with` block."""
        return structlog.contextvars.bound_contextvars(correlation_id=self.short_id, run_id=self.run_id)


def trace_operation(func: Callable) -> Callable:
    """
    Logs entry to and exit from an async analyzer method, with its duration.

    A failing call is logged with the exception type and re-raised unchanged.
    """
    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        operation = f"{type(args[0]).__name__}.{func.__name__}"
        started = time.perf_counter()
        logger.debug("Entering analysis operation.", operation=operation)
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            logger.warning(
                "Analysis operation failed.", operation=operation,
                error_type=type(e).__name__, duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            raise
        logger.debug(
            "Exiting analysis operation.", operation=operation,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return result
    return wrapper
