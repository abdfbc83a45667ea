"""Per-run log and error accumulators passed through every pipeline stage."""

import logging
from dataclasses import dataclass, field

logger = logging.getLogger("pipeline.run")


@dataclass
class RunContext:
    """
    Mutable state owned by a single run.
    `logs` holds human-readable progress lines in order; `errors` holds the
    messages of recovered failures. Both are returned to the caller.
    """
    logs: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def log(self, message: str, level: int = logging.INFO) -> None:
        logger.log(level, message)
        self.logs.append(message)

    def fail(self, message: str, error: str | None = None) -> None:
        """Log a recovered failure and record it in the error list."""
        self.log(message, level=logging.ERROR)
        self.errors.append(error if error is not None else message)
