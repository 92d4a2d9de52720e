"""Progress metrics for a running step.

``StepContribution`` is the caller-owned accumulator passed into every
``ChunkOrientedStep.execute`` call. Sources bump the read count, sinks
bump the write count, and the outer driver reads the totals between calls.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, ClassVar, Dict, Optional

__all__ = ["ExitStatus", "StepContribution"]


@dataclass(frozen=True)
class ExitStatus:
    """Terminal-outcome indicator for a step.

    Immutable; use ``and_``, ``add_exit_description`` or
    ``replace_exit_code`` to derive new values.
    """

    exit_code: str
    exit_description: str = ""

    UNKNOWN: ClassVar["ExitStatus"]
    EXECUTING: ClassVar["ExitStatus"]
    COMPLETED: ClassVar["ExitStatus"]
    NOOP: ClassVar["ExitStatus"]
    FAILED: ClassVar["ExitStatus"]
    STOPPED: ClassVar["ExitStatus"]

    # Higher is more severe; unrecognised codes rank just below UNKNOWN.
    _SEVERITY: ClassVar[Dict[str, int]] = {
        "EXECUTING": 1,
        "COMPLETED": 2,
        "NOOP": 3,
        "STOPPED": 4,
        "FAILED": 5,
        "UNKNOWN": 7,
    }

    @property
    def severity(self) -> int:
        return self._SEVERITY.get(self.exit_code, 6)

    def is_running(self) -> bool:
        return self.exit_code in ("EXECUTING", "UNKNOWN")

    def and_(self, other: "ExitStatus") -> "ExitStatus":
        """Combine two statuses, keeping the more severe exit code.

        Descriptions are joined in call order (this status first). On a
        severity tie this status keeps its code.
        """
        combined = self.add_exit_description(other.exit_description)
        if other.severity > self.severity:
            return combined.replace_exit_code(other.exit_code)
        return combined

    def add_exit_description(self, description: Optional[str]) -> "ExitStatus":
        if not description or description == self.exit_description:
            return self
        if not self.exit_description:
            return replace(self, exit_description=description)
        return replace(
            self, exit_description=f"{self.exit_description}; {description}"
        )

    def replace_exit_code(self, code: str) -> "ExitStatus":
        return replace(self, exit_code=code)

    def __str__(self) -> str:
        if self.exit_description:
            return f"{self.exit_code} ({self.exit_description})"
        return self.exit_code


ExitStatus.UNKNOWN = ExitStatus("UNKNOWN")
ExitStatus.EXECUTING = ExitStatus("EXECUTING")
ExitStatus.COMPLETED = ExitStatus("COMPLETED")
ExitStatus.NOOP = ExitStatus("NOOP")
ExitStatus.FAILED = ExitStatus("FAILED")
ExitStatus.STOPPED = ExitStatus("STOPPED")


def _check_increment(name: str, count: int) -> None:
    if count < 0:
        raise ValueError(f"{name} increment must be non-negative, got {count}")


class StepContribution:
    """Mutable read/write counters and exit status for one step.

    Counts only ever go up. Negative increments are rejected without
    touching the counters.

    Example:
        contribution = StepContribution("orders.load")
        contribution.increment_read_count()
        contribution.increment_write_count(1)
        contribution.to_dict()
    """

    def __init__(
        self,
        step_name: str = "step",
        exit_status: ExitStatus = ExitStatus.EXECUTING,
    ) -> None:
        self.step_name = step_name
        self.exit_status = exit_status
        self._read_count = 0
        self._write_count = 0
        self._filter_count = 0
        self._read_skip_count = 0
        self._process_skip_count = 0
        self._write_skip_count = 0

    @property
    def read_count(self) -> int:
        return self._read_count

    @property
    def write_count(self) -> int:
        return self._write_count

    @property
    def filter_count(self) -> int:
        return self._filter_count

    @property
    def read_skip_count(self) -> int:
        return self._read_skip_count

    @property
    def process_skip_count(self) -> int:
        return self._process_skip_count

    @property
    def write_skip_count(self) -> int:
        return self._write_skip_count

    @property
    def skip_count(self) -> int:
        return self._read_skip_count + self._process_skip_count + self._write_skip_count

    def increment_read_count(self) -> None:
        self._read_count += 1

    def increment_write_count(self, count: int) -> None:
        _check_increment("write count", count)
        self._write_count += count

    def increment_filter_count(self, count: int = 1) -> None:
        _check_increment("filter count", count)
        self._filter_count += count

    def increment_read_skip_count(self, count: int = 1) -> None:
        _check_increment("read skip count", count)
        self._read_skip_count += count

    def increment_process_skip_count(self, count: int = 1) -> None:
        _check_increment("process skip count", count)
        self._process_skip_count += count

    def increment_write_skip_count(self, count: int = 1) -> None:
        _check_increment("write skip count", count)
        self._write_skip_count += count

    def to_dict(self) -> Dict[str, Any]:
        """Flat dictionary suitable for structured logging."""
        return {
            "step_name": self.step_name,
            "read_count": self._read_count,
            "write_count": self._write_count,
            "filter_count": self._filter_count,
            "read_skip_count": self._read_skip_count,
            "process_skip_count": self._process_skip_count,
            "write_skip_count": self._write_skip_count,
            "exit_status": str(self.exit_status),
        }

    def __repr__(self) -> str:
        return (
            f"StepContribution({self.step_name}, read={self._read_count}, "
            f"written={self._write_count}, filtered={self._filter_count}, "
            f"skipped={self.skip_count}, exit_status={self.exit_status})"
        )
