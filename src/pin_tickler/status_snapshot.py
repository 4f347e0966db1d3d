from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pin_tickler.control import Mode


class Termination(str, Enum):
    COMPLETED = "completed"
    FIELD_MISSING = "field_missing"
    STOPPED = "stopped"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class AttemptRecord:
    attempt: int
    value: str
    submit_requested: bool
    submitted: bool

    @property
    def outcome(self) -> str:
        if not self.submit_requested:
            return "disabled"
        return "yes" if self.submitted else "no"


@dataclass(frozen=True, slots=True)
class StatusSnapshot:
    """Immutable view of a run, published after every attempt and on termination."""

    version: int
    mode: Mode
    attempts: int
    cursor: int
    total: int
    auto_submit: bool
    last: Optional[AttemptRecord] = None
    termination: Optional[Termination] = None

    @property
    def remaining(self) -> int:
        return self.total - self.cursor

    @property
    def complete(self) -> bool:
        return self.termination is not None

    def info_line(self) -> str:
        if self.last is None:
            return f"{self.mode.value} · {self.cursor}/{self.total}"
        return f"attempt {self.last.attempt} · last {self.last.value} · submitted: {self.last.outcome}"
