import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

from pin_tickler.keyspace import Keyspace, generate

log = structlog.get_logger(__name__)


class Exhausted(Enum):
    EXHAUSTED = "exhausted"


EXHAUSTED = Exhausted.EXHAUSTED


@dataclass(slots=True)
class ProgressState:
    """The shuffled keyspace and the index of the next value to hand out."""

    keyspace: Keyspace
    min_value: int
    max_value: int
    cursor: int = 0

    @property
    def total(self) -> int:
        return len(self.keyspace)

    @property
    def remaining(self) -> int:
        return self.total - self.cursor


class ProgressStore:
    """Lazily created holder of the keyspace permutation and its cursor.

    The keyspace is generated on the first get_or_create() call and reused by
    every later call, so enumeration progress survives a restart of the loop.
    Only next() advances the cursor.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng
        self._state: Optional[ProgressState] = None

    @property
    def state(self) -> Optional[ProgressState]:
        return self._state

    def get_or_create(self, min_value: int, max_value: int) -> ProgressState:
        if self._state is None:
            keyspace = generate(min_value, max_value, self._rng)
            self._state = ProgressState(keyspace=keyspace, min_value=min_value, max_value=max_value)
            log.info("keyspace generated", min_value=min_value, max_value=max_value, total=len(keyspace))
            return self._state

        if (self._state.min_value, self._state.max_value) != (min_value, max_value):
            log.warning(
                "keyspace range ignored, reusing existing progress",
                requested=(min_value, max_value),
                existing=(self._state.min_value, self._state.max_value),
            )
        return self._state

    def next(self) -> int | Exhausted:
        """Return the value at the cursor and advance, or EXHAUSTED at the end."""
        state = self._require_state()
        if state.cursor >= state.total:
            return EXHAUSTED
        value = state.keyspace[state.cursor]
        state.cursor += 1
        return value

    def peek_remaining(self) -> int:
        return self._require_state().remaining

    def _require_state(self) -> ProgressState:
        if self._state is None:
            raise RuntimeError("Progress store used before get_or_create()")
        return self._state
