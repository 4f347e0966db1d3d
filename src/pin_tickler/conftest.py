import random
from typing import Optional

import pytest

from pin_tickler.errors import InteractionDispatchFailure
from pin_tickler.interactor import FieldInteractor, SubmitMatcher


class FakeField:
    def __init__(self, has_form: bool = True) -> None:
        self.value = ""
        self.has_form = has_form
        self.events: list[str] = []
        self.history: list[str] = []
        self.form_submits = 0


class FakeControl:
    def __init__(self, text: str) -> None:
        self.text = text
        self.clicks = 0


class FakeInteractor(FieldInteractor):
    """In-memory host: records every primitive call on a FakeField."""

    def __init__(
        self,
        field: Optional[FakeField] = None,
        controls: tuple[FakeControl, ...] = (),
        *,
        fail: tuple[str, ...] = (),
        missing_after: Optional[int] = None,
        flaky_lookups: int = 0,
        matcher: Optional[SubmitMatcher] = None,
    ) -> None:
        super().__init__(matcher, settle_delay=0)
        self.field = field if field is not None else FakeField()
        self.controls = list(controls)
        self.fail = set(fail)
        self.missing_after = missing_after
        self.flaky_lookups = flaky_lookups
        self.lookups = 0

    async def locate_field(self):
        self.lookups += 1
        if self.lookups <= self.flaky_lookups:
            raise InteractionDispatchFailure("Execution context was destroyed")
        if self.missing_after is not None and self.lookups > self.missing_after:
            return None
        return self.field

    async def list_controls(self):
        self._check("list")
        return [(c, c.text) for c in self.controls]

    async def focus(self, field):
        self._check("focus")
        field.events.append("focus")

    async def set_native_value(self, field, value):
        self._check("set")
        field.value = value
        field.history.append(value)
        field.events.append("set")

    async def dispatch(self, field, event_type, **init):
        self._check(event_type)
        field.events.append(event_type)

    async def blur(self, field):
        self._check("blur")
        field.events.append("blur")

    async def click(self, control):
        self._check("click")
        control.clicks += 1

    async def submit_form(self, field):
        self._check("submit")
        if not field.has_form:
            return False
        field.form_submits += 1
        return True

    def _check(self, action: str) -> None:
        if action in self.fail:
            raise InteractionDispatchFailure(f"{action} rejected")


class Notes:
    """Notifier that records messages."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    async def __call__(self, message: str) -> None:
        self.messages.append(message)


@pytest.fixture
def notes() -> Notes:
    return Notes()


@pytest.fixture
def make_interactor():
    return FakeInteractor


@pytest.fixture
def make_control():
    return FakeControl


@pytest.fixture
def make_field():
    return FakeField


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1337)
