import asyncio
import re
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Iterable, Optional, Sequence, Tuple

import structlog

from pin_tickler.errors import FieldNotFound, InteractionDispatchFailure, SubmissionFailure

log = structlog.get_logger(__name__)

DEFAULT_SUBMIT_LABELS: Tuple[str, ...] = ("Enter", "Join", "Play", "Submit", "Continue", "OK")

LabelPredicate = Callable[[str, str], bool]


def word_match(text: str, label: str) -> bool:
    """Case-insensitive, word-bounded match of label inside text."""
    return re.search(rf"\b{re.escape(label)}\b", text, re.IGNORECASE) is not None


class SubmitMatcher:
    """Ordered candidate labels plus the predicate used to compare them against control text."""

    def __init__(self, labels: Sequence[str] = DEFAULT_SUBMIT_LABELS, predicate: Optional[LabelPredicate] = None) -> None:
        if not labels:
            raise ValueError("SubmitMatcher needs at least one candidate label")
        self.labels = tuple(labels)
        self.predicate = predicate or word_match

    def matches(self, text: str) -> bool:
        text = text.strip()
        if not text:
            return False
        return any(self.predicate(text, label) for label in self.labels)

    def find(self, controls: Iterable[Tuple[Any, str]]) -> Optional[Any]:
        """Return the first control, in document order, whose text matches a candidate label."""
        for handle, text in controls:
            if self.matches(text):
                return handle
        return None


class FieldInteractor(ABC):
    """Write-and-submit protocol over a single input field.

    Subclasses provide the host primitives (locating, focusing, setting the
    native value, dispatching events, clicking). This class owns the order in
    which they are applied and which failures are tolerated. It holds no
    enumeration state.
    """

    def __init__(self, matcher: Optional[SubmitMatcher] = None, *, settle_delay: float = 0.02) -> None:
        self.matcher = matcher or SubmitMatcher()
        self.settle_delay = settle_delay

    # ---- Host primitives ----
    @abstractmethod
    async def locate_field(self) -> Optional[Any]:
        """The target field, or None when it is not on the page. Host failures raise InteractionDispatchFailure."""

    @abstractmethod
    async def list_controls(self) -> list[Tuple[Any, str]]:
        """Interactive elements in document order with their visible or accessible text."""

    @abstractmethod
    async def focus(self, field: Any) -> None:
        ...

    @abstractmethod
    async def set_native_value(self, field: Any, value: str) -> None:
        """Set the value through the lowest-level setter, bypassing page interception."""

    @abstractmethod
    async def dispatch(self, field: Any, event_type: str, **init: Any) -> None:
        ...

    @abstractmethod
    async def blur(self, field: Any) -> None:
        ...

    @abstractmethod
    async def click(self, control: Any) -> None:
        ...

    @abstractmethod
    async def submit_form(self, field: Any) -> bool:
        """Submit the field's form. Returns False when the field has no submittable form."""

    # ---- Protocol ----
    async def require_field(self) -> Any:
        field = await self.locate_field()
        if field is None:
            raise FieldNotFound("Target input field not found")
        return field

    async def locate_submit_control(self) -> Optional[Any]:
        try:
            controls = await self.list_controls()
        except InteractionDispatchFailure as e:
            log.warning("could not list controls", error=str(e))
            return None
        return self.matcher.find(controls)

    async def write_value(self, field: Any, value: str) -> None:
        """Focus, set, notify (input then change), blur, then wait for the page to settle."""
        await self._best_effort("focus", self.focus(field))
        await self._best_effort("set value", self.set_native_value(field, value))
        await self._best_effort("input event", self.dispatch(field, "input"))
        await self._best_effort("change event", self.dispatch(field, "change"))
        await self._best_effort("blur", self.blur(field))
        await asyncio.sleep(self.settle_delay)

    async def try_submit(self, field: Any, submit_control: Optional[Any], auto_submit_enabled: bool) -> bool:
        """Try to submit the current value. Returns whether a submission was dispatched."""
        if not auto_submit_enabled:
            return False

        if submit_control is not None:
            try:
                await self.click(submit_control)
                return True
            except InteractionDispatchFailure as e:
                log.warning("submit control click failed", error=str(e))

        try:
            await self._submit_with_enter(field)
            return True
        except (InteractionDispatchFailure, SubmissionFailure) as e:
            log.info("submission not dispatched", error=str(e))
        return False

    async def _submit_with_enter(self, field: Any) -> None:
        await self.dispatch(field, "keydown", key="Enter")
        await self.dispatch(field, "keyup", key="Enter")
        if not await self.submit_form(field):
            raise SubmissionFailure("Field has no submittable form")

    async def _best_effort(self, action: str, step: Awaitable[None]) -> None:
        try:
            await step
        except InteractionDispatchFailure as e:
            log.warning("interaction failed", action=action, error=str(e))
