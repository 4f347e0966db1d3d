from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pin_tickler.interactor import DEFAULT_SUBMIT_LABELS

MIN_VALUE = 100
MAX_VALUE = 999999
MAX_ATTEMPTS = 500000
INTERVAL_MS = 50
SETTLE_MS = 20
PAUSE_POLL_MS = 100
FIELD_SELECTOR = 'input[name="gameId"]'


class RunConfig(BaseModel):
    """Settings for a session. Delays are in milliseconds."""

    model_config = ConfigDict(frozen=True)

    min_value: int = MIN_VALUE
    max_value: int = MAX_VALUE
    max_attempts: int = Field(default=MAX_ATTEMPTS, ge=1)
    interval_ms: int = Field(default=INTERVAL_MS, ge=0)
    settle_ms: int = Field(default=SETTLE_MS, ge=0)
    pause_poll_ms: int = Field(default=PAUSE_POLL_MS, ge=0)
    field_selector: str = Field(default=FIELD_SELECTOR, min_length=1)
    submit_labels: Tuple[str, ...] = DEFAULT_SUBMIT_LABELS
    start_paused: bool = True

    @model_validator(mode="after")
    def check_range(self) -> "RunConfig":
        if self.min_value > self.max_value:
            raise ValueError(f"min_value ({self.min_value}) must be <= max_value ({self.max_value})")
        if not self.submit_labels:
            raise ValueError("submit_labels must not be empty")
        return self

    @property
    def interval(self) -> float:
        return self.interval_ms / 1000

    @property
    def settle_delay(self) -> float:
        return self.settle_ms / 1000

    @property
    def pause_poll(self) -> float:
        return self.pause_poll_ms / 1000
