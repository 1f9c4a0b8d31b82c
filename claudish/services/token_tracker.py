"""Session token accounting per provider and model."""

from datetime import UTC, datetime
from enum import Enum

import structlog
from pydantic import BaseModel


logger = structlog.get_logger(__name__)


class TokenStrategy(str, Enum):
    """How a stream's final usage folds into the session totals.

    STANDARD: input is the latest prompt size, output accumulates.
    ACCUMULATE: both accumulate (providers reporting per-turn input).
    DELTA: only input growth is charged; a prompt much smaller than the
        last one is treated as a concurrent conversation.
    LOCAL: like STANDARD but a zero input report keeps the previous value.
    """

    STANDARD = "standard"
    ACCUMULATE = "accumulate"
    DELTA = "delta"
    LOCAL = "local"


class UsageSnapshot(BaseModel):
    provider: str
    model: str
    strategy: TokenStrategy
    input_tokens: int
    output_tokens: int
    charged_input_tokens: int
    total_tokens: int
    context_window: int
    context_left_percent: int
    requests: int
    updated_at: datetime | None


class TokenTracker:
    """Running totals for one provider/model pair."""

    def __init__(
        self,
        provider: str,
        model: str,
        *,
        strategy: TokenStrategy = TokenStrategy.STANDARD,
        context_window: int = 0,
    ) -> None:
        self.provider = provider
        self.model = model
        self.strategy = strategy
        self.context_window = context_window
        self.input_tokens = 0
        self.output_tokens = 0
        self.charged_input_tokens = 0
        self.requests = 0
        self.updated_at: datetime | None = None

    def record(self, input_tokens: int, output_tokens: int) -> None:
        if self.strategy is TokenStrategy.ACCUMULATE:
            self.input_tokens += input_tokens
            self.charged_input_tokens += input_tokens
        elif self.strategy is TokenStrategy.DELTA:
            self._record_delta(input_tokens)
        elif self.strategy is TokenStrategy.LOCAL:
            if input_tokens > 0:
                self.input_tokens = input_tokens
        else:
            self.input_tokens = input_tokens
            self.charged_input_tokens += input_tokens

        self.output_tokens += output_tokens
        self.requests += 1
        self.updated_at = datetime.now(UTC)
        logger.debug(
            "token_usage_recorded",
            provider=self.provider,
            model=self.model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            session_output_tokens=self.output_tokens,
        )

    def _record_delta(self, input_tokens: int) -> None:
        previous = self.input_tokens
        if input_tokens >= previous:
            self.charged_input_tokens += input_tokens - previous
            self.input_tokens = input_tokens
        elif input_tokens < previous * 0.5:
            # Another conversation on the same model; keep the larger baseline
            self.charged_input_tokens += input_tokens
            logger.debug(
                "concurrent_conversation_detected",
                provider=self.provider,
                input_tokens=input_tokens,
                previous_input_tokens=previous,
            )
        else:
            self.charged_input_tokens += input_tokens
            self.input_tokens = input_tokens

    @property
    def context_left_percent(self) -> int:
        if self.context_window <= 0:
            return 100
        total = self.input_tokens + self.output_tokens
        left = round((self.context_window - total) / self.context_window * 100)
        return max(0, min(100, left))

    def snapshot(self) -> UsageSnapshot:
        return UsageSnapshot(
            provider=self.provider,
            model=self.model,
            strategy=self.strategy,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            charged_input_tokens=self.charged_input_tokens,
            total_tokens=self.input_tokens + self.output_tokens,
            context_window=self.context_window,
            context_left_percent=self.context_left_percent,
            requests=self.requests,
            updated_at=self.updated_at,
        )


class UsageRegistry:
    """One :class:`TokenTracker` per (provider, model), created on demand."""

    def __init__(self) -> None:
        self._trackers: dict[tuple[str, str], TokenTracker] = {}

    def tracker(
        self,
        provider: str,
        model: str,
        *,
        strategy: TokenStrategy = TokenStrategy.STANDARD,
        context_window: int = 0,
    ) -> TokenTracker:
        key = (provider, model)
        tracker = self._trackers.get(key)
        if tracker is None:
            tracker = TokenTracker(
                provider, model, strategy=strategy, context_window=context_window
            )
            self._trackers[key] = tracker
        elif context_window:
            tracker.context_window = context_window
        return tracker

    def snapshots(self) -> list[UsageSnapshot]:
        return [tracker.snapshot() for tracker in self._trackers.values()]
