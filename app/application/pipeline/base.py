from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    ClassVar,
    Dict,
    List,
    Optional,
    Protocol,
    Set,
    TypedDict,
    runtime_checkable,
)
import asyncio
import inspect
import logging
import math
from abc import ABC, abstractmethod
from enum import Enum
from time import perf_counter

from app.application.interfaces.media_source import IMediaSource
from app.application.models import DurationResult, DurationSource
from app.core.exceptions import DurationScoutError

logger = logging.getLogger(__name__)

StepCallback = Callable[[str], Optional[Awaitable[Any]]]

# Strong references to fire-and-forget callback tasks until they finish
_callback_tasks: Set[asyncio.Future] = set()


def _on_callback_done(task: asyncio.Future) -> None:
    _callback_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Step callback failed: %s", exc)


@dataclass(slots=True)
class ResolutionContext:
    """Per-item resolution context shared by all tiers of one chain run.

    - source: the media being resolved (owned by the caller)
    - on_step: optional progress callback, sync or async, fire-and-forget
    - artifacts: cross-tier working data (also holds the run id)
    """

    RUN_ID_KEY: ClassVar[str] = "_run_id"

    source: IMediaSource
    item_id: Optional[str] = None
    on_step: Optional[StepCallback] = None
    artifacts: Dict[str, Any] = field(default_factory=dict)

    def set(self, key: str, value: Any) -> None:
        self.artifacts[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.artifacts.get(key, default)

    def has(self, key: str) -> bool:
        return key in self.artifacts

    def get_run_id(self) -> Optional[str]:
        return self.get(self.RUN_ID_KEY, None)

    def ensure_run_id(self) -> str:
        rid = self.get_run_id()
        if not rid:
            import uuid as _uuid

            rid = self.item_id or _uuid.uuid4().hex
            self.set(self.RUN_ID_KEY, rid)
        return rid

    def report_step(self, label: str) -> None:
        """Notify the step observer without ever blocking or failing resolution."""
        if self.on_step is None:
            return
        try:
            maybe_awaitable = self.on_step(label)
        except Exception as e:  # noqa: BLE001
            logger.warning("Step callback raised for %r: %s", label, e)
            return
        if inspect.isawaitable(maybe_awaitable):
            task = asyncio.ensure_future(maybe_awaitable)
            _callback_tasks.add(task)
            task.add_done_callback(_on_callback_done)


class TierStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(slots=True)
class TierOutcome:
    """Tagged result of one tier attempt."""

    tier: str
    source: DurationSource
    status: TierStatus = TierStatus.PENDING
    seconds: Optional[float] = None
    error: Optional[BaseException] = None
    elapsed: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status is TierStatus.SUCCEEDED

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return str(self.error) or type(self.error).__name__


@runtime_checkable
class Tier(Protocol):
    name: str

    async def __call__(
        self, context: ResolutionContext
    ) -> TierOutcome:  # pragma: no cover - protocol
        ...


class BaseTier(ABC):
    """Base class for resolution tiers with lifecycle hooks, skip and timeout.

    ``run`` returns seconds or raises; ``__call__`` turns either into a
    ``TierOutcome`` so failures never escape the chain.
    """

    name: str = "base_tier"
    source: DurationSource = DurationSource.BINARY
    step_label: Optional[str] = None
    timeout: Optional[float] = None  # seconds

    async def __call__(self, context: ResolutionContext) -> TierOutcome:
        outcome = TierOutcome(tier=self.name, source=self.source)

        if self.can_skip(context):
            outcome.status = TierStatus.SKIPPED
            self.on_skip(context)
            return outcome

        outcome.status = TierStatus.RUNNING
        if self.step_label:
            context.report_step(self.step_label)
        self.on_start(context)
        start = perf_counter()
        try:
            if self.timeout:
                seconds = await asyncio.wait_for(self.run(context), timeout=self.timeout)
            else:
                seconds = await self.run(context)
            if seconds is None or not math.isfinite(seconds) or seconds <= 0:
                raise ValueError(f"tier '{self.name}' produced unusable duration {seconds!r}")
            outcome.seconds = float(seconds)
            outcome.status = TierStatus.SUCCEEDED
            self.on_success(context, outcome.seconds)
        except (DurationScoutError, asyncio.TimeoutError, ValueError) as e:
            outcome.status = TierStatus.FAILED
            outcome.error = e
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "Tier %s failed unexpectedly: %s: %s", self.name, type(e).__name__, e
            )
            outcome.status = TierStatus.FAILED
            outcome.error = e
        finally:
            outcome.elapsed = perf_counter() - start
            self.on_finish(context, outcome)
        return outcome

    @abstractmethod
    async def run(
        self, context: ResolutionContext
    ) -> float:  # pragma: no cover - abstract
        ...

    # Hooks
    def on_start(self, context: ResolutionContext) -> None:
        logger.debug("Tier %s start", self.name)

    def on_success(self, context: ResolutionContext, seconds: float) -> None:
        pass

    def on_finish(self, context: ResolutionContext, outcome: TierOutcome) -> None:
        logger.info(
            "Tier %s finished in %.3fs with status=%s run_id=%s%s",
            self.name,
            outcome.elapsed,
            outcome.status.value,
            context.get_run_id(),
            f" error={outcome.error_message}" if outcome.error is not None else "",
        )

    def on_skip(self, context: ResolutionContext) -> None:
        logger.info("Tier %s skipped", self.name)

    def can_skip(self, context: ResolutionContext) -> bool:
        return False


class ChainResult(TypedDict):  # pragma: no cover - typing helper
    success: bool
    result: Optional[DurationResult]
    outcomes: List[TierOutcome]
    elapsed: float
    context: ResolutionContext


class TierChain:
    """Ordered fallback chain: tiers run strictly in order, first success wins."""

    def __init__(self, tiers: List[Tier]):
        self._tiers = tiers

    @property
    def tiers(self) -> List[Tier]:
        return list(self._tiers)

    async def execute(self, context: ResolutionContext) -> ChainResult:
        context.ensure_run_id()
        chain_start = perf_counter()
        outcomes: List[TierOutcome] = []
        result: Optional[DurationResult] = None

        for tier in self._tiers:
            outcome = await tier(context)
            outcomes.append(outcome)
            if outcome.succeeded:
                result = DurationResult(seconds=outcome.seconds, source=outcome.source)
                break

        return {
            "success": result is not None,
            "result": result,
            "outcomes": outcomes,
            "elapsed": perf_counter() - chain_start,
            "context": context,
        }


class Middleware(Protocol):  # pragma: no cover - optional extension point
    def __call__(self, tier: Tier) -> Tier: ...


def make_logging_middleware(
    logger_obj: logging.Logger | None = None,
    level_before: int = logging.DEBUG,
    level_after: int = logging.INFO,
) -> Middleware:
    """Return a middleware that logs before and after each tier attempt.

    Logs include: tier name, run_id, status, elapsed time.
    """
    _log = logger_obj or logger

    def _middleware(tier: Tier) -> Tier:
        class _Wrapped:
            def __init__(self, inner: Tier):
                self._inner = inner

            def __getattr__(self, item):  # delegate attributes like 'name'
                return getattr(self._inner, item)

            async def __call__(self, context: ResolutionContext) -> TierOutcome:
                tier_name = getattr(self._inner, "name", self._inner.__class__.__name__)
                rid = context.get_run_id()
                _log.log(level_before, "[run_id=%s] Tier %s BEGIN", rid, tier_name)
                outcome = await self._inner(context)
                _log.log(
                    level_after,
                    "[run_id=%s] Tier %s END status=%s elapsed=%.3fs",
                    rid,
                    tier_name,
                    outcome.status.value,
                    outcome.elapsed,
                )
                return outcome

        return _Wrapped(tier)

    return _middleware
