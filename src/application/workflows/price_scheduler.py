"""Price scheduler for Metal Vault.

Ticks once per interval. Inside trading hours each tick fans out one
update per metal in parallel; a failing metal never blocks the other
and there is no retry within a tick (the next tick is the retry).

Ticks are spawned as tasks so a slow provider call cannot delay the
next tick. Overlapping updates of the same metal are serialized by the
engine's own lock.

After the updates, alerts are evaluated with the buy prices of the
metals that updated. A retention sweep runs at most once a day.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable
from zoneinfo import ZoneInfo

from src.domain.models.enums import MetalType
from src.domain.models.price import PriceObservation
from src.infrastructure.logging import get_logger

if TYPE_CHECKING:
    from src.application.commands.evaluate_alerts import AlertEvaluator
    from src.application.workflows.price_engine import PriceAcquisitionEngine

logger = get_logger(__name__)

RETENTION_SWEEP_INTERVAL = timedelta(hours=24)


class SchedulerStatus(str, Enum):
    """Status of the scheduler loop."""

    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass(frozen=True)
class MarketHours:
    """Daily trading window in a local timezone.

    A close earlier than the open means the window spans midnight.
    """

    open: time = time(9, 0)
    close: time = time(23, 30)
    weekdays: frozenset[int] = frozenset(range(6))  # Mon-Sat
    timezone: str = "Asia/Kolkata"

    def is_open(self, now: datetime) -> bool:
        local = now.astimezone(ZoneInfo(self.timezone))
        if local.weekday() not in self.weekdays:
            return False

        current = local.time().replace(tzinfo=None)
        if self.open <= self.close:
            return self.open <= current <= self.close
        return current >= self.open or current <= self.close


@dataclass
class TickResult:
    """Result of a single scheduler tick."""

    tick_number: int
    started_at: datetime
    completed_at: datetime | None = None
    market_open: bool = True
    updated: dict[MetalType, PriceObservation] = field(default_factory=dict)
    alerts_triggered: int = 0
    prices_removed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def skipped(self) -> bool:
        return not self.market_open


@dataclass
class SchedulerRunResult:
    """Result of a scheduler run."""

    status: SchedulerStatus
    started_at: datetime
    stopped_at: datetime | None = None
    ticks_completed: int = 0
    tick_results: list[TickResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class PriceScheduler:
    """Periodic driver for the per-metal price engines."""

    def __init__(
        self,
        engines: Iterable["PriceAcquisitionEngine"],
        alert_evaluator: "AlertEvaluator | None" = None,
        market_hours: MarketHours | None = None,
        tick_interval_seconds: float = 60.0,
        retention_interval: timedelta = RETENTION_SWEEP_INTERVAL,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the scheduler.

        Args:
            engines: One price engine per metal
            alert_evaluator: Runs after each tick with fresh buy prices
            market_hours: Trading window (None = always open)
            tick_interval_seconds: Time between ticks
            retention_interval: Minimum time between retention sweeps
            clock: Time source (injectable for tests)
        """
        self._engines = list(engines)
        self._evaluator = alert_evaluator
        self._hours = market_hours
        self._interval = tick_interval_seconds
        self._retention_interval = retention_interval
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._status = SchedulerStatus.STOPPED
        self._tick_count = 0
        self._tick_number = 0
        self._stop_requested = False
        self._last_sweep: datetime | None = None

    @property
    def status(self) -> SchedulerStatus:
        return self._status

    @property
    def market_hours(self) -> MarketHours | None:
        return self._hours

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._status == SchedulerStatus.RUNNING

    async def start(
        self,
        max_ticks: int | None = None,
        on_tick_complete: Callable[[TickResult], None] | None = None,
    ) -> SchedulerRunResult:
        """Run ticks until stopped.

        Args:
            max_ticks: Optional maximum ticks (None = run until stopped)
            on_tick_complete: Optional callback after each tick

        Returns:
            SchedulerRunResult when the loop ends
        """
        self._status = SchedulerStatus.RUNNING
        self._stop_requested = False
        self._tick_count = 0

        started_at = self._clock()
        results: list[TickResult] = []
        errors: list[str] = []
        in_flight: set[asyncio.Task] = set()

        def _collect(task: asyncio.Task) -> None:
            in_flight.discard(task)
            if task.cancelled():
                return
            if task.exception() is not None:
                errors.append(f"Tick error: {task.exception()}")
                return
            result = task.result()
            results.append(result)
            if on_tick_complete:
                on_tick_complete(result)

        try:
            while not self._stop_requested:
                if max_ticks is not None and self._tick_count >= max_ticks:
                    break

                task = asyncio.create_task(self.run_tick())
                in_flight.add(task)
                task.add_done_callback(_collect)
                self._tick_count += 1

                if max_ticks is not None and self._tick_count >= max_ticks:
                    break
                if not self._stop_requested:
                    await asyncio.sleep(self._interval)

            if in_flight:
                await asyncio.gather(*in_flight, return_exceptions=True)

        except Exception as e:
            self._status = SchedulerStatus.ERROR
            errors.append(f"Scheduler loop error: {e}")
            logger.error(f"Scheduler loop error: {e}")

        if self._status != SchedulerStatus.ERROR:
            self._status = SchedulerStatus.STOPPED

        return SchedulerRunResult(
            status=self._status,
            started_at=started_at,
            stopped_at=self._clock(),
            ticks_completed=len(results),
            tick_results=sorted(results, key=lambda r: r.tick_number),
            errors=errors,
        )

    def stop(self) -> None:
        """Request the loop to stop after the current sleep."""
        self._stop_requested = True

    async def run_tick(self, force: bool = False) -> TickResult:
        """Run one tick.

        Args:
            force: Ignore trading hours

        Returns:
            TickResult with the updated prices and any errors
        """
        self._tick_number += 1
        now = self._clock()
        result = TickResult(tick_number=self._tick_number, started_at=now)

        if not force and self._hours is not None and not self._hours.is_open(now):
            logger.debug("Outside trading hours, skipping tick")
            result.market_open = False
            result.completed_at = self._clock()
            return result

        outcomes = await asyncio.gather(
            *(engine.update_price() for engine in self._engines),
            return_exceptions=True,
        )
        for engine, outcome in zip(self._engines, outcomes):
            if isinstance(outcome, BaseException):
                message = f"{engine.metal.value} update failed: {outcome}"
                logger.error(message)
                result.errors.append(message)
            else:
                result.updated[engine.metal] = outcome

        if self._evaluator is not None and result.updated:
            prices: dict[MetalType, Decimal] = {
                metal: obs.buy_price for metal, obs in result.updated.items()
            }
            try:
                evaluation = await self._evaluator.evaluate(prices)
                result.alerts_triggered = evaluation.triggered_count
                result.errors.extend(evaluation.errors)
            except Exception as e:
                logger.error(f"Alert evaluation failed: {e}")
                result.errors.append(f"alerts: {e}")

        if self._last_sweep is None or now - self._last_sweep >= self._retention_interval:
            result.prices_removed = await self._sweep(now, result)

        result.completed_at = self._clock()
        return result

    async def _sweep(self, now: datetime, result: TickResult) -> int:
        self._last_sweep = now
        removed = 0
        for engine in self._engines:
            try:
                removed += await engine.cleanup_old_prices(now)
            except Exception as e:
                message = f"{engine.metal.value} retention sweep failed: {e}"
                logger.error(message)
                result.errors.append(message)
        return removed
