"""
Twice-daily reminder sweep for users who have not prayed today's novena day.

A sweep reads every active subscription, skips users whose last prayed date
is today's local date, and pushes one reminder to everybody else. Delivery is
fanned out over a small thread pool; each recipient gets a bounded number of
attempts with jittered exponential backoff for transient failures. Whatever
still fails is logged and counted, never retried later.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from datetime import time as clock_time
from enum import StrEnum
from typing import Callable, List, Optional, Sequence
from zoneinfo import ZoneInfo

from novena_api.messaging import DeliveryClient, DeliveryFailure, PushMessage
from novena_api.subscriptions import Subscription, SubscriptionStore

logger = logging.getLogger(__name__)

REMINDER_TITLE = "Minha Jornada"
DEFAULT_NOVENA_TITLE = "sua novena"
REMINDER_DATA = {"screen": "jornada", "focus": "novena"}

ORDINALS_PT = {
    1: "primeiro",
    2: "segundo",
    3: "terceiro",
    4: "quarto",
    5: "quinto",
    6: "sexto",
    7: "sétimo",
    8: "oitavo",
    9: "nono",
}


class ReminderPeriod(StrEnum):
    MORNING = "manha"
    EVENING = "noite"


def ordinal_pt(day: int) -> str:
    return ORDINALS_PT.get(day, f"{day}º")


def reminder_body(period: ReminderPeriod, day: int, novena_title: str) -> str:
    title = novena_title.strip() or DEFAULT_NOVENA_TITLE
    ordinal = ordinal_pt(day)
    if period == ReminderPeriod.MORNING:
        return f"Reze o {ordinal} dia da {title}."
    return f"Não se esqueça de rezar o {ordinal} dia da {title}."


def build_reminder(subscription: Subscription, period: ReminderPeriod) -> PushMessage:
    progress = subscription.novena
    return PushMessage(
        token=subscription.token,
        title=REMINDER_TITLE,
        body=reminder_body(period, progress.day, progress.title),
        data=dict(REMINDER_DATA),
    )


@dataclass
class SweepResult:
    period: ReminderPeriod
    date: str
    sent: int = 0
    skipped: int = 0
    failed: int = 0


class ReminderSweep:
    """One pass over the active subscriptions for a given period."""

    def __init__(
        self,
        store: SubscriptionStore,
        delivery: DeliveryClient,
        *,
        tz_name: str = "America/Sao_Paulo",
        max_attempts: int = 3,
        retry_base_seconds: float = 1.0,
        workers: int = 4,
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.delivery = delivery
        self.tz = ZoneInfo(tz_name)
        self.max_attempts = max_attempts
        self.retry_base_seconds = retry_base_seconds
        self.workers = workers
        self.clock = clock or (lambda: datetime.now(self.tz))
        self.sleep = sleep

    def today(self) -> str:
        return self.clock().astimezone(self.tz).date().isoformat()

    def run(self, period: ReminderPeriod) -> SweepResult:
        today = self.today()
        result = SweepResult(period=period, date=today)
        logger.info("Checking novena reminders (%s) for %s", period.value, today)

        pending: List[Subscription] = []
        for subscription in self.store.list_active():
            progress = subscription.novena
            if progress is None or not progress.active:
                result.skipped += 1
                continue
            if progress.last_prayed_date == today:
                result.skipped += 1
                continue
            if not subscription.token:
                logger.info("User %s has no push token, skipping", subscription.user_id)
                result.skipped += 1
                continue
            pending.append(subscription)

        if pending:
            with ThreadPoolExecutor(
                max_workers=min(self.workers, len(pending))
            ) as pool:
                outcomes = list(
                    pool.map(lambda s: self._deliver(s, period), pending)
                )
            result.sent = sum(1 for ok in outcomes if ok)
            result.failed = len(outcomes) - result.sent

        logger.info(
            "Reminder sweep (%s) done: %d sent, %d skipped, %d failed",
            period.value,
            result.sent,
            result.skipped,
            result.failed,
        )
        return result

    def _backoff(self, attempt: int) -> float:
        base = self.retry_base_seconds
        return base * (2 ** (attempt - 1)) + random.uniform(0, base)

    def _deliver(self, subscription: Subscription, period: ReminderPeriod) -> bool:
        message = build_reminder(subscription, period)
        user_id = subscription.user_id
        for attempt in range(1, self.max_attempts + 1):
            try:
                self.delivery.send(message)
            except DeliveryFailure as e:
                if not e.retryable or attempt == self.max_attempts:
                    logger.error(
                        "Push to %s failed after %d attempt(s): %s",
                        user_id,
                        attempt,
                        e,
                    )
                    return False
                delay = self._backoff(attempt)
                logger.warning(
                    "Push to %s failed (attempt %d), retrying in %.1fs: %s",
                    user_id,
                    attempt,
                    delay,
                    e,
                )
                self.sleep(delay)
            except Exception:
                logger.exception("Unexpected error sending push to %s", user_id)
                return False
            else:
                logger.info("Push sent to %s", user_id)
                return True
        return False


@dataclass(frozen=True)
class Trigger:
    period: ReminderPeriod
    at: clock_time


def default_triggers(morning: str = "10:00", evening: str = "20:30") -> List[Trigger]:
    return [
        Trigger(ReminderPeriod.MORNING, clock_time.fromisoformat(morning)),
        Trigger(ReminderPeriod.EVENING, clock_time.fromisoformat(evening)),
    ]


def next_fire(triggers: Sequence[Trigger], now: datetime) -> tuple[datetime, Trigger]:
    """Return the next local fire time strictly after `now` and its trigger."""
    candidates = []
    for trigger in triggers:
        fire_at = now.replace(
            hour=trigger.at.hour, minute=trigger.at.minute, second=0, microsecond=0
        )
        if fire_at <= now:
            fire_at = fire_at + timedelta(days=1)
        candidates.append((fire_at, trigger))
    return min(candidates, key=lambda item: item[0])


class ReminderScheduler:
    """Runs the sweep at fixed local times on a background daemon thread."""

    def __init__(
        self,
        sweep: ReminderSweep,
        triggers: Sequence[Trigger],
        tz_name: str = "America/Sao_Paulo",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not triggers:
            raise ValueError("At least one trigger is required")
        self.sweep = sweep
        self.triggers = list(triggers)
        self.tz = ZoneInfo(tz_name)
        self.clock = clock or (lambda: datetime.now(self.tz))
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="novena-reminders", daemon=True
        )
        self._thread.start()
        logger.info("Reminder scheduler started (%s)", self.tz.key)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None

    def run_trigger(self, period: ReminderPeriod) -> Optional[SweepResult]:
        try:
            return self.sweep.run(period)
        except Exception:
            logger.exception("Reminder sweep (%s) failed", period.value)
            return None

    def _run(self) -> None:
        last_fire_at: Optional[datetime] = None
        while not self._stop.is_set():
            now = self.clock().astimezone(self.tz)
            # Waking early or a clock stepped back must not repeat a trigger.
            after = now if last_fire_at is None else max(now, last_fire_at)
            fire_at, trigger = next_fire(self.triggers, after)
            wait_seconds = (
                fire_at.astimezone(timezone.utc) - now.astimezone(timezone.utc)
            ).total_seconds()
            logger.info(
                "Next reminder sweep (%s) at %s",
                trigger.period.value,
                fire_at.isoformat(),
            )
            if self._stop.wait(max(wait_seconds, 0)):
                break
            last_fire_at = fire_at
            self.run_trigger(trigger.period)
