"""
Scheduled auto announcements for streambot.

Each account with a connected live chat gets one timer, armed for the
soonest due announcement. On every tick:
1. Due announcements are rendered and sent
2. Each message's next run moves forward by its interval
3. The timer is re-armed for the next soonest message

Cadence survives restarts through the persisted ``last_sent_at``. Repeated
send failures pause the account and take its live chat connection down.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable

from loguru import logger

from streambot.channels.base import Transport
from streambot.config.schema import AnnouncementsConfig
from streambot.state.models import AccountRuntime, AccountSettings, Announcement
from streambot.state.store import AccountStore
from streambot.utils.templates import build_template_values, render_template


DEFAULT_PAUSE_REASON = "Auto announcements paused due to send failures."

TransportFor = Callable[[str, str], Transport]  # (account_id, live_chat_id)
ConnectionDownCallback = Callable[[str, str], Awaitable[None]]


@dataclass
class MessageSchedule:
    """In-memory cadence for one announcement."""
    next_run_at: float
    interval_seconds: int
    fail_count: int = 0


@dataclass
class ScheduleState:
    """All schedules of one account plus its single pending timer."""
    messages: dict[str, MessageSchedule] = field(default_factory=dict)
    handle: asyncio.TimerHandle | None = None
    task: asyncio.Task | None = None


class AnnouncementScheduler:
    """
    Drives auto announcements for every account.

    Args:
        store: Account store.
        transport_for: Builds the send transport for (account_id, live_chat_id).
        config: Failure limit and timer delays.
        on_connection_down: Awaited with (account_id, reason) after a pause.
        clock: Epoch-seconds clock.
    """

    def __init__(
        self,
        store: AccountStore,
        transport_for: TransportFor,
        config: AnnouncementsConfig | None = None,
        on_connection_down: ConnectionDownCallback | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.transport_for = transport_for
        self.config = config or AnnouncementsConfig()
        self.on_connection_down = on_connection_down
        self.clock = clock
        self._states: dict[str, ScheduleState] = {}

    # ========== Lifecycle ==========

    def start(self, account_id: str) -> None:
        """Arm the first tick for an account (no-op if already armed)."""
        if not account_id:
            return
        state = self._states.get(account_id)
        if state is None:
            state = self._states[account_id] = ScheduleState()
        elif state.handle is not None or (state.task and not state.task.done()):
            return
        self._arm(account_id, state, self.config.start_delay)

    def stop(self, account_id: str) -> None:
        """Cancel the account's timer and forget its schedules and failure counts."""
        state = self._states.pop(account_id, None)
        if state is None:
            return
        if state.handle is not None:
            state.handle.cancel()
            state.handle = None
        logger.debug(f"Announcements stopped for {account_id}")

    def stop_all(self) -> None:
        for account_id in list(self._states):
            self.stop(account_id)

    def refresh(self, account_id: str) -> None:
        """Start or stop an account after its settings or announcements changed."""
        if not account_id:
            return
        if self._should_run(account_id):
            self.start(account_id)
        else:
            self.stop(account_id)

    def is_scheduled(self, account_id: str) -> bool:
        state = self._states.get(account_id)
        if state is None:
            return False
        return state.handle is not None or bool(state.task and not state.task.done())

    def reset_failures(self, account_id: str) -> None:
        state = self._states.get(account_id)
        if state is None:
            return
        for entry in state.messages.values():
            entry.fail_count = 0

    async def clear_paused_state(self, account_id: str) -> None:
        def clear(runtime: AccountRuntime) -> None:
            runtime.announcements_paused = False
            runtime.announcements_paused_at = None
            runtime.announcements_paused_reason = ""

        if self.store.load_runtime(account_id).announcements_paused:
            await self.store.update_runtime(account_id, clear)

    # ========== Timer ==========

    def _arm(self, account_id: str, state: ScheduleState, delay: float) -> None:
        if state.handle is not None:
            state.handle.cancel()
        loop = asyncio.get_running_loop()
        state.handle = loop.call_later(delay, self._fire, account_id, state)

    def _fire(self, account_id: str, state: ScheduleState) -> None:
        state.handle = None
        if self._states.get(account_id) is not state:
            return
        state.task = asyncio.create_task(
            self._run_tick(account_id, state), name=f"announce:{account_id}"
        )

    async def _run_tick(self, account_id: str, state: ScheduleState) -> None:
        try:
            await self.tick(account_id)
        except Exception:
            logger.exception(f"Announcement tick failed for {account_id}")
            if self._states.get(account_id) is state:
                self._arm(account_id, state, self.config.fallback_check_delay)

    # ========== Tick ==========

    def _enabled_announcements(self, account_id: str) -> list[Announcement]:
        return [a for a in self.store.load_announcements(account_id) if a.enabled]

    def _should_run(self, account_id: str) -> bool:
        settings = self.store.load_settings(account_id)
        runtime = self.store.load_runtime(account_id)
        return (
            settings.youtube.enabled
            and bool(runtime.live_chat_id)
            and bool(self._enabled_announcements(account_id))
        )

    def _bootstrap(self, item: Announcement, now: float, interval: int) -> float:
        if item.last_sent_at is not None:
            candidate = item.last_sent_at.timestamp() + interval
            if candidate > now:
                return candidate
        return now + interval

    def _advance(self, entry: MessageSchedule) -> float:
        next_run_at = entry.next_run_at + entry.interval_seconds
        now = self.clock()
        if next_run_at <= now:
            next_run_at = now + entry.interval_seconds
        return next_run_at

    async def tick(self, account_id: str) -> None:
        """Send whatever is due for one account, then re-arm its timer."""
        state = self._states.get(account_id)
        if state is None:
            return

        settings = self.store.load_settings(account_id)
        runtime = self.store.load_runtime(account_id)
        if not settings.youtube.enabled or not runtime.live_chat_id:
            self.stop(account_id)
            return

        announcements = self._enabled_announcements(account_id)
        if not announcements:
            self.stop(account_id)
            return

        now = self.clock()
        transport: Transport | None = None

        for item in announcements:
            interval = max(1, item.interval_seconds)
            entry = state.messages.get(item.id)
            if entry is None:
                entry = MessageSchedule(
                    next_run_at=self._bootstrap(item, now, interval),
                    interval_seconds=interval,
                )
                state.messages[item.id] = entry
            elif entry.interval_seconds != interval:
                entry.interval_seconds = interval
                entry.next_run_at = now + interval

            if now < entry.next_run_at:
                continue
            if self._states.get(account_id) is not state:
                return

            transport = transport or self.transport_for(account_id, runtime.live_chat_id)
            text = render_template(
                item.message, build_template_values(runtime=runtime, quota=self.store.quota.info())
            ).strip()
            try:
                await transport.send(text)
            except Exception as e:
                if self._states.get(account_id) is not state:
                    logger.debug(f"Dropping failure from a stopped schedule for {account_id}: {e}")
                    return
                entry.fail_count += 1
                entry.next_run_at = self._advance(entry)
                logger.warning(
                    f"Announcement '{item.name}' failed for {account_id} "
                    f"({entry.fail_count}/{self.config.failure_limit}): {e}"
                )
                if entry.fail_count >= self.config.failure_limit:
                    await self._pause(account_id, str(e) or DEFAULT_PAUSE_REASON)
                    return
                continue

            entry.fail_count = 0
            entry.next_run_at = self._advance(entry)
            self.store.update_announcement_last_sent(
                account_id, item.id, datetime.fromtimestamp(self.clock())
            )
            logger.bind(channel="bot").info(f"announcement.sent {item.name} ({account_id})")

        active = {item.id for item in announcements}
        for key in list(state.messages):
            if key not in active:
                del state.messages[key]

        if self._states.get(account_id) is not state:
            return
        soonest = min(entry.next_run_at for entry in state.messages.values())
        delay = max(self.config.min_timer_delay, soonest - self.clock())
        self._arm(account_id, state, delay)

    async def _pause(self, account_id: str, reason: str) -> None:
        logger.warning(f"Auto announcements paused for {account_id}: {reason}")

        def pause(runtime: AccountRuntime) -> None:
            runtime.clear_connection()
            runtime.announcements_paused = True
            runtime.announcements_paused_at = datetime.now()
            runtime.announcements_paused_reason = reason

        await self.store.update_runtime(account_id, pause)

        def disable(settings: AccountSettings) -> None:
            settings.youtube.enabled = False

        self.store.update_settings(account_id, disable)
        self.stop(account_id)
        if self.on_connection_down is not None:
            await self.on_connection_down(account_id, reason)
