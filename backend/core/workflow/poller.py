import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, Set
from pydantic import BaseModel

from clients.base import ServiceError
from config.settings import settings
from models.report import ProcessingStatus, StatusReport

logger = logging.getLogger(__name__)

class PollOutcome(str, Enum):
    completed = "completed"
    failed = "failed"
    timeout = "timeout"
    cancelled = "cancelled"

class PollResult(BaseModel):
    outcome: PollOutcome
    attempts: int
    report: StatusReport | None = None

class Poller:
    """
    Polls a processing-status endpoint on a fixed schedule until the backend
    reports a terminal status, the attempt ceiling is hit, or cancel() is called.

    Ticks are not serialized behind requests: a slow status call does not delay
    the next tick. Each request carries its attempt number as a sequence number;
    a response older than the last accepted one is dropped.
    """

    def __init__(self,
                 fetch: Callable[[], Awaitable[StatusReport]],
                 interval_seconds: Optional[float] = None,
                 max_attempts: Optional[int] = None,
                 on_attempt: Optional[Callable[[int], None]] = None):
        self.fetch = fetch
        self.interval = interval_seconds if interval_seconds is not None else settings.polling.interval_seconds
        self.max_attempts = max_attempts if max_attempts is not None else settings.polling.max_attempts
        self.on_attempt = on_attempt
        self.attempts = 0
        self._last_accepted = 0
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self._done: Optional[asyncio.Future] = None

    @property
    def finished(self) -> bool:
        return self._done is not None and self._done.done()

    def start(self) -> None:
        if self._timer is not None:
            raise RuntimeError("Poller already started")
        self._done = asyncio.get_running_loop().create_future()
        self._timer = asyncio.create_task(self._run())

    async def wait(self) -> PollResult:
        if self._done is None:
            raise RuntimeError("Poller was never started")
        return await asyncio.shield(self._done)

    def cancel(self) -> None:
        self._finish(PollResult(outcome=PollOutcome.cancelled, attempts=self.attempts))

    async def _run(self):
        while self.attempts < self.max_attempts:
            await asyncio.sleep(self.interval)
            if self.finished:
                return

            self.attempts += 1
            if self.on_attempt:
                self.on_attempt(self.attempts)

            task = asyncio.create_task(self._tick(self.attempts))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

        # Ceiling reached; requests already sent still get to land.
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

        if not self.finished:
            logger.warning(f"Status polling gave up after {self.attempts} attempts")
        self._finish(PollResult(outcome=PollOutcome.timeout, attempts=self.attempts))

    async def _tick(self, seq: int):
        try:
            report = await self.fetch()
        except ServiceError as e:
            logger.warning(f"Status poll #{seq} failed, will retry on next tick: {e.message}")
            return
        except Exception:
            logger.exception(f"Status poll #{seq} crashed")
            return

        if self.finished:
            return
        if seq < self._last_accepted:
            logger.debug(f"Dropping stale status response #{seq} (last accepted #{self._last_accepted})")
            return
        self._last_accepted = seq

        if report.status == ProcessingStatus.completed:
            self._finish(PollResult(outcome=PollOutcome.completed, attempts=self.attempts, report=report))
        elif report.status == ProcessingStatus.failed:
            self._finish(PollResult(outcome=PollOutcome.failed, attempts=self.attempts, report=report))

    def _finish(self, result: PollResult) -> None:
        if self._done is None or self._done.done():
            return
        self._done.set_result(result)

        current = asyncio.current_task()
        if self._timer is not None and self._timer is not current:
            self._timer.cancel()
        for task in list(self._inflight):
            if task is not current:
                task.cancel()
