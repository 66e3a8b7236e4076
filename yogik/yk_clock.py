"""
Session clocks: the only source of elapsed-time events.

- SessionClock: background timing thread, one per active period (start/resume)
- ManualClock: virtual time, advanced explicitly (previews and tests)

Both deliver exactly ``interval`` seconds per tick; there is no wall-clock
drift correction. Ticks and deferred calls run while holding ``clock.lock``
(re-entrant); a session shares that lock so every state change is serialized.
After ``stop()`` returns no further tick is delivered.
"""

import logging
import threading
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

TickHandler = Callable[[float], None]


class ClockState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    PAUSED = "paused"


class ScheduledCall:
    """Handle for a deferred callback. A cancelled call never runs."""

    def __init__(self, callback: Callable[[], None], lock) -> None:
        self._callback = callback
        self._lock = lock
        self._cancelled = False
        self._fired = False
        self._timer: Optional[threading.Timer] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def pending(self) -> bool:
        return not (self._cancelled or self._fired)

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            if self._timer is not None:
                self._timer.cancel()

    def fire(self) -> None:
        with self._lock:
            if not self.pending:
                return
            self._fired = True
            self._callback()


class SessionClock:
    """Cancellable repeating ticker backed by a daemon timing thread."""

    def __init__(self, name: str = "session-clock", lock=None) -> None:
        self.name = name
        self.lock = lock or threading.RLock()
        self.state = ClockState.IDLE
        self.interval: float = 1.0
        self._on_tick: Optional[TickHandler] = None
        self._generation = 0
        self._wake = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self, interval: float, on_tick: TickHandler) -> bool:
        with self.lock:
            if self.state is not ClockState.IDLE:
                return False
            if interval <= 0:
                raise ValueError("tick interval must be positive")
            self.interval = float(interval)
            self._on_tick = on_tick
            self.state = ClockState.ACTIVE
            self._launch()
            logger.debug(f"{self.name}: started ({self.interval}s ticks)")
            return True

    def pause(self) -> bool:
        with self.lock:
            if self.state is not ClockState.ACTIVE:
                return False
            self.state = ClockState.PAUSED
            self._halt()
            return True

    def resume(self) -> bool:
        with self.lock:
            if self.state is not ClockState.PAUSED:
                return False
            self.state = ClockState.ACTIVE
            self._launch()
            return True

    def stop(self) -> None:
        with self.lock:
            if self.state is ClockState.IDLE:
                return
            self.state = ClockState.IDLE
            self._on_tick = None
            self._halt()
            logger.debug(f"{self.name}: stopped")

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(callback, self.lock)
        timer = threading.Timer(max(0.0, delay), call.fire)
        timer.daemon = True
        call._timer = timer
        timer.start()
        return call

    # ---------------- Internals ----------------

    def _launch(self) -> None:
        self._generation += 1
        self._wake = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(self._generation, self._wake),
            name=f"{self.name}-{self._generation}",
            daemon=True,
        )
        self._thread.start()

    def _halt(self) -> None:
        # The worker notices the generation change the next time it takes the lock
        self._generation += 1
        self._wake.set()

    def _run(self, generation: int, wake: threading.Event) -> None:
        while not wake.wait(self.interval):
            with self.lock:
                if generation != self._generation or self.state is not ClockState.ACTIVE:
                    return
                handler = self._on_tick
                if handler is None:
                    return
                try:
                    handler(self.interval)
                except Exception as e:
                    logger.error(f"{self.name}: tick handler failed: {e}", exc_info=True)


class ManualClock:
    """
    Deterministic clock on virtual time.

    ``advance(seconds)`` fires due deferred calls and ticks in time order;
    ``tick(count)`` advances by whole intervals.
    """

    def __init__(self, lock=None) -> None:
        self.lock = lock or threading.RLock()
        self.state = ClockState.IDLE
        self.interval: float = 1.0
        self.now: float = 0.0
        self.ticks_delivered = 0
        self._on_tick: Optional[TickHandler] = None
        self._next_tick_at: Optional[float] = None
        self._calls: List[tuple] = []

    def start(self, interval: float, on_tick: TickHandler) -> bool:
        with self.lock:
            if self.state is not ClockState.IDLE:
                return False
            if interval <= 0:
                raise ValueError("tick interval must be positive")
            self.interval = float(interval)
            self._on_tick = on_tick
            self.state = ClockState.ACTIVE
            self._next_tick_at = self.now + self.interval
            return True

    def pause(self) -> bool:
        with self.lock:
            if self.state is not ClockState.ACTIVE:
                return False
            self.state = ClockState.PAUSED
            self._next_tick_at = None
            return True

    def resume(self) -> bool:
        with self.lock:
            if self.state is not ClockState.PAUSED:
                return False
            self.state = ClockState.ACTIVE
            self._next_tick_at = self.now + self.interval
            return True

    def stop(self) -> None:
        with self.lock:
            self.state = ClockState.IDLE
            self._on_tick = None
            self._next_tick_at = None

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(callback, self.lock)
        with self.lock:
            self._calls.append((self.now + max(0.0, delay), call))
        return call

    @property
    def pending_calls(self) -> int:
        return sum(1 for _, call in self._calls if call.pending)

    def tick(self, count: int = 1) -> None:
        """Advance by ``count`` tick intervals."""
        self.advance(self.interval * count)

    def advance(self, seconds: float) -> None:
        with self.lock:
            target = self.now + seconds
            while True:
                due_call = self._next_call(target)
                due_tick = self._next_tick_at
                if due_tick is not None and due_tick > target + 1e-9:
                    due_tick = None

                if due_call is None and due_tick is None:
                    break
                if due_call is not None and (due_tick is None or due_call[0] <= due_tick):
                    self._calls.remove(due_call)
                    self.now = max(self.now, due_call[0])
                    due_call[1].fire()
                    continue

                self.now = due_tick
                self._next_tick_at = due_tick + self.interval
                self.ticks_delivered += 1
                if self._on_tick is not None:
                    self._on_tick(self.interval)
            self.now = target
            self._calls = [c for c in self._calls if c[1].pending]

    def _next_call(self, target: float):
        due = [c for c in self._calls if c[1].pending and c[0] <= target + 1e-9]
        if not due:
            return None
        return min(due, key=lambda c: c[0])
