"""
Single-threaded callback scheduler.

All core logic runs on the thread that calls run_pending(). Worker threads
(TTS, speech recognition, vibration playback) never touch core state
directly; they post() their completions here instead.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import queue
import time
from typing import Any, Callable, List, Tuple


class TimerHandle:
    def __init__(self, due: float, interval: float | None, callback: Callable[..., Any], args: tuple) -> None:
        self.due = due
        self.interval = interval
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class CallbackDispatcher:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._logger = logging.getLogger(__name__)
        self._clock = clock
        self._posted: queue.Queue[Tuple[Callable[..., Any], tuple]] = queue.Queue()
        self._timers: List[Tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._clock()

    def post(self, callback: Callable[..., Any], *args: Any) -> None:
        """Thread-safe: run callback on the next run_pending()."""
        self._posted.put((callback, args))

    def call_later(self, delay_s: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        handle = TimerHandle(self._clock() + max(0.0, delay_s), None, callback, args)
        self._push(handle)
        return handle

    def call_every(self, interval_s: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        handle = TimerHandle(self._clock() + interval_s, interval_s, callback, args)
        self._push(handle)
        return handle

    def pending_timers(self) -> int:
        return sum(1 for _, _, handle in self._timers if not handle.cancelled)

    def run_pending(self) -> int:
        ran = 0
        # callbacks posted while draining wait for the next call
        for _ in range(self._posted.qsize()):
            try:
                callback, args = self._posted.get_nowait()
            except queue.Empty:
                break
            self._invoke(callback, args)
            ran += 1

        now = self._clock()
        due: List[TimerHandle] = []
        while self._timers and self._timers[0][0] <= now:
            _, _, handle = heapq.heappop(self._timers)
            if not handle.cancelled:
                due.append(handle)
        for handle in due:
            if handle.cancelled:
                continue
            self._invoke(handle.callback, handle.args)
            ran += 1
            if handle.interval is not None and not handle.cancelled:
                handle.due = now + handle.interval
                self._push(handle)
        return ran

    def _push(self, handle: TimerHandle) -> None:
        heapq.heappush(self._timers, (handle.due, next(self._seq), handle))

    def _invoke(self, callback: Callable[..., Any], args: tuple) -> None:
        try:
            callback(*args)
        except Exception:
            self._logger.exception("Callback %r failed", callback)
