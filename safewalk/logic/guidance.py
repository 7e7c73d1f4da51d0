"""Ambient heartbeat for continuous guidance (safe walk)."""

from __future__ import annotations

import logging
import random
from typing import Callable, List, Optional, Sequence

from safewalk.common import ClassifiedDetection, Priority
from safewalk.config import (
    HEARTBEAT_INTERVAL_S,
    HEARTBEAT_INTRO_DELAY_S,
    HEARTBEAT_MIN_GAP_S,
    NAVIGATION_CONTEXT_DELAY_S,
)
from safewalk.dispatcher import CallbackDispatcher, TimerHandle
from safewalk.voice.speech_formatter import SpeechFormatter

SpeakFn = Callable[[str, Priority], None]


class ContinuousGuidance:
    """
    Emits exactly one status announcement per tick, independent of the
    per-detection cooldown: a danger warning, an awareness count, or a
    reassurance phrase when nothing is in view.
    """

    def __init__(
        self,
        speak: SpeakFn,
        dispatcher: CallbackDispatcher,
        *,
        interval_s: float = HEARTBEAT_INTERVAL_S,
        min_gap_s: float = HEARTBEAT_MIN_GAP_S,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._speak = speak
        self._dispatcher = dispatcher
        self._interval_s = interval_s
        self._min_gap_s = min_gap_s
        self._rng = rng or random.Random()

        self._detections: List[ClassifiedDetection] = []
        self._navigation_step: Optional[str] = None
        self._last_tick: Optional[float] = None
        self._timers: List[TimerHandle] = []

    @property
    def running(self) -> bool:
        return bool(self._timers)

    def start(self) -> None:
        if self.running:
            return
        self._timers = [
            self._dispatcher.call_every(self._interval_s, self.tick),
            self._dispatcher.call_later(
                HEARTBEAT_INTRO_DELAY_S,
                self._speak,
                "Safe walk mode active. I will guide you.",
                Priority.NORMAL,
            ),
        ]
        self._logger.info("Continuous guidance started (every %.1fs)", self._interval_s)

    def stop(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers = []
        self._last_tick = None

    def update(self, detections: Sequence[ClassifiedDetection]) -> None:
        self._detections = list(detections)

    def set_navigation_step(self, instruction: Optional[str]) -> None:
        self._navigation_step = instruction

    def tick(self) -> Optional[str]:
        """Returns the text announced, or None if suppressed by the gap guard."""
        now = self._dispatcher.now()
        if self._last_tick is not None and now - self._last_tick < self._min_gap_s:
            return None
        self._last_tick = now

        dangers = [
            det for det in self._detections
            if det.priority in (Priority.CRITICAL, Priority.HIGH)
        ]
        if dangers:
            text = SpeechFormatter.danger(dangers[0].announcement)
            self._speak(text, Priority.HIGH)
        elif self._detections:
            text = SpeechFormatter.nearby([det.object for det in self._detections])
            self._speak(text, Priority.LOW)
        else:
            text = self._rng.choice(SpeechFormatter.PATH_CLEAR_MESSAGES)
            self._speak(text, Priority.LOW)

        if self._navigation_step:
            self._dispatcher.call_later(
                NAVIGATION_CONTEXT_DELAY_S, self._speak, self._navigation_step, Priority.NORMAL
            )
        return text
