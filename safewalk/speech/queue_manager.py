"""
Priority-preemptive speech queue.

The only write path to the speech sink. Exactly one item plays at a time;
the queue advances only from playback completions, never by polling.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from safewalk.common import Priority
from safewalk.config import PREFERRED_VOICE_NAMES, SPEECH_RATE
from safewalk.speech.tts_sink import SpeechOutcome, SpeechSink, Utterance, select_voice


@dataclass(frozen=True)
class SpeechQueueItem:
    text: str
    priority: Priority
    timestamp: float


@dataclass(frozen=True)
class QueueState:
    current: Optional[SpeechQueueItem]
    pending: Tuple[SpeechQueueItem, ...]
    is_playing: bool

    @property
    def sequence(self) -> Tuple[SpeechQueueItem, ...]:
        """Playing item (if any) followed by pending items, in play order."""
        if self.current is None:
            return self.pending
        return (self.current,) + self.pending


class SpeechQueueManager:
    def __init__(
        self,
        sink: SpeechSink,
        *,
        rate: float = SPEECH_RATE,
        language: str = "en-US",
        preferred_voices: Sequence[str] = PREFERRED_VOICE_NAMES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._sink = sink
        self._rate = rate
        self._language = language
        self._preferred_voices = tuple(preferred_voices)
        self._clock = clock

        self._queue: List[SpeechQueueItem] = []
        self._current: Optional[SpeechQueueItem] = None
        self._last_spoken: Optional[SpeechQueueItem] = None
        self._is_playing = False
        self._playback_id = 0
        self._voice_id: Optional[str] = None
        self._voice_resolved = False

    @property
    def supported(self) -> bool:
        return self._sink.supported

    @property
    def is_playing(self) -> bool:
        return self._is_playing

    @property
    def last_spoken(self) -> Optional[SpeechQueueItem]:
        """Most recent item handed to the sink."""
        return self._last_spoken

    def snapshot(self) -> QueueState:
        return QueueState(self._current, tuple(self._queue), self._is_playing)

    def speak(self, text: str, priority: Priority | str = Priority.NORMAL) -> None:
        """Non-blocking: enqueue and, if idle, start playback."""
        text = (text or "").strip()
        if not text or not self.supported:
            return
        priority = Priority(priority)
        item = SpeechQueueItem(text=text, priority=priority, timestamp=self._clock())

        if priority is Priority.CRITICAL:
            self._cancel_playback()
            self._queue = [item]
        elif priority is Priority.HIGH and self._is_playing:
            if self._current is not None and self._current.priority is Priority.CRITICAL:
                # never preempt critical: go right behind it
                self._queue.insert(self._leading_critical_count(), item)
            else:
                self._cancel_playback()
                self._queue.insert(0, item)
        else:
            self._queue.append(item)
            # list.sort is stable, equal priorities keep insertion order
            self._queue.sort(key=lambda queued: queued.priority.weight, reverse=True)

        self._process_queue()

    def stop(self) -> None:
        """Cancel playback and drop everything pending."""
        self._cancel_playback()
        self._queue.clear()

    # ---------------------------
    # Internal helpers
    # ---------------------------

    def _leading_critical_count(self) -> int:
        count = 0
        for queued in self._queue:
            if queued.priority is not Priority.CRITICAL:
                break
            count += 1
        return count

    def _cancel_playback(self) -> None:
        if not self._is_playing:
            return
        # bumping the id turns the pending completion into a stale one
        self._playback_id += 1
        self._is_playing = False
        self._current = None
        try:
            self._sink.cancel()
        except Exception as exc:
            self._logger.error("Speech cancel failed: %s", exc)

    def _process_queue(self) -> None:
        while not self._is_playing and self._queue:
            item = self._queue.pop(0)
            self._playback_id += 1
            playback_id = self._playback_id
            self._is_playing = True
            self._current = item
            self._last_spoken = item
            utterance = Utterance(text=item.text, rate=self._rate, voice_id=self._preferred_voice())
            self._logger.info("Speaking (%s): %s", item.priority.value, item.text)
            try:
                self._sink.say(
                    utterance,
                    lambda outcome, pid=playback_id: self._on_playback_complete(pid, outcome),
                )
            except Exception as exc:
                self._logger.error("Speech dispatch failed: %s", exc)
                if self._playback_id == playback_id:
                    self._is_playing = False
                    self._current = None

    def _on_playback_complete(self, playback_id: int, outcome: SpeechOutcome) -> None:
        if playback_id != self._playback_id or not self._is_playing:
            self._logger.debug("Ignoring stale completion %s (%s)", playback_id, outcome.value)
            return
        if outcome is SpeechOutcome.ERROR:
            self._logger.warning("Speech playback error: %s", self._current.text if self._current else "")
        self._is_playing = False
        self._current = None
        self._process_queue()

    def _preferred_voice(self) -> Optional[str]:
        if not self._voice_resolved:
            self._voice_resolved = True
            try:
                voice = select_voice(self._sink.voices(), self._language, self._preferred_voices)
            except Exception as exc:
                self._logger.error("Voice lookup failed: %s", exc)
                voice = None
            self._voice_id = voice.id if voice is not None else None
            if voice is not None:
                self._logger.info("Using voice: %s", voice.name)
        return self._voice_id
