# tts_sink.py
"""
Offline TTS sink with an explicit completion contract.

Design goals:
- Offline only (pyttsx3)
- One utterance in flight (single worker thread)
- Every say() ends in exactly one DONE / ERROR / CANCELLED completion
- Completions are posted back to the dispatcher thread, never run on the worker
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol, Sequence

from safewalk.config import DEFAULT_WPM, PREFERRED_VOICE_NAMES
from safewalk.dispatcher import CallbackDispatcher


class SpeechOutcome(str, Enum):
    DONE = "done"
    ERROR = "error"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Utterance:
    text: str
    rate: float = 1.0               # multiplier on the engine's normal speed
    voice_id: Optional[str] = None  # None = keep engine default


@dataclass(frozen=True)
class VoiceInfo:
    id: str
    name: str
    language: str


CompletionCallback = Callable[[SpeechOutcome], None]


class SpeechSink(Protocol):
    @property
    def supported(self) -> bool: ...

    def say(self, utterance: Utterance, on_complete: CompletionCallback) -> None: ...

    def cancel(self) -> None: ...

    def voices(self) -> List[VoiceInfo]: ...


def select_voice(
    voices: Sequence[VoiceInfo],
    language: str = "en-US",
    preferred_names: Sequence[str] = PREFERRED_VOICE_NAMES,
) -> Optional[VoiceInfo]:
    """First preferred voice in the language, else the first voice in the language."""
    prefix = language.split("-")[0].lower()
    in_language = [v for v in voices if v.language.lower().startswith(prefix)]
    for voice in in_language:
        name = voice.name.lower()
        if any(want in name for want in preferred_names):
            return voice
    return in_language[0] if in_language else None


@dataclass(eq=False)
class _Job:
    utterance: Utterance
    on_complete: CompletionCallback
    cancelled: bool = False


class Pyttsx3Sink:
    """pyttsx3 backend. Unsupported (all calls no-ops) if the engine cannot start."""

    def __init__(self, dispatcher: CallbackDispatcher) -> None:
        self._logger = logging.getLogger(__name__)
        self._dispatcher = dispatcher
        self._q: queue.Queue[Optional[_Job]] = queue.Queue()
        self._shutdown = threading.Event()
        self._engine_lock = threading.Lock()
        # guards _jobs, _current and every job's cancelled flag
        self._jobs_lock = threading.Lock()
        self._jobs: List[_Job] = []
        self._current: Optional[_Job] = None
        self._engine: Optional[Any] = None
        self._base_rate = DEFAULT_WPM

        try:
            import pyttsx3

            self._engine = pyttsx3.init()
            self._base_rate = int(self._engine.getProperty("rate") or DEFAULT_WPM)
            self._engine.connect("started-utterance", self._on_utterance_started)
        except Exception as exc:
            self._logger.error("pyttsx3 init failed: %s", exc)
            self._engine = None
            return

        self._worker = threading.Thread(target=self._run_worker, name="SpeechWorker", daemon=True)
        self._worker.start()

    # ---------------------------
    # Public API
    # ---------------------------

    @property
    def supported(self) -> bool:
        return self._engine is not None and not self._shutdown.is_set()

    def say(self, utterance: Utterance, on_complete: CompletionCallback) -> None:
        if not self.supported:
            raise RuntimeError("TTS engine not available")
        job = _Job(utterance, on_complete)
        with self._jobs_lock:
            self._jobs.append(job)
        self._q.put_nowait(job)

    def cancel(self) -> None:
        """Cancel every utterance not yet completed; each completes as CANCELLED."""
        with self._jobs_lock:
            for job in self._jobs:
                job.cancelled = True
            speaking = self._current is not None
        if self._engine is None or not speaking:
            return
        try:
            self._engine.stop()
        except Exception as exc:
            self._logger.error("pyttsx3 stop failed: %s", exc)

    def voices(self) -> List[VoiceInfo]:
        if self._engine is None:
            return []
        try:
            with self._engine_lock:
                raw = self._engine.getProperty("voices") or []
        except Exception as exc:
            self._logger.error("Failed to list voices: %s", exc)
            return []
        return [
            VoiceInfo(
                id=str(getattr(voice, "id", "")),
                name=str(getattr(voice, "name", "") or ""),
                language=self._voice_language(voice),
            )
            for voice in raw
        ]

    def shutdown(self) -> None:
        """Cancel outstanding jobs and stop the worker once they have completed."""
        if self._shutdown.is_set():
            return
        self._shutdown.set()
        self.cancel()
        self._q.put_nowait(None)

    # ---------------------------
    # Internal helpers
    # ---------------------------

    @staticmethod
    def _voice_language(voice: Any) -> str:
        for lang in getattr(voice, "languages", []) or []:
            if isinstance(lang, bytes):
                # espeak prefixes a priority byte, e.g. b"\x05en-us"
                decoded = lang.decode("utf-8", errors="ignore")
                lang = "".join(ch for ch in decoded if ch.isprintable())
            lang = str(lang).strip().replace("_", "-")
            if lang:
                return lang
        haystack = f"{getattr(voice, 'id', '')} {getattr(voice, 'name', '')}".lower()
        if "english" in haystack or "en-" in haystack or "en_" in haystack:
            return "en"
        return ""

    def _on_utterance_started(self, _name: Any) -> None:
        # A cancel that landed before runAndWait() began is only seen here.
        with self._jobs_lock:
            job = self._current
            cancelled = job is not None and job.cancelled
        if cancelled:
            try:
                self._engine.stop()
            except Exception as exc:
                self._logger.error("pyttsx3 stop failed: %s", exc)

    def _run_worker(self) -> None:
        # Runs until the shutdown sentinel so every queued job gets its completion.
        while True:
            job = self._q.get()
            if job is None:
                break
            outcome = self._speak(job)
            with self._jobs_lock:
                if job.cancelled:
                    outcome = SpeechOutcome.CANCELLED
                if job in self._jobs:
                    self._jobs.remove(job)
            self._dispatcher.post(job.on_complete, outcome)

    def _speak(self, job: _Job) -> SpeechOutcome:
        with self._engine_lock:
            with self._jobs_lock:
                if job.cancelled:
                    return SpeechOutcome.CANCELLED
                self._current = job
            try:
                self._engine.setProperty("rate", int(self._base_rate * job.utterance.rate))
                if job.utterance.voice_id:
                    self._engine.setProperty("voice", job.utterance.voice_id)
                self._engine.say(job.utterance.text)
                self._engine.runAndWait()
            except Exception as exc:
                self._logger.error("pyttsx3 speak failed: %s", exc)
                return SpeechOutcome.ERROR
            finally:
                with self._jobs_lock:
                    self._current = None
        return SpeechOutcome.DONE
