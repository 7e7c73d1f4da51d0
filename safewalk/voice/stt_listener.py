"""Offline speech-to-text using Vosk, plus the wake-word gate."""

from __future__ import annotations

from typing import Any, Callable, Optional

import importlib.util
import json
import logging
import os
import threading

from safewalk.config import (
    AWAKE_TIMEOUT_S,
    RECOGNITION_END_RESTART_DELAY_S,
    RECOGNITION_RESTART_DELAY_S,
    WAKE_PHRASE,
)
from safewalk.dispatcher import CallbackDispatcher, TimerHandle

# Expected during normal operation; neither logged nor restarted.
IGNORED_ERRORS = frozenset({"no-speech", "aborted"})


class VoiceCommandListener:
    """
    Continuous offline recognition on a worker thread.

    Transcripts, errors and end-of-stream are posted to the dispatcher, so
    on_transcript always runs on the core thread.
    """

    def __init__(
        self,
        dispatcher: CallbackDispatcher,
        on_transcript: Callable[[str], None],
        *,
        model_path: Optional[str] = None,
        sample_rate: int = 16000,
        device: Optional[int] = None,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._dispatcher = dispatcher
        self._on_transcript = on_transcript
        self._sample_rate = sample_rate
        self._device = device
        self._model_path = model_path or os.environ.get("VOSK_MODEL_PATH", "assets/vosk-model")
        self._model: Optional[Any] = None
        self._listening = False
        self._stop_event = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._restart_timer: Optional[TimerHandle] = None

        if importlib.util.find_spec("vosk") is None or importlib.util.find_spec("sounddevice") is None:
            self._logger.warning("vosk/sounddevice not installed; voice commands disabled.")
            return
        if not os.path.isdir(self._model_path):
            self._logger.warning("Vosk model path not found: %s", self._model_path)
            return
        try:
            import vosk

            self._model = vosk.Model(self._model_path)
        except Exception as exc:
            self._logger.error("Vosk model init failed: %s", exc)

    @property
    def supported(self) -> bool:
        return self._model is not None

    @property
    def listening(self) -> bool:
        return self._listening

    def start(self) -> None:
        if self._listening:
            return
        self._listening = True
        self._launch()

    def stop(self) -> None:
        self._listening = False
        self._stop_event.set()
        if self._restart_timer is not None:
            self._restart_timer.cancel()
            self._restart_timer = None

    # ---------------------------
    # Lifecycle events (core thread)
    # ---------------------------

    def handle_result(self, transcript: str) -> None:
        text = (transcript or "").lower().strip()
        if text:
            self._logger.info("Voice command received: %s", text)
            self._on_transcript(text)

    def handle_error(self, error: str) -> None:
        if error in IGNORED_ERRORS:
            return
        self._logger.error("Speech recognition error: %s", error)
        if self._listening:
            self._schedule_restart(RECOGNITION_RESTART_DELAY_S)

    def handle_end(self) -> None:
        if self._listening:
            self._schedule_restart(RECOGNITION_END_RESTART_DELAY_S)

    # ---------------------------
    # Internal helpers
    # ---------------------------

    def _schedule_restart(self, delay_s: float) -> None:
        if self._restart_timer is not None:
            self._restart_timer.cancel()
        self._restart_timer = self._dispatcher.call_later(delay_s, self._restart)

    def _restart(self) -> None:
        self._restart_timer = None
        if self._listening:
            self._launch()

    def _launch(self) -> None:
        if self._model is None:
            return
        if self._worker is not None and self._worker.is_alive():
            return
        self._stop_event = threading.Event()
        self._worker = threading.Thread(
            target=self._listen_loop, args=(self._stop_event,), name="VoskListener", daemon=True
        )
        self._worker.start()

    def _listen_loop(self, stop_event: threading.Event) -> None:
        """Continuously post recognized utterances to the dispatcher."""
        try:
            import sounddevice as sd
            import vosk

            recognizer = vosk.KaldiRecognizer(self._model, self._sample_rate)

            def _callback(indata: bytes, _frames: int, _time, _status) -> None:
                if _status:
                    self._logger.debug("STT stream status: %s", _status)
                if recognizer.AcceptWaveform(bytes(indata)):
                    result = json.loads(recognizer.Result())
                    text = (result.get("text") or "").strip()
                    if text:
                        self._dispatcher.post(self.handle_result, text)

            with sd.RawInputStream(
                samplerate=self._sample_rate,
                blocksize=8000,
                dtype="int16",
                channels=1,
                callback=_callback,
                device=self._device,
            ):
                while not stop_event.is_set():
                    sd.sleep(100)
        except Exception as exc:
            self._dispatcher.post(self.handle_error, f"audio-capture: {exc}")
            return
        self._dispatcher.post(self.handle_end)


class WakeWordGate:
    """Only transcripts spoken within AWAKE_TIMEOUT_S of the wake phrase become commands."""

    def __init__(
        self,
        dispatcher: CallbackDispatcher,
        on_wake: Callable[[], None],
        on_command: Callable[[str], None],
        *,
        wake_phrase: str = WAKE_PHRASE,
        awake_timeout_s: float = AWAKE_TIMEOUT_S,
    ) -> None:
        self._dispatcher = dispatcher
        self._on_wake = on_wake
        self._on_command = on_command
        self._wake_phrase = wake_phrase.lower()
        self._awake_timeout_s = awake_timeout_s
        self._awake = False
        self._last_command: Optional[str] = None
        self._sleep_timer: Optional[TimerHandle] = None

    @property
    def awake(self) -> bool:
        return self._awake

    @property
    def last_command(self) -> Optional[str]:
        return self._last_command

    def feed(self, transcript: str) -> None:
        text = (transcript or "").lower().strip()
        if not text:
            return
        if self._wake_phrase in text:
            self._awake = True
            self._last_command = None
            self._arm_sleep()
            self._on_wake()
            return
        if self._awake:
            self._last_command = text
            self._arm_sleep()
            self._on_command(text)

    def reset(self) -> None:
        self._awake = False
        self._last_command = None
        if self._sleep_timer is not None:
            self._sleep_timer.cancel()
            self._sleep_timer = None

    def _arm_sleep(self) -> None:
        if self._sleep_timer is not None:
            self._sleep_timer.cancel()
        self._sleep_timer = self._dispatcher.call_later(self._awake_timeout_s, self._fall_asleep)

    def _fall_asleep(self) -> None:
        self._awake = False
        self._sleep_timer = None
