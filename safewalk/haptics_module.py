"""Haptic feedback: named vibration patterns scaled by a user intensity."""

from __future__ import annotations

import logging
import shutil
import subprocess
import threading
from enum import Enum
from typing import Dict, List, Optional, Protocol, Sequence, Union

from safewalk.common import Priority, TurnDirection


class HapticPattern(str, Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"
    DANGER = "danger"
    SUCCESS = "success"
    WARNING = "warning"
    EMERGENCY = "emergency"
    FALL = "fall"
    FOUND = "found"


class Intensity(str, Enum):
    OFF = "off"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def multiplier(self) -> float:
        return _INTENSITY_MULTIPLIERS[self]


_INTENSITY_MULTIPLIERS = {
    Intensity.OFF: 0.0,
    Intensity.LOW: 0.5,
    Intensity.MEDIUM: 1.0,
    Intensity.HIGH: 1.5,
}

# Durations in ms, alternating vibrate / pause.
PATTERNS: Dict[HapticPattern, List[int]] = {
    HapticPattern.LIGHT: [50],
    HapticPattern.MEDIUM: [100],
    HapticPattern.HEAVY: [200],
    HapticPattern.DANGER: [100, 50, 100, 50, 200],
    HapticPattern.SUCCESS: [50, 100, 50],
    HapticPattern.WARNING: [100, 100, 100],
    HapticPattern.EMERGENCY: [200, 100, 200, 100, 200, 100, 200],
    HapticPattern.FALL: [400, 100, 400, 100, 400],
    HapticPattern.FOUND: [50, 50, 50, 50, 150],
}

TURN_PATTERNS: Dict[TurnDirection, List[int]] = {
    TurnDirection.STRAIGHT: [50],
    TurnDirection.LEFT: [100, 50, 100],
    TurnDirection.RIGHT: [100, 50, 100, 50, 100],
    TurnDirection.SLIGHT_LEFT: [50, 50, 50],
    TurnDirection.SLIGHT_RIGHT: [50, 50, 50, 50, 50],
    TurnDirection.U_TURN: [300, 100, 300],
    TurnDirection.ARRIVAL: [200, 100, 200, 100, 200],
}

PatternSpec = Union[HapticPattern, TurnDirection, str, int, Sequence[int]]


class VibrationBackend(Protocol):
    def available(self) -> bool: ...

    def play(self, pattern_ms: List[int]) -> bool: ...

    def cancel(self) -> None: ...


class TermuxVibrator:
    """Android phone vibration through the Termux API (pkg install termux-api)."""

    def __init__(self, command: str = "termux-vibrate") -> None:
        self._logger = logging.getLogger(__name__)
        self._command = shutil.which(command)
        self._cancel = threading.Event()
        self._worker: Optional[threading.Thread] = None

    def available(self) -> bool:
        return self._command is not None

    def play(self, pattern_ms: List[int]) -> bool:
        if self._command is None:
            return False
        self.cancel()
        self._cancel = threading.Event()
        self._worker = threading.Thread(
            target=self._run, args=(list(pattern_ms), self._cancel), name="Vibration", daemon=True
        )
        self._worker.start()
        return True

    def cancel(self) -> None:
        self._cancel.set()

    def _run(self, pattern_ms: List[int], cancel: threading.Event) -> None:
        for index, duration in enumerate(pattern_ms):
            if cancel.is_set():
                return
            if index % 2 == 1:
                cancel.wait(duration / 1000.0)
                continue
            try:
                # -f: vibrate even in silent mode
                subprocess.run([self._command, "-f", "-d", str(duration)], check=False)
            except Exception as exc:
                self._logger.error("termux-vibrate failed: %s", exc)
                return
            cancel.wait(duration / 1000.0)


class HapticsManager:
    """Single write path to the vibration backend. Never raises."""

    def __init__(
        self,
        backend: Optional[VibrationBackend] = None,
        intensity: Intensity | str = Intensity.MEDIUM,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._backend = backend
        self._intensity = Intensity(intensity)
        self._supported = False
        if backend is not None:
            try:
                self._supported = bool(backend.available())
            except Exception as exc:
                self._logger.error("Vibration probe failed: %s", exc)
        if not self._supported:
            self._logger.warning("Vibration not supported; haptics disabled.")

    @property
    def supported(self) -> bool:
        return self._supported

    @property
    def intensity(self) -> Intensity:
        return self._intensity

    def set_intensity(self, intensity: Intensity | str) -> None:
        self._intensity = Intensity(intensity)

    def resolve(self, pattern: PatternSpec) -> Optional[List[int]]:
        """Scaled durations for a pattern, or None if the name is unknown."""
        if isinstance(pattern, HapticPattern):
            raw: Sequence[int] = PATTERNS[pattern]
        elif isinstance(pattern, TurnDirection):
            raw = TURN_PATTERNS[pattern]
        elif isinstance(pattern, str):
            if pattern in HapticPattern._value2member_map_:
                raw = PATTERNS[HapticPattern(pattern)]
            elif pattern in TurnDirection._value2member_map_:
                raw = TURN_PATTERNS[TurnDirection(pattern)]
            else:
                return None
        elif isinstance(pattern, int):
            raw = [pattern]
        else:
            raw = list(pattern)
        factor = self._intensity.multiplier
        return [int(round(duration * factor)) for duration in raw]

    def vibrate(self, pattern: PatternSpec) -> bool:
        if not self._supported or self._intensity is Intensity.OFF:
            return False
        durations = self.resolve(pattern)
        if durations is None:
            self._logger.warning("Unknown haptic pattern: %s", pattern)
            return False
        try:
            return bool(self._backend.play(durations))
        except Exception as exc:
            self._logger.error("Vibration failed: %s", exc)
            return False

    def stop(self) -> None:
        if not self._supported:
            return
        try:
            self._backend.cancel()
        except Exception as exc:
            self._logger.error("Vibration stop failed: %s", exc)

    # Semantic shortcuts

    def for_priority(self, priority: Priority) -> bool:
        if priority is Priority.CRITICAL:
            return self.vibrate(HapticPattern.DANGER)
        if priority is Priority.HIGH:
            return self.vibrate(HapticPattern.MEDIUM)
        return self.vibrate(HapticPattern.LIGHT)

    def mode_changed(self) -> bool:
        return self.vibrate(HapticPattern.MEDIUM)

    def text_found(self) -> bool:
        return self.vibrate(HapticPattern.SUCCESS)

    def object_found(self) -> bool:
        return self.vibrate(HapticPattern.FOUND)

    def emergency_activated(self) -> bool:
        return self.vibrate(HapticPattern.EMERGENCY)

    def fall_alert(self) -> bool:
        return self.vibrate(HapticPattern.FALL)

    def navigate(self, direction: TurnDirection) -> bool:
        return self.vibrate(direction)
