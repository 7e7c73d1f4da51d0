"""Operating-mode state machine with priority-gated transitions."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, FrozenSet, List, Optional, Tuple

from safewalk.common import Mode
from safewalk.config import MODE_HISTORY_LIMIT
from safewalk.voice.commands import CommandParser


@dataclass(frozen=True)
class ModeConfig:
    name: str
    announcement: str
    description: str
    features: FrozenSet[str]
    priority: int  # higher = more important


MODE_CONFIGS: Dict[Mode, ModeConfig] = {
    Mode.IDLE: ModeConfig(
        name="Standby",
        announcement='Standby mode. Say "Hey Assist" or tap a button.',
        description="Waiting for commands",
        features=frozenset({"voice-commands", "camera-preview"}),
        priority=0,
    ),
    Mode.DETECTING: ModeConfig(
        name="Object Detection",
        announcement="Detection mode active. I will announce objects around you.",
        description="Detecting objects in real-time",
        features=frozenset({"object-detection", "direction", "distance", "haptics"}),
        priority=2,
    ),
    Mode.READING: ModeConfig(
        name="Text Reading",
        announcement="Reading mode. Point camera at text.",
        description="Reading text from camera",
        features=frozenset({"ocr", "text-to-speech"}),
        priority=2,
    ),
    Mode.SAFE_WALK: ModeConfig(
        name="Safe Walk",
        announcement="Safe walk mode. I will guide you safely.",
        description="Walking with detection + navigation",
        features=frozenset({"object-detection", "navigation", "fall-detection", "haptics"}),
        priority=3,
    ),
    Mode.FIND_OBJECT: ModeConfig(
        name="Find Object",
        announcement="Tell me what to find.",
        description="Searching for specific object",
        features=frozenset({"object-detection", "voice-feedback"}),
        priority=2,
    ),
    Mode.MEDICINE: ModeConfig(
        name="Medicine Reader",
        announcement="Medicine mode. Point camera at medicine label.",
        description="Reading medicine information",
        features=frozenset({"ocr", "medicine-check"}),
        priority=2,
    ),
    Mode.SHOPPING: ModeConfig(
        name="Shopping Assistant",
        announcement="Shopping mode. I can scan barcodes and read prices.",
        description="Scanning products",
        features=frozenset({"ocr", "barcode", "price-reading"}),
        priority=2,
    ),
    Mode.NAVIGATION: ModeConfig(
        name="Navigation",
        announcement="Navigation mode. Tell me where to go.",
        description="GPS navigation with voice guidance",
        features=frozenset({"gps", "turn-by-turn", "haptics"}),
        priority=3,
    ),
    Mode.EMERGENCY: ModeConfig(
        name="Emergency",
        announcement="Emergency activated! Sending alert!",
        description="Emergency mode active",
        features=frozenset({"alarm", "location-share", "emergency-contact"}),
        priority=10,
    ),
}


@dataclass(frozen=True)
class ModeTransition:
    from_mode: Mode
    to_mode: Mode
    timestamp: float


ModeListener = Callable[[Mode, ModeConfig], None]


class ModeStateMachine:
    """Holds the current mode. Listeners are notified synchronously, in registration order."""

    def __init__(
        self,
        history_limit: int = MODE_HISTORY_LIMIT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._clock = clock
        self._current = Mode.IDLE
        self._previous = Mode.IDLE
        self._history: Deque[ModeTransition] = deque(maxlen=history_limit)
        self._listeners: List[ModeListener] = []

    @property
    def mode(self) -> Mode:
        return self._current

    @property
    def previous_mode(self) -> Mode:
        return self._previous

    @property
    def config(self) -> ModeConfig:
        return MODE_CONFIGS[self._current]

    @property
    def history(self) -> Tuple[ModeTransition, ...]:
        return tuple(self._history)

    def can_transition_to(self, target: Mode | str) -> bool:
        target = Mode(target)
        if self._current is Mode.EMERGENCY and target is not Mode.IDLE:
            return False
        return True

    def set_mode(self, target: Mode | str) -> ModeConfig:
        """Returns the config of the mode that is current afterwards."""
        target = Mode(target)
        if target is self._current:
            return MODE_CONFIGS[target]

        current_config = MODE_CONFIGS[self._current]
        target_config = MODE_CONFIGS[target]

        if not self.can_transition_to(target):
            self._logger.info("Cannot leave %s for %s", self._current.value, target.value)
            return current_config

        # idle is the explicit cancel path and is never gated
        if (
            target is not Mode.IDLE
            and self._current is not Mode.IDLE
            and target_config.priority < current_config.priority
        ):
            self._logger.info(
                "Cannot switch from %s to %s (lower priority)",
                self._current.value,
                target.value,
            )
            return current_config

        self._history.append(ModeTransition(self._current, target, self._clock()))
        self._previous = self._current
        self._current = target
        self._logger.info("Mode %s -> %s", self._previous.value, target.value)

        for listener in list(self._listeners):
            try:
                listener(target, target_config)
            except Exception:
                self._logger.exception("Mode listener failed")
        return target_config

    def go_back(self) -> Mode:
        if self._previous is not self._current:
            self.set_mode(self._previous)
        else:
            self.set_mode(Mode.IDLE)
        # the previous mode is consumed: going back twice lands in idle
        self._previous = self._current
        return self._current

    def subscribe(self, listener: ModeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def mode_for_command(self, command: str) -> Optional[Mode]:
        return CommandParser.mode_for_command(command)
