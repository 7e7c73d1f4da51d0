# interaction_controller.py
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence

from safewalk.common import (
    ClassifiedDetection,
    DetectionRecord,
    Mode,
    NavigationStep,
    Priority,
    TurnDirection,
)
from safewalk.config import FALL_ESCALATION_DELAY_S, MIN_CONFIDENCE
from safewalk.dispatcher import CallbackDispatcher, TimerHandle
from safewalk.haptics_module import HapticsManager
from safewalk.logic.guidance import ContinuousGuidance
from safewalk.logic.state_machine import ModeConfig, ModeStateMachine
from safewalk.logic.throttle import AnnouncementThrottle
from safewalk.perception.classifier import classify_all, select_most_important
from safewalk.sensors.fall_detector import FallDetector
from safewalk.speech.queue_manager import SpeechQueueManager
from safewalk.voice.commands import CommandParser
from safewalk.voice.speech_formatter import SpeechFormatter

SWIPE_LABELS: Dict[str, str] = {
    "left": "Object detection.",
    "right": "Text reader.",
    "up": "Navigation.",
    "down": "Emergency mode.",
}

DETECTION_MODES = (Mode.DETECTING, Mode.SAFE_WALK)


class InteractionController:
    """
    Connects perception, voice, gesture and sensor events -> mode changes ->
    spoken and haptic output. Every event handler returns immediately.
    """

    def __init__(
        self,
        speech: SpeechQueueManager,
        haptics: HapticsManager,
        modes: ModeStateMachine,
        dispatcher: CallbackDispatcher,
        *,
        throttle: Optional[AnnouncementThrottle] = None,
        guidance: Optional[ContinuousGuidance] = None,
        fall_detector: Optional[FallDetector] = None,
        min_confidence: float = MIN_CONFIDENCE,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self.speech = speech
        self.haptics = haptics
        self.modes = modes
        self._dispatcher = dispatcher
        self._throttle = throttle or AnnouncementThrottle(clock=dispatcher.now)
        self._guidance = guidance or ContinuousGuidance(self.speech.speak, dispatcher)
        self._fall_detector = fall_detector or FallDetector()
        self._min_confidence = min_confidence

        self.detector_ready = False
        self.on_navigation_stop: Optional[Callable[[], None]] = None
        self._detections: List[ClassifiedDetection] = []
        self._most_important: Optional[ClassifiedDetection] = None
        self._last_announcement = ""
        self._target_object: Optional[str] = None
        self._fall_timer: Optional[TimerHandle] = None

        self._unsubscribe = self.modes.subscribe(self._on_mode_changed)

    # -------------------------------
    # State exposed to the renderer
    @property
    def mode(self) -> Mode:
        return self.modes.mode

    @property
    def mode_config(self) -> ModeConfig:
        return self.modes.config

    @property
    def detections(self) -> List[ClassifiedDetection]:
        return list(self._detections)

    @property
    def most_important(self) -> Optional[ClassifiedDetection]:
        return self._most_important

    @property
    def target_object(self) -> Optional[str]:
        return self._target_object

    @property
    def last_announcement(self) -> str:
        return self._last_announcement

    @property
    def fall_pending(self) -> bool:
        return self._fall_timer is not None

    @property
    def wants_detection(self) -> bool:
        return "object-detection" in self.modes.config.features

    @property
    def wants_ocr(self) -> bool:
        # medicine/shopping also list "ocr" but have no reader of their own yet
        return self.modes.mode is Mode.READING

    # -------------------------------
    # Perception
    def process_detections(
        self, records: Sequence[DetectionRecord], frame_width: float, frame_height: float
    ) -> List[ClassifiedDetection]:
        classified = classify_all(records, frame_width, frame_height, self._min_confidence)
        self._detections = classified
        self._most_important = select_most_important(classified)
        self._guidance.update(classified)

        mode = self.modes.mode
        if mode in DETECTION_MODES and self._most_important is not None:
            self._announce_detection(self._most_important)
        elif mode is Mode.FIND_OBJECT and self._target_object:
            self._look_for_target(classified)
        return classified

    def _announce_detection(self, detection: ClassifiedDetection) -> None:
        if not self._throttle.allow(detection, self._dispatcher.now()):
            return
        self.speech.speak(detection.announcement, detection.priority)
        self._last_announcement = detection.announcement
        self.haptics.for_priority(detection.priority)

    def _look_for_target(self, classified: Sequence[ClassifiedDetection]) -> None:
        target = self._target_object or ""
        found = next((det for det in classified if target in det.object.lower()), None)
        if found is None:
            return
        self.speech.speak(SpeechFormatter.found(target, found.announcement), Priority.HIGH)
        self.haptics.object_found()
        self._target_object = None
        self.modes.set_mode(Mode.IDLE)

    # -------------------------------
    # Voice
    def handle_wake(self) -> None:
        self.speech.speak("I'm listening.", Priority.HIGH)
        self.haptics.mode_changed()

    def handle_voice_command(self, command: str) -> None:
        cmd = CommandParser.normalize(command)
        if not cmd:
            return
        target = self.modes.mode_for_command(cmd)
        if target is not None:
            self._dispatch_mode_command(target, cmd)
            return

        if CommandParser.is_repeat(cmd):
            if self._last_announcement:
                self.speech.speak(self._last_announcement, Priority.NORMAL)
            else:
                self.speech.speak("Nothing to repeat.", Priority.LOW)
            return

        if CommandParser.is_settings(cmd):
            self.speech.speak("Settings opened.", Priority.NORMAL)
            return

        self._logger.info("Unrecognized command: %s", cmd)

    def _dispatch_mode_command(self, target: Mode, cmd: str) -> None:
        if target is Mode.IDLE:
            self.handle_stop()
        elif target is Mode.EMERGENCY:
            self.handle_emergency()
        elif target is Mode.DETECTING:
            self.handle_detect()
        elif target is Mode.READING:
            self.handle_read()
        elif target is Mode.SAFE_WALK:
            self.handle_safe_walk()
        elif target is Mode.FIND_OBJECT:
            self.handle_find_object(CommandParser.find_target(cmd))
        elif target is Mode.NAVIGATION:
            self.speech.speak("Where would you like to go?", Priority.NORMAL)
        else:
            self.modes.set_mode(target)

    # -------------------------------
    # Buttons / actions
    def handle_detect(self) -> None:
        if self.modes.mode is Mode.DETECTING:
            self.modes.set_mode(Mode.IDLE)
        elif self._require_detector():
            self.modes.set_mode(Mode.DETECTING)

    def handle_read(self) -> None:
        if self.modes.mode is Mode.READING:
            return
        self.modes.set_mode(Mode.READING)

    def handle_safe_walk(self) -> None:
        if self.modes.mode is Mode.SAFE_WALK:
            self._stop_navigation()
            self.modes.set_mode(Mode.IDLE)
        elif self._require_detector():
            self.modes.set_mode(Mode.SAFE_WALK)

    def handle_find_object(self, target: Optional[str] = None) -> None:
        if self.modes.mode is Mode.FIND_OBJECT:
            if target:
                self._set_target(target)
                return
            self._target_object = None
            self.modes.set_mode(Mode.IDLE)
            return
        if not self._require_detector():
            return
        self.modes.set_mode(Mode.FIND_OBJECT)
        if target and self.modes.mode is Mode.FIND_OBJECT:
            self._set_target(target)

    def handle_stop(self) -> None:
        self._stop_navigation()
        self._cancel_fall()
        self.speech.stop()
        self.haptics.stop()
        self._target_object = None
        self.modes.set_mode(Mode.IDLE)
        self.speech.speak("Stopped.", Priority.NORMAL)

    def handle_emergency(self) -> None:
        if self.modes.mode is Mode.EMERGENCY:
            self.modes.set_mode(Mode.IDLE)
            self._cancel_fall()
            self.speech.speak("Emergency cancelled.", Priority.HIGH)
        else:
            self._cancel_fall()
            self.modes.set_mode(Mode.EMERGENCY)
            self.haptics.emergency_activated()

    def handle_swipe(self, direction: str) -> None:
        if self.modes.mode is Mode.EMERGENCY or direction not in SWIPE_LABELS:
            return
        self.speech.speak(SWIPE_LABELS[direction], Priority.HIGH)
        self.haptics.mode_changed()
        if direction == "left":
            self.handle_detect()
        elif direction == "right":
            self.handle_read()
        elif direction == "up":
            self.handle_safe_walk()
        else:
            self.handle_emergency()

    # -------------------------------
    # OCR
    def handle_ocr_text(self, text: Optional[str]) -> None:
        if self.modes.mode is not Mode.READING:
            return
        text = (text or "").strip()
        if len(text) > 5:
            self.speech.speak(SpeechFormatter.reading(text), Priority.NORMAL)
            self._last_announcement = text
            self.haptics.text_found()
        else:
            self.speech.speak("No readable text found.", Priority.LOW)
        self.modes.set_mode(Mode.IDLE)

    def handle_ocr_failure(self) -> None:
        self.speech.speak("Failed to read text.", Priority.HIGH)
        self.modes.set_mode(Mode.IDLE)

    # -------------------------------
    # Motion sensor
    def handle_motion_sample(self, x: float, y: float, z: float) -> None:
        if self._fall_detector.update(x, y, z, self._dispatcher.now()):
            self.handle_fall_detected()

    def handle_fall_detected(self) -> None:
        if self.modes.mode is Mode.EMERGENCY or self._fall_timer is not None:
            return
        self.speech.speak(
            "Fall detected! Are you okay? Emergency will activate in 10 seconds.",
            Priority.CRITICAL,
        )
        self.haptics.fall_alert()
        self._fall_timer = self._dispatcher.call_later(
            FALL_ESCALATION_DELAY_S, self._escalate_fall
        )

    def _escalate_fall(self) -> None:
        self._fall_timer = None
        if self.modes.mode is not Mode.EMERGENCY:
            self.handle_emergency()

    def _cancel_fall(self) -> None:
        if self._fall_timer is not None:
            self._fall_timer.cancel()
            self._fall_timer = None
        self._fall_detector.reset()

    # -------------------------------
    # Navigation
    def handle_navigation_step(self, step: NavigationStep) -> None:
        self.speech.speak(step.instruction, Priority.HIGH)
        self.haptics.navigate(step.direction)
        self._guidance.set_navigation_step(step.instruction)

    def handle_arrival(self) -> None:
        self.speech.speak("You have arrived at your destination.", Priority.HIGH)
        self.haptics.navigate(TurnDirection.ARRIVAL)
        self._guidance.set_navigation_step(None)
        self.modes.set_mode(Mode.IDLE)

    # -------------------------------
    # Internal helpers
    def _on_mode_changed(self, mode: Mode, config: ModeConfig) -> None:
        self.speech.speak(config.announcement, Priority.NORMAL)
        self.haptics.mode_changed()
        if mode is Mode.SAFE_WALK:
            self._guidance.start()
        else:
            self._guidance.stop()
        if mode not in DETECTION_MODES and mode is not Mode.FIND_OBJECT:
            self._detections = []
            self._most_important = None

    def _require_detector(self) -> bool:
        if self.detector_ready:
            return True
        self.speech.speak("Detection not ready. Please wait.", Priority.HIGH)
        return False

    def _set_target(self, target: str) -> None:
        self._target_object = target.lower()
        self.speech.speak(f"Looking for {target}.", Priority.NORMAL)

    def _stop_navigation(self) -> None:
        self._guidance.set_navigation_step(None)
        if self.on_navigation_stop is not None:
            self.on_navigation_stop()

    def close(self) -> None:
        self._guidance.stop()
        self._cancel_fall()
        self._unsubscribe()
