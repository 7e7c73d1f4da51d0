"""Main integration entry point."""

from __future__ import annotations

import logging
import time
from typing import List, Optional

import cv2

from safewalk.camera_module import CameraStream
from safewalk.common import ClassifiedDetection
from safewalk.config import DEBUG_DRAW, WINDOW_NAME, Settings
from safewalk.dispatcher import CallbackDispatcher
from safewalk.haptics_module import HapticsManager, TermuxVibrator
from safewalk.interaction_controller import InteractionController
from safewalk.logic.state_machine import ModeStateMachine
from safewalk.ocr_module import TextReader
from safewalk.speech.queue_manager import SpeechQueueManager
from safewalk.speech.tts_sink import Pyttsx3Sink
from safewalk.vision_module import VisionEngine
from safewalk.voice.commands import key_to_action
from safewalk.voice.stt_listener import VoiceCommandListener, WakeWordGate

_PRIORITY_COLORS = {
    "critical": (0, 0, 255),
    "high": (0, 165, 255),
    "normal": (0, 255, 0),
    "low": (200, 200, 200),
}


def _draw_debug(
    frame,
    detections: List[ClassifiedDetection],
    mode_name: str,
    most_important: Optional[ClassifiedDetection],
) -> None:
    for det in detections:
        x, y, w, h = det.bbox
        color = _PRIORITY_COLORS[det.priority.value]
        x1, y1, x2, y2 = int(x), int(y), int(x + w), int(y + h)
        cv2.rectangle(frame, (x1, y1), (x2, y2), color, 2)
        cv2.putText(
            frame,
            f"{det.object} {det.confidence:.2f} {det.distance_meters:g}m",
            (x1, max(20, y1 - 5)),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.6,
            color,
            2,
        )
    cv2.putText(
        frame, f"Mode: {mode_name}", (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 0, 0), 2
    )
    if most_important is not None:
        cv2.putText(
            frame,
            most_important.announcement,
            (10, 55),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.6,
            (0, 255, 255),
            2,
        )


def _run_action(controller: InteractionController, action: str) -> None:
    if action == "detect":
        controller.handle_detect()
    elif action == "read":
        controller.handle_read()
    elif action == "safe_walk":
        controller.handle_safe_walk()
    elif action == "find_object":
        controller.handle_find_object()
    elif action == "emergency":
        controller.handle_emergency()
    elif action == "stop":
        controller.handle_stop()


def main() -> None:
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="[%(levelname)s] %(message)s",
    )

    dispatcher = CallbackDispatcher()
    sink = Pyttsx3Sink(dispatcher)
    speech = SpeechQueueManager(sink, rate=settings.voice_speed, language=settings.language)
    haptics = HapticsManager(TermuxVibrator(), intensity=settings.vibration_intensity)
    modes = ModeStateMachine()
    controller = InteractionController(
        speech, haptics, modes, dispatcher, min_confidence=settings.min_confidence
    )

    speech.speak("Loading Safe Walk. Please wait.")
    camera = CameraStream()
    vision = VisionEngine(weights_path=settings.weights_path)
    reader = TextReader()
    controller.detector_ready = vision.ready and camera.available

    gate = WakeWordGate(dispatcher, controller.handle_wake, controller.handle_voice_command)
    listener = VoiceCommandListener(dispatcher, gate.feed, model_path=settings.vosk_model_path)
    listener.start()

    if camera.available:
        speech.speak('Safe Walk ready. Say "Hey Assist" or press a key.')
    else:
        speech.speak("Failed to initialize. Please check camera permissions.", "high")

    if DEBUG_DRAW:
        cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)

    last_detection = 0.0
    try:
        while True:
            dispatcher.run_pending()
            frame = camera.read()
            if frame is None:
                if cv2.waitKey(50) & 0xFF == ord("q"):
                    break
                continue

            height, width = frame.shape[:2]
            now = time.monotonic()
            if controller.wants_detection and now - last_detection >= settings.detection_interval_s:
                last_detection = now
                records = vision.detect(frame)
                controller.process_detections(records, width, height)

            if controller.wants_ocr:
                text = reader.read(frame)
                if text is None:
                    controller.handle_ocr_failure()
                else:
                    controller.handle_ocr_text(text)

            if DEBUG_DRAW:
                _draw_debug(
                    frame,
                    controller.detections,
                    controller.mode_config.name,
                    controller.most_important,
                )
                cv2.imshow(WINDOW_NAME, frame)

            key = cv2.waitKey(1) & 0xFF
            if key in (ord("q"), 27):
                break
            action = key_to_action(key)
            if action is not None:
                _run_action(controller, action)
    finally:
        listener.stop()
        controller.close()
        speech.stop()
        sink.shutdown()
        camera.release()
        cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
