"""Application configuration constants and user settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, FrozenSet, Tuple

from safewalk.common import Priority

# Perception
MIN_CONFIDENCE: float = 0.5
DETECTION_INTERVAL_S: float = 0.4
DIRECTION_LEFT_MAX: float = 0.35
DIRECTION_RIGHT_MIN: float = 0.65
# (height ratio strictly above, meters), checked in order; anything smaller is FAR_METERS
DISTANCE_BANDS: Tuple[Tuple[float, float], ...] = (
    (0.5, 0.5),
    (0.3, 1.0),
    (0.15, 2.0),
    (0.08, 4.0),
)
FAR_METERS: float = 6.0
CLOSE_MAX_M: float = 1.0
MEDIUM_MAX_M: float = 3.0

CRITICAL_OBJECTS: FrozenSet[str] = frozenset(
    {"car", "truck", "bus", "motorcycle", "bicycle", "train"}
)
HIGH_PRIORITY_OBJECTS: FrozenSet[str] = frozenset({"person", "dog", "cat", "horse", "cow"})
NORMAL_OBJECTS: FrozenSet[str] = frozenset(
    {"door", "stairs", "stop sign", "traffic light", "fire hydrant"}
)
LOW_PRIORITY_OBJECTS: FrozenSet[str] = frozenset(
    {"chair", "couch", "bed", "dining table", "potted plant", "bottle", "cup"}
)

# Approximate pixel height of each class at 1 m.
# TODO: calibrate against the target camera before estimate_distance uses these.
REFERENCE_HEIGHTS_PX: Dict[str, int] = {
    "person": 400,
    "car": 300,
    "truck": 350,
    "bus": 400,
    "chair": 150,
    "bottle": 80,
    "door": 500,
    "dog": 100,
    "bicycle": 200,
}

# Cooldown / heartbeat
DETECTION_COOLDOWNS_S: Dict[Priority, float] = {
    Priority.CRITICAL: 1.5,
    Priority.HIGH: 2.5,
    Priority.NORMAL: 4.0,
    Priority.LOW: 6.0,
}
COOLDOWN_MAX_KEYS: int = 256
HEARTBEAT_INTERVAL_S: float = 5.0
HEARTBEAT_MIN_GAP_S: float = 3.0
HEARTBEAT_INTRO_DELAY_S: float = 0.5
NAVIGATION_CONTEXT_DELAY_S: float = 1.5

# Speech
SPEECH_RATE: float = 1.1
PREFERRED_VOICE_NAMES: Tuple[str, ...] = ("samantha", "google")
DEFAULT_WPM: int = 200

# Mode / voice
MODE_HISTORY_LIMIT: int = 20
WAKE_PHRASE: str = "hey assist"
AWAKE_TIMEOUT_S: float = 10.0
RECOGNITION_RESTART_DELAY_S: float = 1.0
RECOGNITION_END_RESTART_DELAY_S: float = 0.1
FALL_ESCALATION_DELAY_S: float = 10.0

WINDOW_NAME: str = "Safe Walk"
DEBUG_DRAW: bool = True

INTENSITY_LEVELS: Tuple[str, ...] = ("off", "low", "medium", "high")


@dataclass(frozen=True)
class Settings:
    vibration_intensity: str = "medium"
    language: str = "en-US"
    voice_speed: float = SPEECH_RATE
    min_confidence: float = MIN_CONFIDENCE
    detection_interval_s: float = DETECTION_INTERVAL_S
    weights_path: str = os.path.join("assets", "yolo_weights.pt")
    vosk_model_path: str = os.path.join("assets", "vosk-model")
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        intensity = os.environ.get("SAFEWALK_VIBRATION", defaults.vibration_intensity).lower()
        if intensity not in INTENSITY_LEVELS:
            intensity = defaults.vibration_intensity
        return cls(
            vibration_intensity=intensity,
            language=os.environ.get("SAFEWALK_LANGUAGE", defaults.language),
            voice_speed=float(os.environ.get("SAFEWALK_VOICE_SPEED", defaults.voice_speed)),
            min_confidence=float(
                os.environ.get("SAFEWALK_MIN_CONFIDENCE", defaults.min_confidence)
            ),
            detection_interval_s=float(
                os.environ.get("SAFEWALK_DETECTION_INTERVAL", defaults.detection_interval_s)
            ),
            weights_path=os.environ.get("SAFEWALK_WEIGHTS", defaults.weights_path),
            vosk_model_path=os.environ.get("VOSK_MODEL_PATH", defaults.vosk_model_path),
            log_level=os.environ.get("SAFEWALK_LOG_LEVEL", defaults.log_level).upper(),
        )
