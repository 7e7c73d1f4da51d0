# speech_formatter.py
from __future__ import annotations

from safewalk.common import Direction, DistanceBucket, Priority


class SpeechFormatter:
    """
    Creates clear, blind-friendly speech output strings
    from classified detections and sensor results.
    """

    PATH_CLEAR_MESSAGES = (
        "Path clear.",
        "Area looks safe.",
        "No obstacles detected.",
        "Clear ahead.",
        "Way is clear.",
    )

    # -------------------------------
    # Detection
    @staticmethod
    def object_name(label: str) -> str:
        return label[:1].upper() + label[1:]

    @staticmethod
    def meters(value: float) -> str:
        # 1.0 -> "1", 0.5 -> "0.5"
        return f"{value:g}"

    @staticmethod
    def detection(
        label: str,
        meters: float,
        direction: Direction,
        distance: DistanceBucket,
        priority: Priority,
    ) -> str:
        name = SpeechFormatter.object_name(label)
        where = direction.spoken
        if priority is Priority.CRITICAL:
            return f"Warning! {name} {SpeechFormatter.meters(meters)} meters {where}!"
        if distance is DistanceBucket.CLOSE:
            return f"{name} very close {where}."
        return f"{name} {SpeechFormatter.meters(meters)} meters {where}."

    # -------------------------------
    # Find object
    @staticmethod
    def found(target: str, announcement: str) -> str:
        return f"Found {target} {announcement}"

    # -------------------------------
    # Ambient heartbeat
    @staticmethod
    def danger(announcement: str) -> str:
        return f"Warning: {announcement}"

    @staticmethod
    def nearby(labels: list[str]) -> str:
        if len(labels) == 1:
            return f"One object nearby: {labels[0]}"
        return f"{len(labels)} objects nearby. Proceed with caution."

    # -------------------------------
    # Text reading
    @staticmethod
    def reading(text: str) -> str:
        return f"Reading: {text}"
