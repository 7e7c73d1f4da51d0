"""Perception classifier: raw detections to classified, announceable records."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from safewalk.common import (
    ClassifiedDetection,
    DetectionRecord,
    Direction,
    DistanceBucket,
    Priority,
)
from safewalk.config import (
    CLOSE_MAX_M,
    CRITICAL_OBJECTS,
    DIRECTION_LEFT_MAX,
    DIRECTION_RIGHT_MIN,
    DISTANCE_BANDS,
    FAR_METERS,
    HIGH_PRIORITY_OBJECTS,
    LOW_PRIORITY_OBJECTS,
    MEDIUM_MAX_M,
    MIN_CONFIDENCE,
    NORMAL_OBJECTS,
)
from safewalk.voice.speech_formatter import SpeechFormatter


def direction_of(bbox: Tuple[float, float, float, float], frame_width: float) -> Direction:
    x, _, width, _ = bbox
    relative_x = (x + width / 2.0) / frame_width
    if relative_x < DIRECTION_LEFT_MAX:
        return Direction.LEFT
    if relative_x > DIRECTION_RIGHT_MIN:
        return Direction.RIGHT
    return Direction.CENTER


def estimate_distance(
    bbox: Tuple[float, float, float, float], frame_height: float
) -> Tuple[DistanceBucket, float]:
    """Coarse monocular estimate from apparent height; not a depth model."""
    apparent_ratio = bbox[3] / frame_height
    meters = FAR_METERS
    for min_ratio, band_meters in DISTANCE_BANDS:
        if apparent_ratio > min_ratio:
            meters = band_meters
            break

    if meters <= CLOSE_MAX_M:
        bucket = DistanceBucket.CLOSE
    elif meters <= MEDIUM_MAX_M:
        bucket = DistanceBucket.MEDIUM
    else:
        bucket = DistanceBucket.FAR
    return bucket, round(meters, 1)


def priority_of(label: str) -> Priority:
    if label in CRITICAL_OBJECTS:
        return Priority.CRITICAL
    if label in HIGH_PRIORITY_OBJECTS:
        return Priority.HIGH
    if label in NORMAL_OBJECTS:
        return Priority.NORMAL
    if label in LOW_PRIORITY_OBJECTS:
        return Priority.LOW
    # unknown classes are treated as landmarks
    return Priority.NORMAL


def classify(
    detection: DetectionRecord, frame_width: float, frame_height: float
) -> ClassifiedDetection:
    direction = direction_of(detection.bbox, frame_width)
    distance, meters = estimate_distance(detection.bbox, frame_height)
    priority = priority_of(detection.label)
    return ClassifiedDetection(
        object=detection.label,
        confidence=detection.score,
        direction=direction,
        distance=distance,
        distance_meters=meters,
        priority=priority,
        announcement=SpeechFormatter.detection(
            detection.label, meters, direction, distance, priority
        ),
        bbox=detection.bbox,
    )


def filter_detections(
    detections: Sequence[DetectionRecord], min_confidence: float = MIN_CONFIDENCE
) -> List[DetectionRecord]:
    kept = [det for det in detections if det.score >= min_confidence]
    return sorted(kept, key=lambda det: det.score, reverse=True)


def select_most_important(
    classified: Sequence[ClassifiedDetection],
) -> Optional[ClassifiedDetection]:
    """Most urgent tier first, closer first within a tier; earliest wins ties."""
    if not classified:
        return None
    return min(classified, key=lambda det: (det.priority.rank, det.distance.order))


def classify_all(
    detections: Sequence[DetectionRecord],
    frame_width: float,
    frame_height: float,
    min_confidence: float = MIN_CONFIDENCE,
) -> List[ClassifiedDetection]:
    return [
        classify(det, frame_width, frame_height)
        for det in filter_detections(detections, min_confidence)
    ]
