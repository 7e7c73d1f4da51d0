"""Object detection using YOLOv8; emits DetectionRecords in (x, y, w, h) form."""

from __future__ import annotations

import importlib.util
import logging
from pathlib import Path
from typing import Any, List, TYPE_CHECKING, Tuple

if TYPE_CHECKING:
    import numpy as np

from safewalk.common import DetectionRecord


class VisionEngine:
    """YOLOv8 detection engine with dummy fallback."""

    def __init__(self, weights_path: str, conf: float = 0.25) -> None:
        self._weights_path = Path(weights_path)
        self._logger = logging.getLogger(__name__)
        self._conf = conf
        self._model = None
        self._dummy_mode = not self._weights_path.exists()
        if importlib.util.find_spec("ultralytics") is None:
            self._logger.error("Ultralytics not installed; object detection runs in dummy mode.")
            self._dummy_mode = True
        if self._dummy_mode:
            self._logger.warning(
                "YOLO weights not found at %s. Running in dummy mode.", self._weights_path
            )
            return

        from ultralytics import YOLO

        try:
            self._model = YOLO(str(self._weights_path))
        except Exception as exc:
            self._logger.error("Failed to load YOLO weights: %s", exc)
            self._dummy_mode = True

    @property
    def ready(self) -> bool:
        return self._model is not None or self._dummy_mode

    @property
    def dummy_mode(self) -> bool:
        return self._dummy_mode

    def detect(self, frame: Any) -> List[DetectionRecord]:
        if frame is None:
            return []
        if self._dummy_mode:
            return self._dummy_detection(frame)
        if self._model is None:
            return []
        try:
            results = self._model.predict(source=frame, conf=self._conf, verbose=False)
        except Exception as exc:
            self._logger.error("Detection error: %s", exc)
            return []

        height, width = frame.shape[:2]
        records: List[DetectionRecord] = []
        for result in results:
            boxes = result.boxes
            if boxes is None or len(boxes) == 0:
                continue
            xyxy = boxes.xyxy.cpu().numpy()
            confs = boxes.conf.cpu().numpy()
            classes = boxes.cls.cpu().numpy().astype(int)
            names = result.names or getattr(self._model, "names", {})
            for box, score, cls_idx in zip(xyxy, confs, classes):
                label = str(names.get(int(cls_idx), int(cls_idx)))
                records.append(
                    DetectionRecord(
                        label=label,
                        score=float(score),
                        bbox=self._to_xywh(box, width, height),
                    )
                )
        return records

    def _dummy_detection(self, frame: "np.ndarray") -> List[DetectionRecord]:
        height, width = frame.shape[:2]
        box_w = width * 0.2
        box_h = height * 0.4
        return [
            DetectionRecord(
                label="person",
                score=0.6,
                bbox=((width - box_w) / 2, (height - box_h) / 2, box_w, box_h),
            )
        ]

    @staticmethod
    def _to_xywh(
        box: Tuple[float, float, float, float], width: int, height: int
    ) -> Tuple[float, float, float, float]:
        x1, y1, x2, y2 = (float(v) for v in box)
        x1 = max(0.0, min(x1, width - 1.0))
        y1 = max(0.0, min(y1, height - 1.0))
        x2 = max(x1, min(x2, width - 1.0))
        y2 = max(y1, min(y2, height - 1.0))
        return x1, y1, x2 - x1, y2 - y1
