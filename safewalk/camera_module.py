"""Camera capture module."""

from __future__ import annotations

import logging
import sys
from typing import Any, Iterable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    import numpy as np

Frame = "np.ndarray" if TYPE_CHECKING else Any


class CameraStream:
    """OpenCV camera with index fallback; read() returns None when no frame is available."""

    def __init__(
        self,
        camera_index: int = 0,
        width: int | None = None,
        height: int | None = None,
        fallback_indices: Iterable[int] = (1, 2),
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._cv2 = None
        self._cap = None
        self._width = width
        self._height = height

        try:
            import cv2
        except Exception as exc:
            self._logger.error("OpenCV not available: %s", exc)
            return

        self._cv2 = cv2
        backend = cv2.CAP_AVFOUNDATION if sys.platform == "darwin" else None
        for idx in [camera_index] + [i for i in fallback_indices if i != camera_index]:
            cap = cv2.VideoCapture(idx, backend) if backend is not None else cv2.VideoCapture(idx)
            if cap.isOpened():
                if width is not None:
                    cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
                if height is not None:
                    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
                self._logger.info("Camera opened at index %s", idx)
                self._cap = cap
                break
            cap.release()
        if self._cap is None:
            self._logger.error("No camera found. Try a different index or check permissions.")

    @property
    def available(self) -> bool:
        return self._cap is not None

    def read(self) -> Optional[Frame]:
        if self._cap is None or not self._cap.isOpened():
            return None
        ok, frame = self._cap.read()
        if not ok or frame is None:
            return None
        return frame

    def release(self) -> None:
        if self._cap is not None and self._cap.isOpened():
            self._cap.release()
