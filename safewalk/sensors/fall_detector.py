"""Accelerometer fall pattern: a hard impact followed by lying still."""

from __future__ import annotations

import math
from typing import Optional

GRAVITY = 9.81


class FallDetector:
    def __init__(
        self,
        impact_threshold_g: float = 2.5,
        still_duration_s: float = 2.0,
        impact_window_s: float = 5.0,
        still_tolerance_g: float = 0.3,
    ) -> None:
        self._impact_threshold_g = impact_threshold_g
        self._still_duration_s = still_duration_s
        self._impact_window_s = impact_window_s
        self._still_tolerance_g = still_tolerance_g
        self._impact_at: Optional[float] = None
        self._still_since: Optional[float] = None

    @staticmethod
    def magnitude_g(x: float, y: float, z: float) -> float:
        return math.sqrt(x * x + y * y + z * z) / GRAVITY

    def reset(self) -> None:
        self._impact_at = None
        self._still_since = None

    def update(self, x: float, y: float, z: float, now: float) -> bool:
        """Feed one sample (m/s^2, gravity included). True when a fall is confirmed."""
        magnitude = self.magnitude_g(x, y, z)

        if magnitude > self._impact_threshold_g and self._impact_at is None:
            self._impact_at = now
            self._still_since = None
            return False

        if self._impact_at is None:
            return False

        if now - self._impact_at >= self._impact_window_s:
            self.reset()
            return False

        if abs(magnitude - 1.0) < self._still_tolerance_g:
            if self._still_since is None:
                self._still_since = now
            elif now - self._still_since > self._still_duration_s:
                self.reset()
                return True
        else:
            self._still_since = None
        return False
