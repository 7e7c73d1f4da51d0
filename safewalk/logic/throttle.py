"""Per-detection announcement cooldown."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from typing import Callable, Dict, Hashable, Optional

from safewalk.common import ClassifiedDetection, Priority
from safewalk.config import COOLDOWN_MAX_KEYS, DETECTION_COOLDOWNS_S


class AnnouncementThrottle:
    """
    Suppresses a key until its priority's cooldown has elapsed.

    Keys are (object, direction) for detections, or any hashable category.
    The table is an LRU bounded to max_keys, so a long session cannot grow it
    without limit; an evicted key simply counts as never announced.
    """

    def __init__(
        self,
        cooldowns: Optional[Dict[Priority, float]] = None,
        max_keys: int = COOLDOWN_MAX_KEYS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._cooldowns = dict(cooldowns or DETECTION_COOLDOWNS_S)
        self._max_keys = max(1, max_keys)
        self._clock = clock
        self._last: "OrderedDict[Hashable, float]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._last)

    def cooldown_for(self, priority: Priority) -> float:
        return self._cooldowns[priority]

    def allow_key(self, key: Hashable, priority: Priority, now: Optional[float] = None) -> bool:
        """True (and the key is stamped) if the key may be announced now."""
        now = self._clock() if now is None else now
        last = self._last.get(key)
        if last is not None and now - last <= self._cooldowns[priority]:
            self._logger.debug("Suppressed %s (%.1fs since last)", key, now - last)
            return False
        self._last[key] = now
        self._last.move_to_end(key)
        while len(self._last) > self._max_keys:
            self._last.popitem(last=False)
        return True

    def allow(self, detection: ClassifiedDetection, now: Optional[float] = None) -> bool:
        key = (detection.object, detection.direction.value)
        return self.allow_key(key, detection.priority, now)

    def reset(self) -> None:
        self._last.clear()
