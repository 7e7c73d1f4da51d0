"""Spoken and key command mappings."""

from __future__ import annotations

import re
from typing import Dict, Optional, Tuple

from safewalk.common import Mode
from safewalk.config import WAKE_PHRASE


class CommandParser:
    """
    Maps spoken user commands to modes and utility actions.
    Offline, rule-based. Rules are checked in order; first match wins.
    """

    MODE_RULES: Tuple[Tuple[Mode, Tuple[str, ...]], ...] = (
        (Mode.IDLE, (WAKE_PHRASE,)),
        (Mode.SAFE_WALK, ("safe walk", "safewalk", "walk mode")),
        (Mode.FIND_OBJECT, ("find", "search", "locate")),
        (Mode.MEDICINE, ("medicine", "medication", "pill")),
        (Mode.SHOPPING, ("shop", "barcode", "price")),
        (Mode.NAVIGATION, ("navigate", "directions", "take me")),
        (Mode.DETECTING, ("detect", "what", "see")),
        (Mode.READING, ("read", "text")),
        (Mode.EMERGENCY, ("emergency", "help me", "sos")),
        (Mode.IDLE, ("stop", "cancel", "back")),
    )

    REPEAT_KEYWORDS = ("repeat", "again")
    SETTINGS_KEYWORDS = ("settings", "options")

    _FIND_TARGET = re.compile(r"find\s+(?:my\s+|the\s+|a\s+)?(\w+)", re.IGNORECASE)

    @staticmethod
    def normalize(text: str) -> str:
        return " ".join((text or "").lower().strip().split())

    @staticmethod
    def mode_for_command(text: str) -> Optional[Mode]:
        t = CommandParser.normalize(text)
        if not t:
            return None
        for mode, keywords in CommandParser.MODE_RULES:
            for kw in keywords:
                if kw in t:
                    return mode
        return None

    @staticmethod
    def is_wake_phrase(text: str) -> bool:
        return WAKE_PHRASE in CommandParser.normalize(text)

    @staticmethod
    def is_repeat(text: str) -> bool:
        t = CommandParser.normalize(text)
        return any(kw in t for kw in CommandParser.REPEAT_KEYWORDS)

    @staticmethod
    def is_settings(text: str) -> bool:
        t = CommandParser.normalize(text)
        return any(kw in t for kw in CommandParser.SETTINGS_KEYWORDS)

    @staticmethod
    def find_target(text: str) -> Optional[str]:
        match = CommandParser._FIND_TARGET.search(CommandParser.normalize(text))
        if not match:
            return None
        return match.group(1).lower()


# Keyboard stands in for the device's hardware buttons.
KEY_ACTIONS: Dict[str, str] = {
    "d": "detect",
    "r": "read",
    "w": "safe_walk",
    "f": "find_object",
    "e": "emergency",
    "s": "stop",
}


def key_to_action(key: int) -> Optional[str]:
    if key == -1 or key == 255:
        return None
    return KEY_ACTIONS.get(chr(key).lower())
