"""
Tests for command parsing, key mapping and settings.
"""

import pytest

from safewalk.config import Settings
from safewalk.voice.commands import CommandParser, key_to_action


class TestCommandParser:
    def test_normalize(self):
        assert CommandParser.normalize("  Hey   ASSIST ") == "hey assist"
        assert CommandParser.normalize(None) == ""

    def test_wake_phrase(self):
        assert CommandParser.is_wake_phrase("okay hey assist")
        assert not CommandParser.is_wake_phrase("hey there")

    @pytest.mark.parametrize(
        "command,target",
        [
            ("find my keys", "keys"),
            ("find the door", "door"),
            ("Find a Bottle", "bottle"),
            ("please find wallet now", "wallet"),
            ("search", None),
            ("find", None),
        ],
    )
    def test_find_target(self, command, target):
        assert CommandParser.find_target(command) == target

    def test_repeat_and_settings(self):
        assert CommandParser.is_repeat("say that again")
        assert CommandParser.is_settings("open options")
        assert not CommandParser.is_repeat("hello")


class TestKeyActions:
    @pytest.mark.parametrize(
        "key,action",
        [
            (ord("d"), "detect"),
            (ord("R"), "read"),
            (ord("w"), "safe_walk"),
            (ord("f"), "find_object"),
            (ord("e"), "emergency"),
            (ord("s"), "stop"),
            (ord("x"), None),
            (-1, None),
            (255, None),
        ],
    )
    def test_key_to_action(self, key, action):
        assert key_to_action(key) == action


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in (
            "SAFEWALK_VIBRATION",
            "SAFEWALK_LANGUAGE",
            "SAFEWALK_VOICE_SPEED",
            "SAFEWALK_MIN_CONFIDENCE",
            "SAFEWALK_DETECTION_INTERVAL",
            "SAFEWALK_WEIGHTS",
            "VOSK_MODEL_PATH",
            "SAFEWALK_LOG_LEVEL",
        ):
            monkeypatch.delenv(name, raising=False)
        settings = Settings.from_env()
        assert settings == Settings()
        assert settings.voice_speed == 1.1
        assert settings.vibration_intensity == "medium"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SAFEWALK_VIBRATION", "HIGH")
        monkeypatch.setenv("SAFEWALK_LANGUAGE", "en-GB")
        monkeypatch.setenv("SAFEWALK_VOICE_SPEED", "1.3")
        monkeypatch.setenv("SAFEWALK_MIN_CONFIDENCE", "0.6")
        monkeypatch.setenv("SAFEWALK_LOG_LEVEL", "debug")
        settings = Settings.from_env()
        assert settings.vibration_intensity == "high"
        assert settings.language == "en-GB"
        assert settings.voice_speed == 1.3
        assert settings.min_confidence == 0.6
        assert settings.log_level == "DEBUG"

    def test_unknown_intensity_falls_back(self, monkeypatch):
        monkeypatch.setenv("SAFEWALK_VIBRATION", "extreme")
        assert Settings.from_env().vibration_intensity == "medium"
