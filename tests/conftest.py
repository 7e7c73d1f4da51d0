"""
Pytest configuration and shared fixtures.
"""

from typing import List

import pytest

from safewalk.dispatcher import CallbackDispatcher
from safewalk.haptics_module import HapticsManager
from safewalk.interaction_controller import InteractionController
from safewalk.logic.state_machine import ModeStateMachine
from safewalk.speech.queue_manager import SpeechQueueManager
from safewalk.speech.tts_sink import SpeechOutcome, VoiceInfo


class ManualClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSink:
    """Speech sink whose completions are fired by the test (or immediately with auto_complete)."""

    def __init__(self, auto_complete: bool = False):
        self.supported = True
        self.auto_complete = auto_complete
        self.said = []
        self.callbacks = []
        self.cancels = 0
        self.fail_next = False
        self.voice_list: List[VoiceInfo] = []

    def say(self, utterance, on_complete):
        if self.fail_next:
            self.fail_next = False
            raise RuntimeError("synthesis unavailable")
        self.said.append(utterance)
        self.callbacks.append(on_complete)
        if self.auto_complete:
            on_complete(SpeechOutcome.DONE)

    def cancel(self):
        self.cancels += 1

    def voices(self):
        return list(self.voice_list)

    def finish(self, outcome=SpeechOutcome.DONE, index=-1):
        self.callbacks[index](outcome)

    @property
    def texts(self):
        return [utterance.text for utterance in self.said]


class RecordingVibrator:
    def __init__(self, available: bool = True):
        self._available = available
        self.played = []
        self.cancels = 0

    def available(self):
        return self._available

    def play(self, pattern_ms):
        self.played.append(list(pattern_ms))
        return True

    def cancel(self):
        self.cancels += 1


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def dispatcher(clock):
    return CallbackDispatcher(clock=clock)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def speech(sink, clock):
    return SpeechQueueManager(sink, clock=clock)


@pytest.fixture
def vibrator():
    return RecordingVibrator()


@pytest.fixture
def haptics(vibrator):
    return HapticsManager(vibrator)


@pytest.fixture
def modes(clock):
    return ModeStateMachine(clock=clock)


@pytest.fixture
def talking_sink():
    return RecordingSink(auto_complete=True)


@pytest.fixture
def controller(talking_sink, clock, haptics, modes, dispatcher):
    speech = SpeechQueueManager(talking_sink, clock=clock)
    ctrl = InteractionController(speech, haptics, modes, dispatcher)
    ctrl.detector_ready = True
    yield ctrl
    ctrl.close()
