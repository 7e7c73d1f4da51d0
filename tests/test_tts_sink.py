"""
Tests for the pyttsx3 sink against a fake engine.

The fake engine plays each utterance for a fixed time unless stop() cuts
it short, and fires "started-utterance" callbacks like the real drivers.
"""

import sys
import threading
import time
import types

import pytest

from safewalk.common import Priority
from safewalk.speech.queue_manager import SpeechQueueManager
from safewalk.speech.tts_sink import Pyttsx3Sink, SpeechOutcome, Utterance


class FakeEngine:
    def __init__(self, duration: float = 0.3):
        self.duration = duration
        self.props = {"rate": 200, "voices": []}
        self.spoken = []
        self.started = []
        self.stops = 0
        self.fail_next = False
        self.utterance_started = threading.Event()
        self._callbacks = {}
        self._pending = []
        self._interrupt = threading.Event()

    def getProperty(self, name):
        return self.props.get(name)

    def setProperty(self, name, value):
        self.props[name] = value

    def connect(self, topic, callback):
        self._callbacks.setdefault(topic, []).append(callback)
        return callback

    def say(self, text):
        self._pending.append(text)

    def runAndWait(self):
        texts, self._pending = self._pending, []
        if self.fail_next:
            self.fail_next = False
            raise RuntimeError("driver crashed")
        # like the real loop, a stop() issued before the run starts is lost
        self._interrupt.clear()
        for text in texts:
            self.started.append(text)
            for callback in self._callbacks.get("started-utterance", []):
                callback(text)
            self.utterance_started.set()
            if self._interrupt.wait(self.duration):
                continue
            self.spoken.append(text)

    def stop(self):
        self.stops += 1
        self._interrupt.set()


def _pump(dispatcher, until, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not until() and time.monotonic() < deadline:
        dispatcher.run_pending()
        time.sleep(0.01)
    dispatcher.run_pending()


@pytest.fixture
def engine(monkeypatch):
    fake = FakeEngine()
    monkeypatch.setitem(sys.modules, "pyttsx3", types.SimpleNamespace(init=lambda: fake))
    return fake


@pytest.fixture
def tts(engine, dispatcher):
    sink = Pyttsx3Sink(dispatcher)
    yield sink
    sink.shutdown()


@pytest.fixture
def outcomes():
    return []


def _collect(outcomes, name):
    return lambda outcome: outcomes.append((name, outcome))


class TestCompletionContract:
    def test_done_with_rate_and_voice(self, tts, engine, dispatcher, outcomes):
        engine.duration = 0.01
        tts.say(Utterance("hello", rate=1.1, voice_id="en2"), _collect(outcomes, "hello"))
        _pump(dispatcher, lambda: outcomes)
        assert outcomes == [("hello", SpeechOutcome.DONE)]
        assert engine.spoken == ["hello"]
        assert engine.props["rate"] == 220
        assert engine.props["voice"] == "en2"

    def test_each_say_completes_once_in_order(self, tts, engine, dispatcher, outcomes):
        engine.duration = 0.01
        for name in ("one", "two", "three"):
            tts.say(Utterance(name), _collect(outcomes, name))
        _pump(dispatcher, lambda: len(outcomes) == 3)
        time.sleep(0.05)
        dispatcher.run_pending()
        assert outcomes == [
            ("one", SpeechOutcome.DONE),
            ("two", SpeechOutcome.DONE),
            ("three", SpeechOutcome.DONE),
        ]

    def test_completion_runs_on_dispatcher_thread(self, tts, engine, dispatcher):
        engine.duration = 0.01
        threads = []
        tts.say(Utterance("hello"), lambda outcome: threads.append(threading.current_thread()))
        _pump(dispatcher, lambda: threads)
        assert threads == [threading.current_thread()]

    def test_engine_error_reports_error_and_recovers(self, tts, engine, dispatcher, outcomes):
        engine.duration = 0.01
        engine.fail_next = True
        tts.say(Utterance("broken"), _collect(outcomes, "broken"))
        tts.say(Utterance("works"), _collect(outcomes, "works"))
        _pump(dispatcher, lambda: len(outcomes) == 2)
        assert outcomes == [("broken", SpeechOutcome.ERROR), ("works", SpeechOutcome.DONE)]
        assert engine.spoken == ["works"]


class TestCancel:
    def test_cancel_before_playback_is_silent(self, tts, engine, dispatcher, outcomes):
        tts.say(Utterance("queued"), _collect(outcomes, "queued"))
        tts.cancel()
        _pump(dispatcher, lambda: outcomes)
        assert outcomes == [("queued", SpeechOutcome.CANCELLED)]
        assert engine.spoken == []

    def test_cancel_during_playback(self, tts, engine, dispatcher, outcomes):
        engine.duration = 5.0
        tts.say(Utterance("long"), _collect(outcomes, "long"))
        assert engine.utterance_started.wait(2.0)
        tts.cancel()
        _pump(dispatcher, lambda: outcomes)
        assert outcomes == [("long", SpeechOutcome.CANCELLED)]
        assert engine.spoken == []
        assert engine.stops >= 1

    def test_cancel_covers_every_pending_job(self, tts, engine, dispatcher, outcomes):
        for name in ("a", "b", "c"):
            tts.say(Utterance(name), _collect(outcomes, name))
        tts.cancel()
        tts.say(Utterance("after"), _collect(outcomes, "after"))
        _pump(dispatcher, lambda: len(outcomes) == 4)
        assert outcomes == [
            ("a", SpeechOutcome.CANCELLED),
            ("b", SpeechOutcome.CANCELLED),
            ("c", SpeechOutcome.CANCELLED),
            ("after", SpeechOutcome.DONE),
        ]
        assert engine.spoken == ["after"]

    def test_critical_preempts_through_real_sink(self, tts, engine, dispatcher):
        speech = SpeechQueueManager(tts)
        speech.speak("Detection mode active.", Priority.NORMAL)
        speech.speak("Warning! Car 2 meters ahead!", Priority.CRITICAL)
        _pump(dispatcher, lambda: not speech.is_playing)
        assert engine.spoken == ["Warning! Car 2 meters ahead!"]

    def test_stop_silences_queue(self, tts, engine, dispatcher, outcomes):
        speech = SpeechQueueManager(tts)
        speech.speak("first")
        speech.speak("second")
        speech.stop()
        time.sleep(0.5)
        _pump(dispatcher, lambda: True)
        assert engine.spoken == []
        assert not speech.is_playing


class TestLifecycle:
    def test_shutdown_completes_outstanding_jobs(self, tts, engine, dispatcher, outcomes):
        tts.say(Utterance("a"), _collect(outcomes, "a"))
        tts.say(Utterance("b"), _collect(outcomes, "b"))
        tts.shutdown()
        _pump(dispatcher, lambda: len(outcomes) == 2)
        assert outcomes == [("a", SpeechOutcome.CANCELLED), ("b", SpeechOutcome.CANCELLED)]
        assert not tts.supported
        with pytest.raises(RuntimeError):
            tts.say(Utterance("late"), _collect(outcomes, "late"))

    def test_init_failure_is_unsupported(self, monkeypatch, dispatcher):
        def broken_init():
            raise OSError("no audio driver")

        monkeypatch.setitem(sys.modules, "pyttsx3", types.SimpleNamespace(init=broken_init))
        sink = Pyttsx3Sink(dispatcher)
        assert not sink.supported
        assert sink.voices() == []
        sink.cancel()
        sink.shutdown()


class TestVoices:
    def test_voice_languages(self, tts, engine):
        engine.props["voices"] = [
            types.SimpleNamespace(id="v1", name="English (America)", languages=[b"\x05en-us"]),
            types.SimpleNamespace(id="v2", name="Anna", languages=["de_DE"]),
            types.SimpleNamespace(id="com.apple.samantha", name="Samantha English", languages=[]),
            types.SimpleNamespace(id="v4", name="Mystery", languages=None),
        ]
        voices = tts.voices()
        assert [(v.id, v.language) for v in voices] == [
            ("v1", "en-us"),
            ("v2", "de-DE"),
            ("com.apple.samantha", "en"),
            ("v4", ""),
        ]
