"""Shared fixtures for Shekho tests."""

import sqlite3
from concurrent.futures import Executor, Future

import pytest

from shekho.classroom import CurriculumLoader, MemoryKeyValueStore, Navigator, ProgressStore
from shekho.schemas import (
    ConversationLesson,
    Curriculum,
    DialogueLine,
    LessonListing,
    LetterItem,
    Module,
    Phase,
    Scenario,
    VocabItem,
    WordItem,
)
from shekho.speech import AudioPlayer, SpeechCoordinator


class DeferredExecutor(Executor):
    """Holds submitted calls until the test runs them."""

    def __init__(self):
        self.calls = []

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        self.calls.append((future, fn, args, kwargs))
        return future

    def start(self, index: int) -> bool:
        """Mark a call as running, as a worker thread would."""
        return self.calls[index][0].set_running_or_notify_cancel()

    def finish(self, index: int):
        future, fn, args, kwargs = self.calls[index]
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def run(self, index: int = -1):
        if self.start(index):
            self.finish(index)
        return self.calls[index][0]


class FailingKeyValueStore(MemoryKeyValueStore):
    """Reads work; writes fail while `failing` is set."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.failing = True

    def set(self, key, value):
        if self.failing:
            raise sqlite3.OperationalError("database is locked")
        super().set(key, value)


class RecordingPlayer(AudioPlayer):
    def __init__(self):
        self.played = []
        self.stopped = []

    def play(self, handle):
        self.played.append(handle)

    def stop(self, handle):
        self.stopped.append(handle)


def fake_synthesize(payload) -> bytes:
    return f"mp3:{payload.text or payload.ssml}".encode("utf-8")


def make_scenario(scenario_id: int, vocab_count: int) -> Scenario:
    return Scenario(
        id=scenario_id,
        image=f"/scenario_{scenario_id}.png",
        conversation=[
            DialogueLine(speaker="A", bengali="কেমন আছো?", transliteration="Kemon achho?", english="How are you?"),
            DialogueLine(speaker="B", bengali="আমি ভালো আছি।", transliteration="Ami bhalo achhi.", english="I am well."),
        ],
        vocabulary=[
            VocabItem(bengali=f"শব্দ{i}", transliteration=f"shobdo{i}", english=f"word {i}")
            for i in range(vocab_count)
        ],
    )


def make_loader(module_counts=(3, 3, 2, 7), exercises=None, extended=None) -> CurriculumLoader:
    """Curriculum with the given module counts; every module gets the same cards."""
    if exercises is None:
        exercises = [
            LetterItem(bengali="অ", transliteration="o"),
            WordItem(bengali="মা", transliteration="Maa", english="Mother"),
            WordItem(bengali="বাবা", transliteration="Baba", english="Father"),
        ]
    if extended is None:
        extended = [
            WordItem(bengali="জল", transliteration="Jol", english="Water"),
            WordItem(bengali="চা", transliteration="Cha", english="Tea"),
        ]

    phases = [
        Phase(
            title=f"Phase {p + 1}",
            modules=[
                Module(
                    title=f"Module {m + 1}: Topic {p}.{m}",
                    exercises=list(exercises),
                    extended_exercises=list(extended),
                )
                for m in range(count)
            ],
        )
        for p, count in enumerate(module_counts)
    ]
    lesson = ConversationLesson(
        id=1,
        title="Absolute Basics",
        scenarios=[make_scenario(1, 3), make_scenario(2, 2)],
    )
    return CurriculumLoader(Curriculum(
        phases=phases,
        lesson_listings=[
            LessonListing(id=1, title="Absolute Basics"),
            LessonListing(id=2, title="Daily Actions & Movement"),
        ],
        lessons=[lesson],
    ))


@pytest.fixture
def loader() -> CurriculumLoader:
    return make_loader()


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv) -> ProgressStore:
    return ProgressStore(kv)


@pytest.fixture
def executor() -> DeferredExecutor:
    return DeferredExecutor()


@pytest.fixture
def player() -> RecordingPlayer:
    return RecordingPlayer()


@pytest.fixture
def speech(executor, player) -> SpeechCoordinator:
    return SpeechCoordinator(fake_synthesize, player=player, executor=executor)


@pytest.fixture
def navigator(loader, store, speech) -> Navigator:
    return Navigator(loader, store, speech=speech)
