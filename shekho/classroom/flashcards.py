"""
Flashcards - Cursors and sessions for the two kinds of content.

Provides:
- GrammarCursor: primary sequence, then the extended follow-on sequence
- ConversationCursor: vocabulary cards across a lesson's scenarios
- ModuleSession / LessonSession: cursors wired to the Navigator, the
  speech coordinator, and an optional transition sink

Cursors only move; sessions turn a terminal step into the matching
navigation transition.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from shekho.schemas import (
    ConversationLesson,
    ExerciseItem,
    Module,
    Scenario,
    VocabItem,
    WordItem,
    parse_unit_key,
)
from shekho.speech import (
    DIALOGUE_SPEAKING_RATE,
    AudioHandle,
    SpeechPayload,
    build_dialogue_ssml,
)

from .navigator import Navigator
from .views import ConversationLessonView, GrammarUnit


logger = logging.getLogger(__name__)

VOCAB_SPEAKING_RATE = 0.85


class CursorStep(str, Enum):
    """What a next()/prev() call did."""
    NONE = "none"
    MOVED = "moved"
    ENTERED_EXTENDED = "entered_extended"
    LEFT_EXTENDED = "left_extended"
    NEXT_SCENARIO = "next_scenario"
    COMPLETED = "completed"


# Called as sink(event, cursor) after every state change.
TransitionSink = Callable[[str, object], None]


def no_op_sink(event: str, cursor: object):
    pass


def logging_sink(event: str, cursor: object):
    logger.info(f"{event}: {cursor}")


# -----------------------------------------------------------------------------
# Grammar track
# -----------------------------------------------------------------------------

@dataclass
class GrammarCursor:
    unit_key: str
    module: Module = field(repr=False)
    exercise_index: int = 0
    is_extended: bool = False
    is_revealed: bool = False

    @property
    def sequence(self) -> list[ExerciseItem]:
        return self.module.extended_exercises if self.is_extended else self.module.exercises

    @property
    def has_extended(self) -> bool:
        return bool(self.module.extended_exercises)

    def clamp(self):
        """Pull an out-of-range position back onto the nearest valid card."""
        if self.is_extended and not self.has_extended:
            self.is_extended = False
            self.exercise_index = len(self.module.exercises) - 1
        last = len(self.sequence) - 1
        if self.exercise_index > last:
            self.exercise_index = max(last, 0)
        if self.exercise_index < 0:
            self.exercise_index = 0

    @property
    def current_item(self) -> Optional[ExerciseItem]:
        if 0 <= self.exercise_index < len(self.sequence):
            return self.sequence[self.exercise_index]
        return None

    @property
    def is_at_sequence_end(self) -> bool:
        return self.exercise_index >= len(self.sequence) - 1

    @property
    def is_last_step(self) -> bool:
        """True when next() would complete the unit."""
        if not self.module.has_content or not self.is_at_sequence_end:
            return False
        return self.is_extended or not self.has_extended

    @property
    def can_go_back(self) -> bool:
        return self.exercise_index > 0 or self.is_extended

    def next(self) -> CursorStep:
        self.clamp()
        if not self.module.has_content:
            return CursorStep.NONE

        if not self.is_at_sequence_end:
            self.exercise_index += 1
            self.is_revealed = False
            return CursorStep.MOVED

        if not self.is_extended and self.has_extended:
            self.is_extended = True
            self.exercise_index = 0
            self.is_revealed = False
            return CursorStep.ENTERED_EXTENDED

        return CursorStep.COMPLETED

    def prev(self) -> CursorStep:
        self.clamp()
        if self.exercise_index > 0:
            self.exercise_index -= 1
            self.is_revealed = False
            return CursorStep.MOVED

        if self.is_extended:
            self.is_extended = False
            self.exercise_index = len(self.module.exercises) - 1
            self.is_revealed = False
            return CursorStep.LEFT_EXTENDED

        return CursorStep.NONE

    def toggle_reveal(self) -> bool:
        """Flip a word card. Letters have no reverse side."""
        if isinstance(self.current_item, WordItem):
            self.is_revealed = not self.is_revealed
        return self.is_revealed

    # Presentation

    @property
    def section_title(self) -> str:
        return "Extended Vocabulary" if self.is_extended else "Vocabulary & Phonics"

    @property
    def note(self) -> Optional[str]:
        return self.module.note_for(self.exercise_index, self.is_extended)

    @property
    def next_label(self) -> str:
        return "Finish" if self.is_last_step else "Next"


class ModuleSession:
    """
    One visit to a grammar unit.

    The terminal next() records completion through the Navigator exactly
    once; the session is inert afterwards.
    """

    def __init__(self, navigator: Navigator, unit_key: str, speech=None, sink: Optional[TransitionSink] = None):
        """
        Raises:
            ContentNotFound: If the unit key has no curriculum entry
        """
        self.navigator = navigator
        self.cursor = GrammarCursor(unit_key, navigator.loader.get_module(unit_key))
        self.speech = speech
        self.sink = sink or no_op_sink
        self.completed = False

    @property
    def unit_key(self) -> str:
        return self.cursor.unit_key

    @property
    def is_active(self) -> bool:
        return not self.completed and self.navigator.view == GrammarUnit(self.unit_key)

    @property
    def breadcrumb(self) -> str:
        phase_idx, module_idx = parse_unit_key(self.unit_key)
        return f"Phase {phase_idx + 1} > Module {module_idx + 1}"

    @property
    def audio_busy(self) -> bool:
        return self.speech is not None and self.speech.busy

    def _emit(self, event: str):
        self.sink(event, self.cursor)

    def next(self) -> CursorStep:
        if not self.is_active:
            return CursorStep.NONE

        step = self.cursor.next()
        if step == CursorStep.COMPLETED:
            # The cursor stays on the last card, so a failed save can be retried
            self.navigator.complete_unit(self.unit_key)
            self.completed = True
        if step != CursorStep.NONE:
            self._emit(step.value)
        return step

    def prev(self) -> CursorStep:
        if not self.is_active:
            return CursorStep.NONE
        step = self.cursor.prev()
        if step != CursorStep.NONE:
            self._emit(step.value)
        return step

    def toggle_reveal(self) -> bool:
        before = self.cursor.is_revealed
        revealed = self.cursor.toggle_reveal()
        if revealed != before:
            self._emit("reveal" if revealed else "hide")
        return revealed

    def go_home(self):
        """Leave for the grammar home without completing. No-op once the visit is over."""
        if not self.is_active:
            return
        self.navigator.go_home()
        self._emit("home")

    def speak(self) -> Optional[AudioHandle]:
        """Pronounce the current card."""
        item = self.cursor.current_item
        if item is None or self.speech is None:
            return None
        return self.speech.speak(SpeechPayload(text=item.bengali))


# -----------------------------------------------------------------------------
# Conversation track
# -----------------------------------------------------------------------------

@dataclass
class ConversationCursor:
    lesson: ConversationLesson = field(repr=False)
    scenario_index: int = 0
    vocab_index: int = 0
    is_script_revealed: bool = False
    is_vocab_revealed: bool = False

    @property
    def lesson_id(self) -> int:
        return self.lesson.id

    def clamp(self):
        self.scenario_index = min(max(self.scenario_index, 0), len(self.lesson.scenarios) - 1)
        last_vocab = len(self.lesson.scenarios[self.scenario_index].vocabulary) - 1
        self.vocab_index = min(max(self.vocab_index, 0), last_vocab)

    @property
    def current_scenario(self) -> Scenario:
        self.clamp()
        return self.lesson.scenarios[self.scenario_index]

    @property
    def current_vocab(self) -> Optional[VocabItem]:
        vocabulary = self.current_scenario.vocabulary
        if 0 <= self.vocab_index < len(vocabulary):
            return vocabulary[self.vocab_index]
        return None

    @property
    def is_last_vocab(self) -> bool:
        return self.vocab_index >= len(self.current_scenario.vocabulary) - 1

    @property
    def is_last_scenario(self) -> bool:
        return self.scenario_index >= len(self.lesson.scenarios) - 1

    def next(self) -> CursorStep:
        self.clamp()
        if not self.is_last_vocab:
            self.vocab_index += 1
            self.is_vocab_revealed = False
            return CursorStep.MOVED

        if not self.is_last_scenario:
            self.scenario_index += 1
            self.vocab_index = 0
            self.is_vocab_revealed = False
            self.is_script_revealed = False
            return CursorStep.NEXT_SCENARIO

        return CursorStep.COMPLETED

    def prev(self) -> CursorStep:
        """
        Step back one vocabulary card.

        Stops at the first card of the scenario: unlike next(), it never
        crosses into the previous scenario.
        """
        self.clamp()
        if self.vocab_index > 0:
            self.vocab_index -= 1
            self.is_vocab_revealed = False
            return CursorStep.MOVED
        return CursorStep.NONE

    def toggle_script(self) -> bool:
        self.is_script_revealed = not self.is_script_revealed
        return self.is_script_revealed

    def toggle_vocab(self) -> bool:
        self.is_vocab_revealed = not self.is_vocab_revealed
        return self.is_vocab_revealed

    # Presentation

    @property
    def progress_label(self) -> str:
        return f"{self.vocab_index + 1} / {len(self.current_scenario.vocabulary)}"

    @property
    def next_label(self) -> str:
        if not self.is_last_vocab:
            return "Next"
        return "Finish Lesson" if self.is_last_scenario else "Next Conversation"


class LessonSession:
    """One visit to a conversation lesson."""

    def __init__(self, navigator: Navigator, lesson_id: int, speech=None, sink: Optional[TransitionSink] = None):
        """
        Raises:
            ContentNotFound: If the lesson has no authored scenarios
        """
        self.navigator = navigator
        self.cursor = ConversationCursor(navigator.loader.get_lesson(lesson_id))
        self.speech = speech
        self.sink = sink or no_op_sink
        self.finished = False

    @property
    def lesson_id(self) -> int:
        return self.cursor.lesson_id

    @property
    def title(self) -> str:
        return self.cursor.lesson.title

    @property
    def is_active(self) -> bool:
        return not self.finished and self.navigator.view == ConversationLessonView(self.lesson_id)

    @property
    def audio_busy(self) -> bool:
        return self.speech is not None and self.speech.busy

    def _emit(self, event: str):
        self.sink(event, self.cursor)

    def next(self) -> CursorStep:
        if not self.is_active:
            return CursorStep.NONE

        step = self.cursor.next()
        if step == CursorStep.NEXT_SCENARIO:
            if self.speech is not None:
                self.speech.stop()
        elif step == CursorStep.COMPLETED:
            self.finished = True
            self.navigator.leave_lesson()
            logger.info(f"Finished conversation lesson {self.lesson_id}")
        self._emit(step.value)
        return step

    def prev(self) -> CursorStep:
        if not self.is_active:
            return CursorStep.NONE
        step = self.cursor.prev()
        if step != CursorStep.NONE:
            self._emit(step.value)
        return step

    def toggle_script(self) -> bool:
        revealed = self.cursor.toggle_script()
        self._emit("script_reveal" if revealed else "script_hide")
        return revealed

    def toggle_vocab(self) -> bool:
        revealed = self.cursor.toggle_vocab()
        self._emit("vocab_reveal" if revealed else "vocab_hide")
        return revealed

    def back(self):
        """Leave for the conversation list without finishing. No-op once the visit is over."""
        if not self.is_active:
            return
        self.navigator.leave_lesson()
        self._emit("back")

    def play_conversation(self) -> Optional[AudioHandle]:
        if self.speech is None:
            return None
        ssml = build_dialogue_ssml(self.cursor.current_scenario.conversation)
        return self.speech.speak(SpeechPayload(ssml=ssml, speaking_rate=DIALOGUE_SPEAKING_RATE))

    def play_vocab(self) -> Optional[AudioHandle]:
        item = self.cursor.current_vocab
        if item is None or self.speech is None:
            return None
        return self.speech.speak(SpeechPayload(text=item.bengali, speaking_rate=VOCAB_SPEAKING_RATE))
