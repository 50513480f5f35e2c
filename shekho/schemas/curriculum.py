"""
Curriculum schemas for Shekho.

Defines Pydantic models for the two content hierarchies:
- Grammar track: phases -> modules -> exercise items
- Conversation track: lessons -> scenarios -> dialogue lines and vocabulary
"""

import re
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


UNIT_KEY_SEPARATOR = "-"

_MODULE_PREFIX = re.compile(r"^Module \d+: ")


def make_unit_key(phase_index: int, module_index: int) -> str:
    """Build the string key for a (phase, module) pair, e.g. "0-0"."""
    return f"{phase_index}{UNIT_KEY_SEPARATOR}{module_index}"


def parse_unit_key(unit_key: str) -> tuple[int, int]:
    """
    Split a unit key into (phase_index, module_index).

    Raises:
        ValueError: If the key is not two non-negative integers joined by "-"
    """
    parts = unit_key.split(UNIT_KEY_SEPARATOR)
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid unit key: {unit_key!r}")
    return int(parts[0]), int(parts[1])


# -----------------------------------------------------------------------------
# Exercise item types
# -----------------------------------------------------------------------------

class LetterItem(BaseModel):
    """A single script letter. Has no reverse side."""
    type: Literal["letter"] = "letter"
    bengali: str
    transliteration: str


class WordItem(BaseModel):
    """A word or phrase with an English translation on the reverse side."""
    type: Literal["word"] = "word"
    bengali: str
    transliteration: str
    english: str


ExerciseItem = Annotated[Union[LetterItem, WordItem], Field(discriminator="type")]


# -----------------------------------------------------------------------------
# Grammar track
# -----------------------------------------------------------------------------

class ModuleNote(BaseModel):
    from_index: int = Field(..., ge=0)
    text: str


class Module(BaseModel):
    title: str
    display_title: Optional[str] = None
    exercises: list[ExerciseItem] = []
    extended_exercises: list[ExerciseItem] = []
    notes: list[ModuleNote] = []
    extended_note: Optional[str] = None

    @property
    def heading(self) -> str:
        """Title shown on the module page."""
        if self.display_title:
            return self.display_title
        return _MODULE_PREFIX.sub("", self.title)

    @property
    def has_content(self) -> bool:
        return bool(self.exercises)

    def note_for(self, index: int, extended: bool = False) -> Optional[str]:
        """Explanatory text for the card at `index`."""
        if extended:
            return self.extended_note
        applicable = [n for n in self.notes if n.from_index <= index]
        if not applicable:
            return None
        return max(applicable, key=lambda n: n.from_index).text


class Phase(BaseModel):
    title: str
    modules: list[Module] = Field(..., min_length=1)


# -----------------------------------------------------------------------------
# Conversation track
# -----------------------------------------------------------------------------

class DialogueLine(BaseModel):
    speaker: str
    bengali: str
    transliteration: str
    english: str


class VocabItem(BaseModel):
    bengali: str
    transliteration: str
    english: str


class GrammarNote(BaseModel):
    title: str
    content: list[str] = []


class Scenario(BaseModel):
    """One mini-dialogue plus its vocabulary breakdown."""
    id: int
    image: str
    conversation: list[DialogueLine] = Field(..., min_length=1)
    vocabulary: list[VocabItem] = Field(..., min_length=1)
    notes: Optional[GrammarNote] = None


class LessonListing(BaseModel):
    """Lesson entry shown in the conversation list."""
    id: int
    title: str
    color: str = "#FF6B6B"


class ConversationLesson(BaseModel):
    id: int
    title: str
    scenarios: list[Scenario] = Field(..., min_length=1)


# -----------------------------------------------------------------------------
# Whole dataset
# -----------------------------------------------------------------------------

class Curriculum(BaseModel):
    phases: list[Phase] = Field(..., min_length=1)
    lesson_listings: list[LessonListing] = []
    lessons: list[ConversationLesson] = []
