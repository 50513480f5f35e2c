"""
Shekho Schemas - Pydantic models for the Bengali learning app.

This module exports all schema classes for:
- Curriculum: phases, modules, exercise items, conversation lessons
- Progress: persisted learner progress
"""

# Curriculum schemas
from .curriculum import (
    UNIT_KEY_SEPARATOR,
    make_unit_key,
    parse_unit_key,
    LetterItem,
    WordItem,
    ExerciseItem,
    ModuleNote,
    Module,
    Phase,
    DialogueLine,
    VocabItem,
    GrammarNote,
    Scenario,
    LessonListing,
    ConversationLesson,
    Curriculum,
)

# Progress schemas
from .progress import (
    UnitAvailability,
    ProgressState,
)

__all__ = [
    # Curriculum
    'UNIT_KEY_SEPARATOR',
    'make_unit_key',
    'parse_unit_key',
    'LetterItem',
    'WordItem',
    'ExerciseItem',
    'ModuleNote',
    'Module',
    'Phase',
    'DialogueLine',
    'VocabItem',
    'GrammarNote',
    'Scenario',
    'LessonListing',
    'ConversationLesson',
    'Curriculum',
    # Progress
    'UnitAvailability',
    'ProgressState',
]
