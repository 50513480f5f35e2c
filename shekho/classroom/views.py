"""
View states for the navigation state machine.

Views are a closed set of frozen dataclasses; callers dispatch with
isinstance() over all of them.
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Landing:
    """Mode chooser shown at startup."""


@dataclass(frozen=True)
class ModeSelectHome:
    """Grammar track home: phases and modules."""


@dataclass(frozen=True)
class ConversationList:
    """Conversation track home: list of lessons."""


@dataclass(frozen=True)
class GrammarUnit:
    unit_key: str


@dataclass(frozen=True)
class ConversationLessonView:
    lesson_id: int


View = Union[Landing, ModeSelectHome, ConversationList, GrammarUnit, ConversationLessonView]


# Allowed (source type, target type) pairs.
TRANSITIONS: frozenset[tuple[type, type]] = frozenset({
    (Landing, ModeSelectHome),
    (Landing, ConversationList),
    (ModeSelectHome, Landing),
    (ModeSelectHome, GrammarUnit),
    (GrammarUnit, ModeSelectHome),
    (ConversationList, Landing),
    (ConversationList, ConversationLessonView),
    (ConversationLessonView, ConversationList),
})


def is_allowed(source: View, target: View) -> bool:
    return (type(source), type(target)) in TRANSITIONS
