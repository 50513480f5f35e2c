"""
Shekho Classroom - Runtime components for curriculum navigation.

This module provides:
- CurriculumLoader: Load the built-in curriculum
- ProgressStore: Persist learner progress
- Navigator: Focus, reachability, and view transitions
- ModuleSession / LessonSession: Flashcard engines for both tracks
"""

from .loader import (
    CurriculumLoader,
    DEFAULT_CURRICULUM_PATH,
    DEFAULT_ASSETS_DIR,
    resolve_asset,
)

from .progress import (
    KeyValueStore,
    MemoryKeyValueStore,
    SQLiteKeyValueStore,
    ProgressStore,
    DEFAULT_PROGRESS_DIR,
    DEFAULT_PROGRESS_DB,
)

from .reachability import (
    ReachabilityPolicy,
    POLICIES,
    DEFAULT_POLICY,
    get_policy,
)

from .views import (
    View,
    Landing,
    ModeSelectHome,
    ConversationList,
    GrammarUnit,
    ConversationLessonView,
)

from .navigator import (
    Navigator,
    NavigationModule,
    NavigationPhase,
    advance_focus,
    initial_focus,
)

from .flashcards import (
    CursorStep,
    GrammarCursor,
    ConversationCursor,
    ModuleSession,
    LessonSession,
    TransitionSink,
    logging_sink,
)

__all__ = [
    # Loader
    "CurriculumLoader",
    "DEFAULT_CURRICULUM_PATH",
    "DEFAULT_ASSETS_DIR",
    "resolve_asset",
    # Progress
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "ProgressStore",
    "DEFAULT_PROGRESS_DIR",
    "DEFAULT_PROGRESS_DB",
    # Reachability
    "ReachabilityPolicy",
    "POLICIES",
    "DEFAULT_POLICY",
    "get_policy",
    # Views
    "View",
    "Landing",
    "ModeSelectHome",
    "ConversationList",
    "GrammarUnit",
    "ConversationLessonView",
    # Navigator
    "Navigator",
    "NavigationModule",
    "NavigationPhase",
    "advance_focus",
    "initial_focus",
    # Flashcards
    "CursorStep",
    "GrammarCursor",
    "ConversationCursor",
    "ModuleSession",
    "LessonSession",
    "TransitionSink",
    "logging_sink",
]
