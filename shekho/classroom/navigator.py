"""
Navigator - Learner focus, unit reachability, and view transitions.

Provides:
- Focus advancement after a unit is completed
- Unit availability through a pluggable reachability policy
- The view state machine (landing, grammar home, conversation list, content)
- Curriculum tree with status indicators
"""

import logging
from dataclasses import dataclass
from typing import Collection, Optional, Sequence

from shekho.errors import ContentNotFound, InvalidTransition
from shekho.schemas import Module, Phase, ProgressState, UnitAvailability, make_unit_key, parse_unit_key

from .loader import CurriculumLoader
from .progress import ProgressStore
from .reachability import DEFAULT_POLICY, ReachabilityPolicy, get_policy
from .views import (
    ConversationLessonView,
    ConversationList,
    GrammarUnit,
    Landing,
    ModeSelectHome,
    View,
    is_allowed,
)


logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Focus scanning
# -----------------------------------------------------------------------------

def advance_focus(
    module_counts: Sequence[int],
    just_completed_key: str,
    completed: Collection[str],
) -> Optional[str]:
    """
    Find the unit to focus after `just_completed_key` is completed.

    Scans the rest of the same phase first, then later phases in order
    (phase-major, module-minor). Earlier phases are not revisited.

    Args:
        module_counts: Number of modules in each phase
        just_completed_key: Unit key that was just completed
        completed: All completed unit keys (including the new one)

    Returns:
        Next incomplete unit key, or None if none remain
    """
    phase_idx, module_idx = parse_unit_key(just_completed_key)

    if phase_idx < len(module_counts):
        for i in range(module_idx + 1, module_counts[phase_idx]):
            key = make_unit_key(phase_idx, i)
            if key not in completed:
                return key

    for p in range(phase_idx + 1, len(module_counts)):
        for m in range(module_counts[p]):
            key = make_unit_key(p, m)
            if key not in completed:
                return key

    return None


def initial_focus(module_counts: Sequence[int], completed: Collection[str]) -> str:
    """First incomplete unit in scan order, or the first unit if all are done."""
    for p, count in enumerate(module_counts):
        for m in range(count):
            key = make_unit_key(p, m)
            if key not in completed:
                return key
    return make_unit_key(0, 0)


# -----------------------------------------------------------------------------
# Curriculum tree
# -----------------------------------------------------------------------------

@dataclass
class NavigationModule:
    """Module with navigation metadata."""
    unit_key: str
    module: Module
    availability: UnitAvailability
    is_reachable: bool
    is_current: bool
    indicator: str


@dataclass
class NavigationPhase:
    """Phase with modules and navigation metadata."""
    index: int
    phase: Phase
    modules: list[NavigationModule]
    completed_count: int
    total_count: int


class Navigator:
    """
    Owns the learner's ProgressState and the current view.

    Combines CurriculumLoader (content) with ProgressStore (persistence).
    Progress changes only through complete_unit(); every view transition
    stops any audio the speech coordinator is playing.
    """

    def __init__(
        self,
        loader: CurriculumLoader,
        store: ProgressStore,
        policy: Optional[ReachabilityPolicy] = None,
        speech=None,
    ):
        """
        Initialize navigator.

        Args:
            loader: CurriculumLoader for content access
            store: ProgressStore for persisted progress
            policy: Reachability predicate (default: the "first_two" policy)
            speech: Optional SpeechCoordinator stopped on every transition
        """
        self.loader = loader
        self.store = store
        self.policy = policy or get_policy(DEFAULT_POLICY, loader.unit_keys)
        self.speech = speech
        self.had_saved_progress = store.has_saved_progress()
        self.state = self._restore()
        self.view: View = Landing()

    def _restore(self) -> ProgressState:
        """Load stored progress and drop anything that no longer fits the curriculum."""
        stored = self.store.load()
        completed = {key for key in stored.completed_units if self.loader.has_unit(key)}
        unknown = stored.completed_units - completed
        if unknown:
            logger.warning(f"Ignoring unknown completed units: {sorted(unknown)}")

        focus = stored.current_focus
        if focus is None or not self.loader.has_unit(focus):
            if focus is not None:
                logger.warning(f"Stored focus {focus!r} is not in the curriculum; recomputing")
            focus = initial_focus(self.loader.module_counts(), completed)

        return ProgressState(completed_units=completed, current_focus=focus)

    @property
    def completed_units(self) -> frozenset[str]:
        return frozenset(self.state.completed_units)

    @property
    def current_focus(self) -> str:
        return self.state.current_focus

    @property
    def total_units(self) -> int:
        return len(self.loader.unit_keys)

    # -------------------------------------------------------------------------
    # Availability Checking
    # -------------------------------------------------------------------------

    def is_unit_reachable(self, unit_key: str) -> bool:
        """Check if a unit can be opened."""
        if not self.loader.has_unit(unit_key):
            return False
        if unit_key == self.loader.first_unit_key:
            return True
        return self.policy(unit_key, self.completed_units)

    def get_unit_availability(self, unit_key: str) -> UnitAvailability:
        if unit_key in self.state.completed_units:
            return UnitAvailability.COMPLETED
        if self.is_unit_reachable(unit_key):
            return UnitAvailability.AVAILABLE
        return UnitAvailability.LOCKED

    def get_status_indicator(self, unit_key: str) -> str:
        """
        Get status indicator for the home screen.

        Returns:
            ✓ for completed
            → for current focus
            ○ for available
            🔒 for locked
        """
        availability = self.get_unit_availability(unit_key)

        if availability == UnitAvailability.COMPLETED:
            return "✓"
        elif unit_key == self.current_focus:
            return "→"
        elif availability == UnitAvailability.AVAILABLE:
            return "○"
        else:
            return "🔒"

    # -------------------------------------------------------------------------
    # View Transitions
    # -------------------------------------------------------------------------

    def _transition(self, target: View):
        if not is_allowed(self.view, target):
            raise InvalidTransition(
                f"Cannot go from {type(self.view).__name__} to {type(target).__name__}"
            )
        if self.speech is not None:
            self.speech.stop()
        logger.debug(f"View {self.view} -> {target}")
        self.view = target

    def choose_grammar(self):
        """Landing -> grammar home."""
        self._transition(ModeSelectHome())

    def choose_conversation(self):
        """Landing -> conversation list."""
        self._transition(ConversationList())

    def back_to_landing(self):
        self._transition(Landing())

    def select_unit(self, unit_key: str) -> bool:
        """
        Open a grammar unit if reachable.

        Returns True if the unit view was entered, False if it is locked.

        Raises:
            ContentNotFound: If the key has no curriculum entry
        """
        if not self.loader.has_unit(unit_key):
            raise ContentNotFound(f"Unit not found: {unit_key}")
        if not self.is_unit_reachable(unit_key):
            logger.info(f"Unit {unit_key} is locked")
            return False
        self._transition(GrammarUnit(unit_key))
        return True

    def go_home(self):
        """Grammar unit -> grammar home without recording completion."""
        self._transition(ModeSelectHome())

    def complete_unit(self, unit_key: str) -> Optional[str]:
        """
        Record a finished unit, move the focus, persist, and return home.

        Only valid while the unit's own view is active. If saving fails the
        error propagates and neither the progress nor the view changes.

        Returns:
            The new focus key, or None if every unit is completed
            (the focus is then left where it was)
        """
        if self.view != GrammarUnit(unit_key):
            raise InvalidTransition(f"Unit {unit_key} is not the active view")

        completed = self.state.completed_units | {unit_key}
        next_key = advance_focus(self.loader.module_counts(), unit_key, completed)
        updated = ProgressState(
            completed_units=completed,
            current_focus=next_key or self.state.current_focus,
        )
        self.store.save(updated)
        self.state = updated
        logger.info(f"Completed unit {unit_key}; focus is now {self.state.current_focus}")

        self._transition(ModeSelectHome())
        return next_key

    def select_lesson(self, lesson_id: int):
        """
        Open a conversation lesson.

        Lessons that are listed but have no authored content can still be
        opened; the lesson view shows an empty state for them.

        Raises:
            ContentNotFound: If the lesson is neither listed nor authored
        """
        if self.loader.get_lesson_listing(lesson_id) is None and not self.loader.has_lesson(lesson_id):
            raise ContentNotFound(f"Lesson not found: {lesson_id}")
        self._transition(ConversationLessonView(lesson_id))

    def leave_lesson(self):
        """Conversation lesson -> conversation list (back action or lesson finished)."""
        self._transition(ConversationList())

    # -------------------------------------------------------------------------
    # Curriculum Tree
    # -------------------------------------------------------------------------

    def get_navigation_tree(self) -> list[NavigationPhase]:
        """Get all phases with per-module availability and indicators."""
        tree = []
        for phase_idx, phase in enumerate(self.loader.phases):
            modules = []
            completed_count = 0
            for module_idx, module in enumerate(phase.modules):
                key = make_unit_key(phase_idx, module_idx)
                availability = self.get_unit_availability(key)
                if availability == UnitAvailability.COMPLETED:
                    completed_count += 1
                modules.append(NavigationModule(
                    unit_key=key,
                    module=module,
                    availability=availability,
                    is_reachable=self.is_unit_reachable(key),
                    is_current=key == self.current_focus,
                    indicator=self.get_status_indicator(key),
                ))

            tree.append(NavigationPhase(
                index=phase_idx,
                phase=phase,
                modules=modules,
                completed_count=completed_count,
                total_count=len(phase.modules),
            ))
        return tree

    def default_expanded_phases(self) -> set[int]:
        """Phase 0 starts expanded once the learner has any saved progress."""
        return {0} if self.had_saved_progress else set()

    def get_progress_summary(self) -> dict:
        """Get progress summary for display."""
        completed = len(self.state.completed_units)
        total = self.total_units
        return {
            "total_units": total,
            "completed": completed,
            "completion_percent": round(completed / total * 100, 1) if total > 0 else 0,
            "current_focus": self.current_focus,
        }

    def reset_progress(self):
        """Forget all progress and refocus on the first unit."""
        self.store.reset()
        self.had_saved_progress = False
        self.state = ProgressState(
            completed_units=set(),
            current_focus=initial_focus(self.loader.module_counts(), set()),
        )
