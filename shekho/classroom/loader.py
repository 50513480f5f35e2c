"""
CurriculumLoader - Load the built-in curriculum from curriculum.yaml.

Provides read-only access to:
- Phases and modules (grammar track) addressed by unit key
- Lesson listings and conversation lessons (conversation track)
"""

import logging
from pathlib import Path
from typing import Optional

import yaml

from shekho.errors import ContentNotFound
from shekho.schemas import (
    ConversationLesson,
    Curriculum,
    LessonListing,
    Module,
    Phase,
    make_unit_key,
    parse_unit_key,
)


logger = logging.getLogger(__name__)

DEFAULT_CURRICULUM_PATH = Path(__file__).parent.parent / "data" / "curriculum.yaml"

DEFAULT_ASSETS_DIR = Path(__file__).parent.parent / "data" / "images"


def resolve_asset(image_ref: str, assets_dir: str | Path | None = None) -> Optional[Path]:
    """
    Find the file for a scenario image reference such as "/how_are_you.png".

    Args:
        image_ref: Image path from the curriculum, relative to the assets root
        assets_dir: Assets root (default: the package's data/images)

    Returns:
        Path to the image if it exists inside the assets root, None otherwise
    """
    root = Path(assets_dir) if assets_dir else DEFAULT_ASSETS_DIR
    candidate = root / image_ref.lstrip("/")
    try:
        candidate.resolve().relative_to(root.resolve())
    except ValueError:
        logger.warning(f"Ignoring image outside the assets directory: {image_ref}")
        return None
    return candidate if candidate.is_file() else None


class CurriculumLoader:
    """
    Static curriculum, read once and kept in memory.

    Unit keys are produced in scan order: phase-major, module-minor.
    """

    def __init__(self, curriculum: Curriculum):
        self.curriculum = curriculum
        self._unit_keys = [
            make_unit_key(phase_idx, module_idx)
            for phase_idx, phase in enumerate(curriculum.phases)
            for module_idx in range(len(phase.modules))
        ]
        self._lessons = {lesson.id: lesson for lesson in curriculum.lessons}

    @classmethod
    def from_yaml(cls, path: str | Path | None = None) -> "CurriculumLoader":
        """
        Load and validate a curriculum file.

        Args:
            path: Path to a curriculum YAML file (default: built-in dataset)

        Raises:
            FileNotFoundError: If the file doesn't exist
            pydantic.ValidationError: If the content doesn't match the schema
        """
        file_path = Path(path) if path else DEFAULT_CURRICULUM_PATH
        if not file_path.exists():
            raise FileNotFoundError(f"Curriculum file not found: {file_path}")

        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        loader = cls(Curriculum.model_validate(data))
        logger.info(
            f"Loaded curriculum from {file_path.name}: "
            f"{len(loader.unit_keys)} units, {len(loader._lessons)} conversation lessons"
        )
        return loader

    # -------------------------------------------------------------------------
    # Grammar track
    # -------------------------------------------------------------------------

    @property
    def phases(self) -> list[Phase]:
        return self.curriculum.phases

    @property
    def unit_keys(self) -> list[str]:
        """All unit keys in scan order."""
        return list(self._unit_keys)

    @property
    def first_unit_key(self) -> str:
        return self._unit_keys[0]

    def module_counts(self) -> list[int]:
        return [len(phase.modules) for phase in self.curriculum.phases]

    def has_unit(self, unit_key: str) -> bool:
        return unit_key in self._unit_keys

    def get_phase(self, phase_index: int) -> Phase:
        if not 0 <= phase_index < len(self.curriculum.phases):
            raise ContentNotFound(f"Phase not found: {phase_index}")
        return self.curriculum.phases[phase_index]

    def get_module(self, unit_key: str) -> Module:
        """
        Get the module addressed by a unit key.

        Raises:
            ContentNotFound: If the key is malformed or out of range
        """
        try:
            phase_idx, module_idx = parse_unit_key(unit_key)
        except ValueError as e:
            raise ContentNotFound(str(e)) from e

        phase = self.get_phase(phase_idx)
        if module_idx >= len(phase.modules):
            raise ContentNotFound(f"Module not found: {unit_key}")
        return phase.modules[module_idx]

    # -------------------------------------------------------------------------
    # Conversation track
    # -------------------------------------------------------------------------

    def get_lesson_listings(self) -> list[LessonListing]:
        return list(self.curriculum.lesson_listings)

    def get_lesson_listing(self, lesson_id: int) -> Optional[LessonListing]:
        for listing in self.curriculum.lesson_listings:
            if listing.id == lesson_id:
                return listing
        return None

    def has_lesson(self, lesson_id: int) -> bool:
        return lesson_id in self._lessons

    def get_lesson(self, lesson_id: int) -> ConversationLesson:
        """
        Get a conversation lesson with its scenarios.

        Raises:
            ContentNotFound: If no content has been authored for the lesson
        """
        lesson = self._lessons.get(lesson_id)
        if lesson is None:
            raise ContentNotFound(f"Lesson not found: {lesson_id}")
        return lesson
