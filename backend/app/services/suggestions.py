from __future__ import annotations

import abc
import logging

from app.schemas.class_section import ClassSectionOut
from app.schemas.teacher import TeacherOut
from app.schemas.timetable import ProposedBaseEntry

logger = logging.getLogger(__name__)


class SuggestionProvider(abc.ABC):
    """Advisory base-schedule proposals. Results are shown to the operator and never saved here."""

    name: str = "abstract"

    @abc.abstractmethod
    async def suggest_base_schedule(
        self,
        teachers: list[TeacherOut],
        classes: list[ClassSectionOut],
    ) -> list[ProposedBaseEntry]: ...


class DisabledSuggestionProvider(SuggestionProvider):
    name = "disabled"

    async def suggest_base_schedule(
        self,
        teachers: list[TeacherOut],
        classes: list[ClassSectionOut],
    ) -> list[ProposedBaseEntry]:
        logger.debug("Suggestion provider disabled; %d teachers, %d classes ignored", len(teachers), len(classes))
        return []
