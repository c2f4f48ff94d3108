"""Prerequisite resolution and link management.

A course may require other courses of the same organization. Only mandatory
links gate enrollment; optional links are informational. A prerequisite is
satisfied by a completed enrollment in the prerequisite course.

Links form a directed graph that is kept acyclic: a link that would close a
cycle is rejected when it is added.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnflow.auth.access import ensure_course_manager, ensure_course_visible
from learnflow.auth.schemas import AuthenticatedUser
from learnflow.catalog.models import Course, Prerequisite
from learnflow.core.errors import BadRequestError, ConflictError, NotFoundError


if TYPE_CHECKING:
    from learnflow.catalog.store import CatalogStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CourseRef:
    id: UUID
    title: str


@dataclass
class PrerequisiteCheck:
    satisfied: bool
    missing: list[CourseRef] = field(default_factory=list)


@dataclass
class PrerequisiteLink:
    """A link joined with the prerequisite course record (None if unloadable)."""

    link: Prerequisite
    course: Course | None


class PrerequisiteResolver:
    """Checks and maintains course prerequisite links."""

    def __init__(self, store: "CatalogStore"):
        self.store = store

    async def _require_course(self, course_id: UUID) -> Course:
        course = await self.store.get_course(course_id)
        if course is None:
            raise NotFoundError("Course not found", "course_not_found")
        return course

    # ==========================================================================
    # Gate
    # ==========================================================================

    async def check_prerequisites(
        self, course_id: UUID, trainee_id: UUID
    ) -> PrerequisiteCheck:
        """Check the trainee's completed courses against the mandatory links.

        Fails closed: a prerequisite whose course record cannot be loaded is
        reported as missing.
        """
        links = [
            link
            for link in await self.store.list_prerequisites(course_id)
            if link.is_mandatory
        ]
        if not links:
            return PrerequisiteCheck(satisfied=True)

        completed = {
            enrollment.course_id
            for enrollment in await self.store.list_trainee_enrollments(trainee_id)
            if enrollment.is_completed
        }

        missing: list[CourseRef] = []
        for link in links:
            prerequisite = await self.store.get_course(link.prerequisite_course_id)
            if prerequisite is None:
                logger.warning(
                    "prerequisite_course_missing",
                    course_id=str(course_id),
                    prerequisite_course_id=str(link.prerequisite_course_id),
                )
                missing.append(
                    CourseRef(link.prerequisite_course_id, str(link.prerequisite_course_id))
                )
            elif prerequisite.id not in completed:
                missing.append(CourseRef(prerequisite.id, prerequisite.title))

        return PrerequisiteCheck(satisfied=not missing, missing=missing)

    async def check_for_caller(
        self, course_id: UUID, caller: AuthenticatedUser
    ) -> PrerequisiteCheck:
        """Run the gate for the caller against a course they can see."""
        course = await self._require_course(course_id)
        ensure_course_visible(caller, course)
        return await self.check_prerequisites(course_id, caller.id)

    # ==========================================================================
    # Link management
    # ==========================================================================

    async def list_prerequisites(
        self, course_id: UUID, caller: AuthenticatedUser
    ) -> list[PrerequisiteLink]:
        course = await self._require_course(course_id)
        ensure_course_visible(caller, course)

        return [
            PrerequisiteLink(
                link=link,
                course=await self.store.get_course(link.prerequisite_course_id),
            )
            for link in await self.store.list_prerequisites(course_id)
        ]

    async def add_prerequisite(
        self,
        course_id: UUID,
        prerequisite_course_id: UUID,
        caller: AuthenticatedUser,
        is_mandatory: bool = True,
    ) -> PrerequisiteLink:
        """Link ``course_id`` to require ``prerequisite_course_id``.

        Raises:
            NotFoundError: Either course does not exist
            ForbiddenError: Caller cannot manage the course
            BadRequestError: Self-link, cross-organization link, or a cycle
            ConflictError: The link already exists
        """
        course = await self._require_course(course_id)
        ensure_course_manager(caller, course)

        if prerequisite_course_id == course_id:
            raise BadRequestError(
                "A course cannot be its own prerequisite", "self_prerequisite"
            )

        prerequisite = await self.store.get_course(prerequisite_course_id)
        if prerequisite is None:
            raise NotFoundError("Prerequisite course not found", "course_not_found")
        if prerequisite.organization_id != course.organization_id:
            raise BadRequestError(
                "Prerequisite course must belong to the same organization",
                "cross_organization_prerequisite",
            )

        if await self.store.get_prerequisite(course_id, prerequisite_course_id):
            raise ConflictError("Prerequisite already exists", "duplicate_prerequisite")

        if await self._reaches(prerequisite_course_id, course_id):
            raise BadRequestError(
                f"Adding {prerequisite.title!r} as a prerequisite would create a cycle",
                "prerequisite_cycle",
            )

        link = Prerequisite(
            course_id=course_id,
            prerequisite_course_id=prerequisite_course_id,
            is_mandatory=is_mandatory,
        )
        if not await self.store.add_prerequisite(link):
            raise ConflictError("Prerequisite already exists", "duplicate_prerequisite")

        logger.info(
            "prerequisite_added",
            course_id=str(course_id),
            prerequisite_course_id=str(prerequisite_course_id),
            is_mandatory=is_mandatory,
        )
        return PrerequisiteLink(link=link, course=prerequisite)

    async def remove_prerequisite(
        self,
        course_id: UUID,
        prerequisite_course_id: UUID,
        caller: AuthenticatedUser,
    ) -> None:
        course = await self._require_course(course_id)
        ensure_course_manager(caller, course)

        if not await self.store.get_prerequisite(course_id, prerequisite_course_id):
            raise NotFoundError("Prerequisite not found", "prerequisite_not_found")

        await self.store.remove_prerequisite(course_id, prerequisite_course_id)
        logger.info(
            "prerequisite_removed",
            course_id=str(course_id),
            prerequisite_course_id=str(prerequisite_course_id),
        )

    async def _reaches(self, start: UUID, target: UUID) -> bool:
        """Depth-first search along prerequisite links from ``start``.

        Both mandatory and optional links count: an optional link can be
        promoted later without re-validation.
        """
        stack = [start]
        seen: set[UUID] = set()
        while stack:
            current = stack.pop()
            if current == target:
                return True
            if current in seen:
                continue
            seen.add(current)
            stack.extend(
                link.prerequisite_course_id
                for link in await self.store.list_prerequisites(current)
            )
        return False
