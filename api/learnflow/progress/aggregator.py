"""Progress ledger writes and the weighted enrollment rollup.

Rollup:

    module_progress  = completed_modules / total_modules            (0 if none)
    content_progress = completed_required / total_required_content  (0 if none)
    overall          = (module_progress * MODULE_WEIGHT
                        + content_progress * CONTENT_WEIGHT) * 100

A module counts as completed only through its module-level ledger row, and
that row is written once all of the module's required content is completed.
Content completion therefore counts twice: directly through
``CONTENT_WEIGHT`` and again through the module it completes. Clients plot
this exact curve, so the weights must not be renormalized.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_DOWN, Decimal
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnflow.catalog.models import Content, Module
from learnflow.core.errors import BadRequestError, NotFoundError
from learnflow.enrollments.models import Enrollment

from .models import ContentLevel, ModuleLevel, Progress, ProgressKey, ProgressStatus


if TYPE_CHECKING:
    from learnflow.catalog.store import CatalogStore

logger = structlog.get_logger(__name__)

MODULE_WEIGHT = Decimal("0.7")
CONTENT_WEIGHT = Decimal("0.3")

HUNDRED = Decimal(100)
_CENT = Decimal("0.01")


@dataclass(frozen=True)
class ProgressRollup:
    completed_modules: int
    total_modules: int
    completed_content: int
    total_content: int
    progress_percentage: Decimal

    @property
    def is_complete(self) -> bool:
        """Every module and every required content item is completed."""
        return (
            self.total_modules > 0
            and self.completed_modules == self.total_modules
            and self.total_content > 0
            and self.completed_content == self.total_content
        )


def compute_rollup(
    modules: list[Module],
    contents: dict[UUID, list[Content]],
    ledger: list[Progress],
) -> ProgressRollup:
    """Weighted rollup of one enrollment's ledger.

    Args:
        modules: All modules of the course.
        contents: Contents per module id.
        ledger: Every progress row of the enrollment.

    Returns:
        Rollup with the percentage truncated to two decimals and clamped to
        [0, 100].
    """
    completed_keys = {row.key for row in ledger if row.is_completed}

    completed_modules = sum(
        1 for module in modules if ModuleLevel(module.id) in completed_keys
    )
    required = [
        ContentLevel(module.id, content.id)
        for module in modules
        for content in contents.get(module.id, [])
        if content.is_required
    ]
    completed_content = sum(1 for key in required if key in completed_keys)

    module_progress = (
        Decimal(completed_modules) / Decimal(len(modules)) if modules else Decimal(0)
    )
    content_progress = (
        Decimal(completed_content) / Decimal(len(required)) if required else Decimal(0)
    )
    overall = (module_progress * MODULE_WEIGHT + content_progress * CONTENT_WEIGHT) * HUNDRED
    overall = min(max(overall, Decimal(0)), HUNDRED).quantize(_CENT, rounding=ROUND_DOWN)

    return ProgressRollup(
        completed_modules=completed_modules,
        total_modules=len(modules),
        completed_content=completed_content,
        total_content=len(required),
        progress_percentage=overall,
    )


class ProgressAggregator:
    """Writes ledger rows and computes rollups."""

    def __init__(self, store: "CatalogStore"):
        self.store = store

    async def _resolve_key(
        self, enrollment: Enrollment, module_id: UUID, content_id: UUID | None
    ) -> ProgressKey:
        """Validate the module/content cross references of an update."""
        module = await self.store.get_module(module_id)
        if module is None:
            raise NotFoundError("Module not found", "module_not_found")
        if module.course_id != enrollment.course_id:
            raise BadRequestError(
                "Module does not belong to the enrolled course", "module_mismatch"
            )
        if content_id is None:
            return ModuleLevel(module_id)

        content = await self.store.get_content(content_id)
        if content is None:
            raise NotFoundError("Content not found", "content_not_found")
        if content.module_id != module_id:
            raise BadRequestError(
                "Content does not belong to the specified module", "content_mismatch"
            )
        return ContentLevel(module_id, content_id)

    async def _upsert(
        self,
        enrollment_id: UUID,
        key: ProgressKey,
        status: ProgressStatus,
        progress_percentage: Decimal,
        time_spent: int | None = None,
        content_data: str | None = None,
    ) -> Progress:
        now = datetime.now(UTC)
        started = status != ProgressStatus.NOT_STARTED
        completed = status == ProgressStatus.COMPLETED

        row = await self.store.get_progress(enrollment_id, key)
        if row is None:
            row = Progress(
                enrollment_id=enrollment_id,
                key=key,
                status=status.value,
                progress_percentage=progress_percentage,
                time_spent=time_spent or 0,
                content_data=content_data,
                started_at=now if started else None,
                completed_at=now if completed else None,
                last_accessed_at=now,
            )
        else:
            row.status = status.value
            row.progress_percentage = progress_percentage
            row.time_spent += time_spent or 0
            if content_data is not None:
                row.content_data = content_data
            if started and row.started_at is None:
                row.started_at = now
            if completed and row.completed_at is None:
                row.completed_at = now
            row.last_accessed_at = now

        await self.store.save_progress(row)
        return row

    async def record_progress(
        self,
        enrollment: Enrollment,
        module_id: UUID,
        content_id: UUID | None,
        status: ProgressStatus,
        progress_percentage: Decimal,
        time_spent: int | None = None,
    ) -> Progress:
        """Upsert the ledger row for a module or a content item.

        ``time_spent`` is added to the stored value; it only sets the value
        when the row is created.
        """
        key = await self._resolve_key(enrollment, module_id, content_id)
        row = await self._upsert(
            enrollment.id, key, status, progress_percentage, time_spent
        )
        logger.debug(
            "progress_recorded",
            enrollment_id=str(enrollment.id),
            module_id=str(module_id),
            content_id=str(content_id) if content_id else None,
            status=row.status,
            time_spent=row.time_spent,
        )
        return row

    async def complete_content(
        self,
        enrollment: Enrollment,
        module_id: UUID,
        content_id: UUID,
        time_spent: int | None = None,
        content_data: str | None = None,
    ) -> Progress:
        """Mark a content item completed, then try to complete its module."""
        key = await self._resolve_key(enrollment, module_id, content_id)
        row = await self._upsert(
            enrollment.id,
            key,
            ProgressStatus.COMPLETED,
            HUNDRED,
            time_spent,
            content_data,
        )
        logger.info(
            "content_completed",
            enrollment_id=str(enrollment.id),
            module_id=str(module_id),
            content_id=str(content_id),
        )
        await self.check_module_completion(enrollment.id, module_id)
        return row

    async def check_module_completion(self, enrollment_id: UUID, module_id: UUID) -> bool:
        """Complete the module if every required content item is completed.

        A module with no required content is eligible immediately.

        Returns:
            True if the module-level row is completed after the check.
        """
        required = {
            content.id
            for content in await self.store.list_module_contents(module_id)
            if content.is_required
        }
        done = {
            row.content_id
            for row in await self.store.list_progress(enrollment_id)
            if row.module_id == module_id and row.content_id and row.is_completed
        }
        if required - done:
            return False

        await self._upsert(
            enrollment_id, ModuleLevel(module_id), ProgressStatus.COMPLETED, HUNDRED
        )
        logger.info(
            "module_completed",
            enrollment_id=str(enrollment_id),
            module_id=str(module_id),
            required_content=len(required),
        )
        return True

    async def calculate_enrollment_progress(self, enrollment: Enrollment) -> ProgressRollup:
        """Snapshot the course structure and ledger, then roll up."""
        modules = await self.store.list_course_modules(enrollment.course_id)
        contents = {
            module.id: await self.store.list_module_contents(module.id)
            for module in modules
        }
        ledger = await self.store.list_progress(enrollment.id)
        return compute_rollup(modules, contents, ledger)

    async def get_enrollment_progress(
        self,
        enrollment_id: UUID,
        module_id: UUID | None = None,
        content_id: UUID | None = None,
    ) -> list[Progress]:
        rows = await self.store.list_progress(enrollment_id)
        if module_id is not None:
            rows = [row for row in rows if row.module_id == module_id]
        if content_id is not None:
            rows = [row for row in rows if row.content_id == content_id]
        return rows
