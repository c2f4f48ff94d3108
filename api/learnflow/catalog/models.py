"""Catalog records read by the engine.

Cassandra table definitions for:
- Courses and their prerequisite links
- Modules (ordered within a course)
- Contents (ordered within a module)

Courses, modules and contents are written by the catalog CRUD service; the
engine only reads them, except for prerequisite links which it manages.
Modules and contents are dual-written: by id for point lookups and by parent
for ordered listing.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID


class CourseStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ContentType(str, Enum):
    VIDEO = "video"
    DOCUMENT = "document"
    TEXT = "text"
    LINK = "link"
    ASSIGNMENT = "assignment"


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def utcnow() -> datetime:
    return datetime.now(UTC)


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    organization_id UUID,
    instructor_id UUID,
    title TEXT,
    status TEXT,
    max_enrollments INT,
    is_public BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Adjacency list of the prerequisite graph, one partition per dependent course
COURSE_PREREQUISITES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_prerequisites (
    course_id UUID,
    prerequisite_course_id UUID,
    is_mandatory BOOLEAN,
    created_at TIMESTAMP,
    PRIMARY KEY (course_id, prerequisite_course_id)
)
"""

MODULES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules (
    id UUID PRIMARY KEY,
    course_id UUID,
    title TEXT,
    sort_order INT,
    is_required BOOLEAN
)
"""

MODULES_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules_by_course (
    course_id UUID,
    sort_order INT,
    id UUID,
    title TEXT,
    is_required BOOLEAN,
    PRIMARY KEY (course_id, sort_order, id)
) WITH CLUSTERING ORDER BY (sort_order ASC, id ASC)
"""

CONTENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.contents (
    id UUID PRIMARY KEY,
    module_id UUID,
    title TEXT,
    content_type TEXT,
    sort_order INT,
    is_required BOOLEAN
)
"""

CONTENTS_BY_MODULE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.contents_by_module (
    module_id UUID,
    sort_order INT,
    id UUID,
    title TEXT,
    content_type TEXT,
    is_required BOOLEAN,
    PRIMARY KEY (module_id, sort_order, id)
) WITH CLUSTERING ORDER BY (sort_order ASC, id ASC)
"""

CATALOG_TABLES_CQL = [
    COURSES_TABLE_CQL,
    COURSE_PREREQUISITES_TABLE_CQL,
    MODULES_TABLE_CQL,
    MODULES_BY_COURSE_TABLE_CQL,
    CONTENTS_TABLE_CQL,
    CONTENTS_BY_MODULE_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Course:
    """Course record owned by an organization.

    Attributes:
        id: Course UUID
        organization_id: Owning organization
        instructor_id: Named instructor (may be None)
        title: Display title
        status: draft, published or archived
        max_enrollments: Capacity in non-dropped enrollments (None = unbounded)
        is_public: Visible to trainees of other organizations
    """

    def __init__(
        self,
        id: UUID,
        organization_id: UUID,
        title: str,
        instructor_id: UUID | None = None,
        status: str = CourseStatus.DRAFT.value,
        max_enrollments: int | None = None,
        is_public: bool = False,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id
        self.organization_id = organization_id
        self.instructor_id = instructor_id
        self.title = title
        self.status = status
        self.max_enrollments = max_enrollments
        self.is_public = is_public
        self.created_at = ensure_utc_aware(created_at) or utcnow()
        self.updated_at = ensure_utc_aware(updated_at) or self.created_at

    @property
    def is_published(self) -> bool:
        return self.status == CourseStatus.PUBLISHED.value

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            id=row.id,
            organization_id=row.organization_id,
            instructor_id=row.instructor_id,
            title=row.title,
            status=row.status or CourseStatus.DRAFT.value,
            max_enrollments=row.max_enrollments,
            is_public=bool(row.is_public),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "instructor_id": self.instructor_id,
            "title": self.title,
            "status": self.status,
            "max_enrollments": self.max_enrollments,
            "is_public": self.is_public,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Course {self.id} {self.title!r} {self.status}>"


class Prerequisite:
    """Directed link: ``course_id`` requires ``prerequisite_course_id``."""

    def __init__(
        self,
        course_id: UUID,
        prerequisite_course_id: UUID,
        is_mandatory: bool = True,
        created_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.prerequisite_course_id = prerequisite_course_id
        self.is_mandatory = is_mandatory
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "Prerequisite":
        return cls(
            course_id=row.course_id,
            prerequisite_course_id=row.prerequisite_course_id,
            is_mandatory=row.is_mandatory if row.is_mandatory is not None else True,
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_id": self.course_id,
            "prerequisite_course_id": self.prerequisite_course_id,
            "is_mandatory": self.is_mandatory,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        kind = "mandatory" if self.is_mandatory else "optional"
        return f"<Prerequisite {self.course_id} -> {self.prerequisite_course_id} {kind}>"


class Module:
    """Ordered unit of a course."""

    def __init__(
        self,
        id: UUID,
        course_id: UUID,
        title: str,
        order: int = 0,
        is_required: bool = True,
    ):
        self.id = id
        self.course_id = course_id
        self.title = title
        self.order = order
        self.is_required = is_required

    @classmethod
    def from_row(cls, row: Any) -> "Module":
        return cls(
            id=row.id,
            course_id=row.course_id,
            title=row.title,
            order=row.sort_order or 0,
            is_required=row.is_required if row.is_required is not None else True,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "course_id": self.course_id,
            "title": self.title,
            "order": self.order,
            "is_required": self.is_required,
        }

    def __repr__(self) -> str:
        return f"<Module {self.id} #{self.order} course={self.course_id}>"


class Content:
    """Ordered item within a module."""

    def __init__(
        self,
        id: UUID,
        module_id: UUID,
        title: str,
        content_type: str = ContentType.TEXT.value,
        order: int = 0,
        is_required: bool = True,
    ):
        self.id = id
        self.module_id = module_id
        self.title = title
        self.content_type = content_type
        self.order = order
        self.is_required = is_required

    @classmethod
    def from_row(cls, row: Any) -> "Content":
        return cls(
            id=row.id,
            module_id=row.module_id,
            title=row.title,
            content_type=row.content_type or ContentType.TEXT.value,
            order=row.sort_order or 0,
            is_required=row.is_required if row.is_required is not None else True,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "module_id": self.module_id,
            "title": self.title,
            "content_type": self.content_type,
            "order": self.order,
            "is_required": self.is_required,
        }

    def __repr__(self) -> str:
        return f"<Content {self.id} #{self.order} {self.content_type}>"
