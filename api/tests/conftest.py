"""Shared fixtures: in-memory catalog store, callers, services and HTTP client."""

import copy
import os
import tempfile
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from uuid import UUID, uuid4


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="learnflow-logs-"))
os.environ.setdefault("LOG_REQUESTS", "false")

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from learnflow.assessments.models import Assessment, AssessmentAttempt
from learnflow.assignments.models import Assignment, AssignmentSubmission
from learnflow.auth.permissions import UserRole
from learnflow.auth.schemas import AuthenticatedUser
from learnflow.catalog.models import Content, Course, CourseStatus, Module, Prerequisite
from learnflow.config import get_settings
from learnflow.enrollments.models import Enrollment, EnrollmentStatus
from learnflow.main import create_app, install_services
from learnflow.progress.models import Progress, ProgressKey


class FakeCatalogStore:
    """Async in-memory stand-in for ``CatalogStore``.

    Reads hand out copies so that services mutating a loaded entity do not
    touch stored state until they write it back, as with Cassandra rows.
    """

    def __init__(self) -> None:
        self.courses: dict[UUID, Course] = {}
        self.modules: dict[UUID, Module] = {}
        self.contents: dict[UUID, Content] = {}
        self.prerequisites: dict[tuple[UUID, UUID], Prerequisite] = {}
        self.enrollments: dict[UUID, Enrollment] = {}
        self.progress: dict[tuple[UUID, ProgressKey], Progress] = {}
        self.assessments: dict[UUID, Assessment] = {}
        self.attempts: dict[tuple[UUID, UUID, int], AssessmentAttempt] = {}
        self.assignments: dict[UUID, Assignment] = {}
        self.submissions: dict[tuple[UUID, UUID], AssignmentSubmission] = {}

    # Seeding helpers

    def add_course(self, course: Course) -> Course:
        self.courses[course.id] = course
        return course

    def add_module(self, module: Module) -> Module:
        self.modules[module.id] = module
        return module

    def add_content(self, content: Content) -> Content:
        self.contents[content.id] = content
        return content

    def add_assessment(self, assessment: Assessment) -> Assessment:
        self.assessments[assessment.id] = assessment
        return assessment

    def add_assignment(self, assignment: Assignment) -> Assignment:
        self.assignments[assignment.id] = assignment
        return assignment

    def add_enrollment(self, enrollment: Enrollment) -> Enrollment:
        self.enrollments[enrollment.id] = enrollment
        return enrollment

    # Catalog

    async def get_course(self, course_id: UUID) -> Course | None:
        return copy.deepcopy(self.courses.get(course_id))

    async def get_module(self, module_id: UUID) -> Module | None:
        return copy.deepcopy(self.modules.get(module_id))

    async def list_course_modules(self, course_id: UUID) -> list[Module]:
        modules = [m for m in self.modules.values() if m.course_id == course_id]
        return copy.deepcopy(sorted(modules, key=lambda m: m.order))

    async def get_content(self, content_id: UUID) -> Content | None:
        return copy.deepcopy(self.contents.get(content_id))

    async def list_module_contents(self, module_id: UUID) -> list[Content]:
        contents = [c for c in self.contents.values() if c.module_id == module_id]
        return copy.deepcopy(sorted(contents, key=lambda c: c.order))

    # Prerequisites

    async def list_prerequisites(self, course_id: UUID) -> list[Prerequisite]:
        return [
            copy.deepcopy(link)
            for (owner, _), link in self.prerequisites.items()
            if owner == course_id
        ]

    async def get_prerequisite(
        self, course_id: UUID, prerequisite_course_id: UUID
    ) -> Prerequisite | None:
        return copy.deepcopy(self.prerequisites.get((course_id, prerequisite_course_id)))

    async def add_prerequisite(self, link: Prerequisite) -> bool:
        key = (link.course_id, link.prerequisite_course_id)
        if key in self.prerequisites:
            return False
        self.prerequisites[key] = copy.deepcopy(link)
        return True

    async def remove_prerequisite(
        self, course_id: UUID, prerequisite_course_id: UUID
    ) -> None:
        self.prerequisites.pop((course_id, prerequisite_course_id), None)

    # Enrollments

    async def get_enrollment(self, enrollment_id: UUID) -> Enrollment | None:
        return copy.deepcopy(self.enrollments.get(enrollment_id))

    async def find_enrollment(
        self, course_id: UUID, trainee_id: UUID
    ) -> Enrollment | None:
        for enrollment in self.enrollments.values():
            if enrollment.course_id == course_id and enrollment.trainee_id == trainee_id:
                return copy.deepcopy(enrollment)
        return None

    async def list_course_enrollments(self, course_id: UUID) -> list[Enrollment]:
        return [
            copy.deepcopy(e) for e in self.enrollments.values() if e.course_id == course_id
        ]

    async def list_trainee_enrollments(self, trainee_id: UUID) -> list[Enrollment]:
        return [
            copy.deepcopy(e)
            for e in self.enrollments.values()
            if e.trainee_id == trainee_id
        ]

    async def create_enrollment(self, enrollment: Enrollment) -> bool:
        if await self.find_enrollment(enrollment.course_id, enrollment.trainee_id):
            return False
        self.enrollments[enrollment.id] = copy.deepcopy(enrollment)
        return True

    async def reactivate_enrollment(self, enrollment: Enrollment) -> bool:
        stored = self.enrollments.get(enrollment.id)
        if stored is None or stored.status != EnrollmentStatus.DROPPED.value:
            return False
        self.enrollments[enrollment.id] = copy.deepcopy(enrollment)
        return True

    async def update_enrollment_progress(self, enrollment: Enrollment) -> None:
        stored = self.enrollments[enrollment.id]
        stored.progress_percentage = enrollment.progress_percentage
        stored.updated_at = enrollment.updated_at

    async def update_enrollment_due_date(self, enrollment: Enrollment) -> None:
        stored = self.enrollments[enrollment.id]
        stored.due_date = enrollment.due_date
        stored.updated_at = enrollment.updated_at

    async def transition_enrollment(
        self,
        enrollment: Enrollment,
        status: str,
        completed_at: datetime | None,
        updated_at: datetime,
    ) -> bool:
        stored = self.enrollments.get(enrollment.id)
        if stored is None or stored.status != enrollment.status:
            return False
        stored.status = status
        stored.completed_at = completed_at
        stored.updated_at = updated_at
        return True

    # Progress ledger

    async def get_progress(
        self, enrollment_id: UUID, key: ProgressKey
    ) -> Progress | None:
        return copy.deepcopy(self.progress.get((enrollment_id, key)))

    async def list_progress(self, enrollment_id: UUID) -> list[Progress]:
        return [
            copy.deepcopy(row)
            for (owner, _), row in self.progress.items()
            if owner == enrollment_id
        ]

    async def save_progress(self, progress: Progress) -> None:
        self.progress[(progress.enrollment_id, progress.key)] = copy.deepcopy(progress)

    # Assessments

    async def get_assessment(self, assessment_id: UUID) -> Assessment | None:
        return copy.deepcopy(self.assessments.get(assessment_id))

    async def count_attempts(self, enrollment_id: UUID, assessment_id: UUID) -> int:
        return sum(
            1
            for (enrollment, assessment, _) in self.attempts
            if enrollment == enrollment_id and assessment == assessment_id
        )

    async def list_attempts(
        self, enrollment_id: UUID, assessment_id: UUID | None = None
    ) -> list[AssessmentAttempt]:
        return [
            copy.deepcopy(attempt)
            for (enrollment, assessment, _), attempt in sorted(
                self.attempts.items(), key=lambda item: item[0][2]
            )
            if enrollment == enrollment_id
            and (assessment_id is None or assessment == assessment_id)
        ]

    async def get_attempt(self, attempt_id: UUID) -> AssessmentAttempt | None:
        for attempt in self.attempts.values():
            if attempt.id == attempt_id:
                return copy.deepcopy(attempt)
        return None

    async def create_attempt(self, attempt: AssessmentAttempt) -> bool:
        key = (attempt.enrollment_id, attempt.assessment_id, attempt.attempt_number)
        if key in self.attempts:
            return False
        self.attempts[key] = copy.deepcopy(attempt)
        return True

    # Assignments

    async def get_assignment(self, assignment_id: UUID) -> Assignment | None:
        return copy.deepcopy(self.assignments.get(assignment_id))

    async def find_submission(
        self, assignment_id: UUID, enrollment_id: UUID
    ) -> AssignmentSubmission | None:
        return copy.deepcopy(self.submissions.get((assignment_id, enrollment_id)))

    async def get_submission(self, submission_id: UUID) -> AssignmentSubmission | None:
        for submission in self.submissions.values():
            if submission.id == submission_id:
                return copy.deepcopy(submission)
        return None

    async def list_submissions(self, assignment_id: UUID) -> list[AssignmentSubmission]:
        return [
            copy.deepcopy(s)
            for (assignment, _), s in self.submissions.items()
            if assignment == assignment_id
        ]

    async def create_submission(self, submission: AssignmentSubmission) -> bool:
        key = (submission.assignment_id, submission.enrollment_id)
        if key in self.submissions:
            return False
        self.submissions[key] = copy.deepcopy(submission)
        return True

    async def save_grade(self, submission: AssignmentSubmission) -> None:
        self.submissions[(submission.assignment_id, submission.enrollment_id)] = (
            copy.deepcopy(submission)
        )


# ==============================================================================
# Callers
# ==============================================================================


@pytest.fixture
def org_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_org_id() -> UUID:
    return uuid4()


@pytest.fixture
def admin(org_id: UUID) -> AuthenticatedUser:
    return AuthenticatedUser(id=uuid4(), role=UserRole.ADMIN, organization_id=org_id)


@pytest.fixture
def instructor(org_id: UUID) -> AuthenticatedUser:
    return AuthenticatedUser(
        id=uuid4(), role=UserRole.INSTRUCTOR, organization_id=org_id
    )


@pytest.fixture
def other_instructor(org_id: UUID) -> AuthenticatedUser:
    """Instructor of the same organization who does not teach the course."""
    return AuthenticatedUser(
        id=uuid4(), role=UserRole.INSTRUCTOR, organization_id=org_id
    )


@pytest.fixture
def trainee(org_id: UUID) -> AuthenticatedUser:
    return AuthenticatedUser(id=uuid4(), role=UserRole.TRAINEE, organization_id=org_id)


@pytest.fixture
def other_trainee(org_id: UUID) -> AuthenticatedUser:
    return AuthenticatedUser(id=uuid4(), role=UserRole.TRAINEE, organization_id=org_id)


# ==============================================================================
# Catalog
# ==============================================================================


@pytest.fixture
def store() -> FakeCatalogStore:
    return FakeCatalogStore()


@pytest.fixture
def make_course(store: FakeCatalogStore, org_id: UUID, instructor: AuthenticatedUser):
    """Factory for published courses taught by ``instructor``."""

    def _make(
        title: str = "Pharmacology 101",
        status: str = CourseStatus.PUBLISHED.value,
        organization_id: UUID | None = None,
        max_enrollments: int | None = None,
        is_public: bool = False,
    ) -> Course:
        return store.add_course(
            Course(
                id=uuid4(),
                organization_id=organization_id or org_id,
                instructor_id=instructor.id,
                title=title,
                status=status,
                max_enrollments=max_enrollments,
                is_public=is_public,
            )
        )

    return _make


@pytest.fixture
def course(make_course) -> Course:
    return make_course()


@pytest.fixture
def module(store: FakeCatalogStore, course: Course) -> Module:
    return store.add_module(Module(id=uuid4(), course_id=course.id, title="Basics", order=1))


@pytest.fixture
def content(store: FakeCatalogStore, module: Module) -> Content:
    return store.add_content(
        Content(id=uuid4(), module_id=module.id, title="Intro video", content_type="video")
    )


@pytest.fixture
def make_enrollment(store: FakeCatalogStore):
    """Factory for stored enrollments."""

    def _make(
        course: Course,
        trainee_id: UUID,
        status: str = EnrollmentStatus.ENROLLED.value,
        created_at: datetime | None = None,
    ) -> Enrollment:
        return store.add_enrollment(
            Enrollment(
                id=uuid4(),
                course_id=course.id,
                trainee_id=trainee_id,
                status=status,
                created_at=created_at,
            )
        )

    return _make


@pytest.fixture
def enrollment(make_enrollment, course: Course, trainee: AuthenticatedUser) -> Enrollment:
    return make_enrollment(course, trainee.id)


# ==============================================================================
# Services and HTTP
# ==============================================================================


@pytest.fixture
def engine(store: FakeCatalogStore) -> SimpleNamespace:
    """All engine services wired over the fake store."""
    state = SimpleNamespace()
    install_services(state, store)
    return state


@pytest.fixture
def client(store: FakeCatalogStore) -> TestClient:
    """Client without lifespan: no Cassandra, services over the fake store."""
    app = create_app()
    install_services(app.state, store)
    return TestClient(app)


@pytest.fixture
def bare_client() -> TestClient:
    """Client with no services installed."""
    return TestClient(create_app())


@pytest.fixture
def token_for() -> Callable[..., str]:
    """Issue access tokens the way the identity service does."""
    settings = get_settings()

    def _token(
        user: AuthenticatedUser,
        token_type: str = "access",
        expires_in: timedelta = timedelta(minutes=15),
    ) -> str:
        now = datetime.now(UTC)
        claims = {
            "sub": str(user.id),
            "role": user.role.value,
            "org": str(user.organization_id),
            "type": token_type,
            "iat": now,
            "exp": now + expires_in,
        }
        return jwt.encode(claims, settings.auth_secret_key, algorithm=settings.auth_algorithm)

    return _token


@pytest.fixture
def auth_headers(token_for) -> Callable[[AuthenticatedUser], dict[str, str]]:
    def _headers(user: AuthenticatedUser) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(user)}"}

    return _headers
