"""Organization and ownership checks shared by the engine services.

Rules:
- Admins act on anything inside their organization.
- Instructors administer only courses where they are the named instructor.
- Trainees act only on their own enrollments and may see public courses of
  other organizations.
"""

from learnflow.catalog.models import Course
from learnflow.core.errors import ForbiddenError
from learnflow.enrollments.models import Enrollment

from .schemas import AuthenticatedUser


def can_manage_course(user: AuthenticatedUser, course: Course) -> bool:
    """Admin of the course's organization, or its named instructor."""
    if user.organization_id != course.organization_id:
        return False
    if user.is_admin:
        return True
    return user.is_instructor and course.instructor_id == user.id


def can_view_course(user: AuthenticatedUser, course: Course) -> bool:
    if user.is_trainee:
        return course.is_public or user.organization_id == course.organization_id
    return can_manage_course(user, course)


def ensure_course_manager(user: AuthenticatedUser, course: Course) -> None:
    if not can_manage_course(user, course):
        raise ForbiddenError("You do not have permission to manage this course")


def ensure_course_visible(user: AuthenticatedUser, course: Course) -> None:
    if not can_view_course(user, course):
        raise ForbiddenError("You do not have access to this course")


def ensure_trainee(user: AuthenticatedUser, action: str) -> None:
    if not user.is_trainee:
        raise ForbiddenError(f"Only trainees can {action}")


def ensure_enrollment_owner(user: AuthenticatedUser, enrollment: Enrollment) -> None:
    if enrollment.trainee_id != user.id:
        raise ForbiddenError("This enrollment belongs to another trainee")


def ensure_enrollment_access(
    user: AuthenticatedUser, enrollment: Enrollment, course: Course
) -> None:
    """Owner trainee, or a manager of the enrollment's course."""
    if user.is_trainee:
        ensure_enrollment_owner(user, enrollment)
    else:
        ensure_course_manager(user, course)
