"""Tests for organization and ownership rules."""

from uuid import uuid4

import pytest

from learnflow.auth.access import (
    can_manage_course,
    can_view_course,
    ensure_enrollment_access,
    ensure_trainee,
)
from learnflow.auth.permissions import UserRole
from learnflow.auth.schemas import AuthenticatedUser
from learnflow.core.errors import ForbiddenError


class TestCanManageCourse:
    def test_admin_of_same_org(self, admin, course) -> None:
        assert can_manage_course(admin, course) is True

    def test_admin_of_other_org(self, other_org_id, course) -> None:
        outsider = AuthenticatedUser(
            id=uuid4(), role=UserRole.ADMIN, organization_id=other_org_id
        )
        assert can_manage_course(outsider, course) is False

    def test_named_instructor(self, instructor, course) -> None:
        assert can_manage_course(instructor, course) is True

    def test_other_instructor(self, other_instructor, course) -> None:
        assert can_manage_course(other_instructor, course) is False

    def test_trainee_never_manages(self, trainee, course) -> None:
        assert can_manage_course(trainee, course) is False


class TestCanViewCourse:
    def test_trainee_sees_own_org_course(self, trainee, course) -> None:
        assert can_view_course(trainee, course) is True

    def test_trainee_sees_public_course_of_other_org(
        self, trainee, make_course, other_org_id
    ) -> None:
        public = make_course(organization_id=other_org_id, is_public=True)
        private = make_course(organization_id=other_org_id)
        assert can_view_course(trainee, public) is True
        assert can_view_course(trainee, private) is False


def test_ensure_trainee_rejects_staff(instructor) -> None:
    with pytest.raises(ForbiddenError, match="Only trainees can submit"):
        ensure_trainee(instructor, "submit")


class TestEnsureEnrollmentAccess:
    def test_owner(self, trainee, enrollment, course) -> None:
        ensure_enrollment_access(trainee, enrollment, course)

    def test_other_trainee(self, other_trainee, enrollment, course) -> None:
        with pytest.raises(ForbiddenError):
            ensure_enrollment_access(other_trainee, enrollment, course)

    def test_course_instructor(self, instructor, enrollment, course) -> None:
        ensure_enrollment_access(instructor, enrollment, course)

    def test_unrelated_instructor(self, other_instructor, enrollment, course) -> None:
        with pytest.raises(ForbiddenError):
            ensure_enrollment_access(other_instructor, enrollment, course)
