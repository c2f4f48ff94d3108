"""Tests for auth permissions."""

import pytest

from learnflow.auth.permissions import (
    ROLE_HIERARCHY,
    UserRole,
    get_role_level,
    has_permission,
    is_staff,
)


class TestUserRole:
    """Tests for UserRole enum."""

    def test_role_values(self) -> None:
        """Roles should have correct string values."""
        assert UserRole.TRAINEE.value == "trainee"
        assert UserRole.INSTRUCTOR.value == "instructor"
        assert UserRole.ADMIN.value == "admin"

    def test_role_hierarchy(self) -> None:
        """Roles should have correct hierarchy levels."""
        assert ROLE_HIERARCHY[UserRole.TRAINEE] == 0
        assert ROLE_HIERARCHY[UserRole.INSTRUCTOR] == 1
        assert ROLE_HIERARCHY[UserRole.ADMIN] == 2

    def test_all_roles_have_levels(self) -> None:
        for role in UserRole:
            assert role in ROLE_HIERARCHY


class TestGetRoleLevel:
    """Tests for get_role_level function."""

    @pytest.mark.parametrize(
        "role,expected_level",
        [
            (UserRole.TRAINEE, 0),
            (UserRole.INSTRUCTOR, 1),
            (UserRole.ADMIN, 2),
            ("trainee", 0),
            ("instructor", 1),
            ("admin", 2),
        ],
    )
    def test_known_roles(self, role: UserRole | str, expected_level: int) -> None:
        assert get_role_level(role) == expected_level

    def test_unknown_role_ranks_below_trainee(self) -> None:
        """Unknown roles must not pass even a trainee-level check."""
        assert get_role_level("superadmin") == -1
        assert has_permission("superadmin", UserRole.TRAINEE) is False


class TestHasPermission:
    """Tests for has_permission function."""

    def test_admin_has_all_permissions(self) -> None:
        for role in UserRole:
            assert has_permission(UserRole.ADMIN, role) is True

    def test_instructor_permissions(self) -> None:
        assert has_permission(UserRole.INSTRUCTOR, UserRole.TRAINEE) is True
        assert has_permission(UserRole.INSTRUCTOR, UserRole.INSTRUCTOR) is True
        assert has_permission(UserRole.INSTRUCTOR, UserRole.ADMIN) is False

    def test_trainee_permissions(self) -> None:
        assert has_permission(UserRole.TRAINEE, UserRole.TRAINEE) is True
        assert has_permission(UserRole.TRAINEE, UserRole.INSTRUCTOR) is False

    def test_string_roles(self) -> None:
        assert has_permission("admin", "trainee") is True
        assert has_permission("trainee", "admin") is False


def test_is_staff() -> None:
    assert is_staff(UserRole.ADMIN) is True
    assert is_staff(UserRole.INSTRUCTOR) is True
    assert is_staff(UserRole.TRAINEE) is False
