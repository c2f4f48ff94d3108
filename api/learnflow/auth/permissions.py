"""Role-based access control for LearnFlow.

Hierarchical roles:
- ADMIN (level 2): Full access within the organization
- INSTRUCTOR (level 1): Administers the courses they are named instructor of
- TRAINEE (level 0): Enrolls in courses, consumes content, submits work
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles with hierarchical levels."""

    TRAINEE = "trainee"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.TRAINEE: 0,
    UserRole.INSTRUCTOR: 1,
    UserRole.ADMIN: 2,
}


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role; unknown roles get -1."""
    if isinstance(role, str):
        try:
            role = UserRole(role)
        except ValueError:
            return -1
    return ROLE_HIERARCHY.get(role, -1)


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.INSTRUCTOR)
        True
        >>> has_permission("trainee", "instructor")
        False
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_admin(role: UserRole | str) -> bool:
    return role == UserRole.ADMIN


def is_instructor(role: UserRole | str) -> bool:
    return role == UserRole.INSTRUCTOR


def is_trainee(role: UserRole | str) -> bool:
    return role == UserRole.TRAINEE


def is_staff(role: UserRole | str) -> bool:
    """ADMIN or INSTRUCTOR."""
    return has_permission(role, UserRole.INSTRUCTOR)
