"""Role and department catalogs with their default capability sets."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from pathlib import Path

SUPER_ADMIN = "super_admin"
ADMIN = "admin"
PROJECT_MANAGER = "project_manager"
TEAM_LEAD = "team_lead"
DEVELOPER = "developer"
DESIGNER = "designer"
QA = "qa"
MARKETING = "marketing"
SALES = "sales"
HR = "hr"
MEMBER = "member"

ROLES: tuple[str, ...] = (
    SUPER_ADMIN,
    ADMIN,
    PROJECT_MANAGER,
    TEAM_LEAD,
    DEVELOPER,
    DESIGNER,
    QA,
    MARKETING,
    SALES,
    HR,
    MEMBER,
)

DEPARTMENTS: tuple[str, ...] = (
    "Engineering",
    "Design",
    "Product",
    "Marketing",
    "Sales",
    "Human Resources",
    "Operations",
)

ALL = "all"
FALLBACK_PERMISSIONS: frozenset[str] = frozenset({"view_assigned"})

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    SUPER_ADMIN: frozenset({ALL}),
    ADMIN: frozenset(
        {"manage_users", "manage_projects", "manage_settings", "view_reports"}
    ),
    PROJECT_MANAGER: frozenset({"manage_projects", "assign_tasks", "view_reports"}),
    TEAM_LEAD: frozenset({"manage_team", "assign_tasks", "view_team_reports"}),
    DEVELOPER: frozenset({"view_projects", "manage_tasks"}),
    DESIGNER: frozenset({"view_projects", "manage_tasks"}),
    QA: frozenset({"view_projects", "manage_tasks"}),
    MARKETING: frozenset({"view_projects", "manage_campaigns"}),
    SALES: frozenset({"view_projects", "manage_campaigns"}),
    HR: frozenset({"view_users", "manage_profiles"}),
}

# Which roles a user may hold while assigned to a department.
DEPARTMENT_ROLES: dict[str, frozenset[str]] = {
    "Engineering": frozenset(
        {PROJECT_MANAGER, TEAM_LEAD, DEVELOPER, QA, MEMBER}
    ),
    "Design": frozenset({PROJECT_MANAGER, TEAM_LEAD, DESIGNER, MEMBER}),
    "Product": frozenset({PROJECT_MANAGER, TEAM_LEAD, DESIGNER, MEMBER}),
    "Marketing": frozenset({TEAM_LEAD, MARKETING, MEMBER}),
    "Sales": frozenset({TEAM_LEAD, SALES, MEMBER}),
    "Human Resources": frozenset({TEAM_LEAD, HR, MEMBER}),
    "Operations": frozenset(
        {SUPER_ADMIN, ADMIN, PROJECT_MANAGER, TEAM_LEAD, MEMBER}
    ),
}


def default_permissions(role: str) -> frozenset[str]:
    """Return the capability set granted by ``role``.

    Roles outside the catalog receive the minimal ``view_assigned`` set.
    """
    return ROLE_PERMISSIONS.get(role, FALLBACK_PERMISSIONS)


def permissions_for_roles(roles: Iterable[str]) -> list[str]:
    """Union of the default capability sets of every role held."""
    granted: set[str] = set()
    for role in roles:
        granted |= default_permissions(role)
    return sorted(granted)


def has_permission(permissions: Iterable[str], token: str) -> bool:
    held = set(permissions)
    return ALL in held or token in held


def is_known_role(role: str) -> bool:
    return role in ROLES


def is_known_department(department: str | None) -> bool:
    return department in DEPARTMENTS


def load_department_roles(path: str | Path) -> dict[str, frozenset[str]]:
    """Read a department -> roles table from a JSON file.

    The file holds an object whose keys are department names and whose
    values are lists of role identifiers.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, Mapping):
        raise ValueError(f"{path}: expected a JSON object of department -> roles")
    return {str(dept): frozenset(str(r) for r in roles) for dept, roles in data.items()}
