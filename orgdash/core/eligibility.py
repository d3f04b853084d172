"""Department and team eligibility predicates."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from ..errors import ValidationError
from .models import Team, TeamCreate, User
from .roles import DEPARTMENT_ROLES, is_known_department, is_known_role


class EligibilityRules:
    """Eligibility checks over a department -> allowed roles table.

    The default table is :data:`orgdash.core.roles.DEPARTMENT_ROLES`; a
    different mapping may be supplied (see ``Settings.department_roles_path``).
    """

    def __init__(self, department_roles: Mapping[str, Iterable[str]] | None = None) -> None:
        table = DEPARTMENT_ROLES if department_roles is None else department_roles
        self.department_roles: dict[str, frozenset[str]] = {
            dept: frozenset(roles) for dept, roles in table.items()
        }

    def allowed_roles(self, department: str | None) -> frozenset[str]:
        if department is None:
            return frozenset()
        return self.department_roles.get(department, frozenset())

    def role_allowed_in_department(self, role: str, department: str | None) -> bool:
        return role in self.allowed_roles(department)

    @staticmethod
    def user_eligible_for_team(user: User, team: Team | TeamCreate) -> bool:
        if user.department is None or user.department != team.department:
            return False
        return bool(set(user.roles) & set(team.eligible_roles))

    def candidates_for_team(
        self, users: Iterable[User], team: Team | TeamCreate
    ) -> list[User]:
        """Users who could be picked as lead or member of ``team``."""
        return [u for u in users if self.user_eligible_for_team(u, team)]

    # ------------------------------------------------------------------
    # Payload validation
    def validate_user_roles(self, roles: Iterable[str], department: str | None) -> None:
        """Raise :class:`ValidationError` unless every role may be held in ``department``."""
        roles = list(roles)
        if not roles:
            raise ValidationError("At least one role is required.", field="roles")
        unknown = [r for r in roles if not is_known_role(r)]
        if unknown:
            raise ValidationError(
                f"Unknown role(s): {', '.join(unknown)}.", field="roles"
            )
        if department is None:
            raise ValidationError("Department is required.", field="department")
        if not is_known_department(department):
            raise ValidationError(
                f"Unknown department: {department}.", field="department"
            )
        refused = [r for r in roles if not self.role_allowed_in_department(r, department)]
        if refused:
            raise ValidationError(
                f"Role(s) {', '.join(refused)} not allowed in {department}.",
                field="roles",
            )

    def validate_team(self, team: TeamCreate, users: Mapping[str, User]) -> None:
        """Check a team payload against the users it references.

        ``users`` maps directory ids to users. Every reference must resolve
        and the lead and each member must be eligible for the team.
        """
        if team.department is None:
            raise ValidationError("Department is required.", field="department")
        if not is_known_department(team.department):
            raise ValidationError(
                f"Unknown department: {team.department}.", field="department"
            )
        if not team.eligible_roles:
            raise ValidationError(
                "Select at least one eligible role.", field="eligible_roles"
            )
        refused = [
            r
            for r in team.eligible_roles
            if not self.role_allowed_in_department(r, team.department)
        ]
        if refused:
            raise ValidationError(
                f"Role(s) {', '.join(refused)} not allowed in {team.department}.",
                field="eligible_roles",
            )
        if team.lead_id is None:
            raise ValidationError("A team lead is required.", field="lead_id")
        lead = users.get(team.lead_id)
        if lead is None:
            raise ValidationError(
                f"Team lead {team.lead_id!r} does not exist.", field="lead_id"
            )
        if not self.user_eligible_for_team(lead, team):
            raise ValidationError(
                f"{lead.full_name} is not eligible to lead this team.",
                field="lead_id",
            )
        for member_id in team.member_ids:
            member = users.get(member_id)
            if member is None:
                raise ValidationError(
                    f"Member {member_id!r} does not exist.", field="member_ids"
                )
            if not self.user_eligible_for_team(member, team):
                raise ValidationError(
                    f"{member.full_name} is not eligible for this team.",
                    field="member_ids",
                )


_DEFAULT_RULES = EligibilityRules()


def role_allowed_in_department(role: str, department: str | None) -> bool:
    return _DEFAULT_RULES.role_allowed_in_department(role, department)


def user_eligible_for_team(user: User, team: Team | TeamCreate) -> bool:
    return EligibilityRules.user_eligible_for_team(user, team)
