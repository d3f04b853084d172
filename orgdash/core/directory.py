"""In-memory snapshot of users and teams for one computation."""

from __future__ import annotations

from collections.abc import Iterable

from .models import Team, User

UNKNOWN = "Unknown"


class Directory:
    """Users and teams loaded from the store for a single operation.

    The directory is a working copy: it is rebuilt from the store for every
    request and never cached between calls.
    """

    def __init__(self, users: Iterable[User] = (), teams: Iterable[Team] = ()) -> None:
        # insertion order is the store's return order
        self.users: dict[str, User] = {u.id: u for u in users}
        self.teams: dict[str, Team] = {t.id: t for t in teams}

    def __len__(self) -> int:
        return len(self.users)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self.users

    # ------------------------------------------------------------------
    # Lookups
    def find_user(self, user_id: str | None) -> User | None:
        if user_id is None:
            return None
        return self.users.get(user_id)

    def find_user_by_uid(self, uid: str) -> User | None:
        return next((u for u in self.users.values() if u.uid == uid), None)

    def resolve_display_name(self, user_id: str | None) -> str:
        """Full name of ``user_id`` or ``"Unknown"`` when it does not resolve."""
        user = self.find_user(user_id)
        return user.full_name if user is not None else UNKNOWN

    def reports_to_name(self, user: User) -> str | None:
        """Display value for a user's superior; ``None`` if they have none."""
        if user.reports_to is None:
            return None
        return self.resolve_display_name(user.reports_to)

    def team_lead_name(self, team: Team) -> str:
        return self.resolve_display_name(team.lead_id)

    def users_by_department(self, department: str) -> list[User]:
        return [u for u in self.users.values() if u.department == department]

    def subordinates(self, user_id: str) -> list[User]:
        """Direct reports of ``user_id``."""
        return [u for u in self.users.values() if u.reports_to == user_id]

    def teams_for_user(self, user_id: str) -> list[Team]:
        return [
            t
            for t in self.teams.values()
            if t.lead_id == user_id or user_id in t.member_ids
        ]

    # ------------------------------------------------------------------
    # Filtering
    def filter_users(
        self,
        search_term: str = "",
        role: str | None = None,
        department: str | None = None,
    ) -> list[User]:
        """Return users matching all of the given criteria.

        ``search_term`` is a case-insensitive substring match over full name,
        email, role names and department; an empty term matches everyone.
        ``role`` and ``department`` are exact matches when given.
        """
        needle = search_term.strip().lower()
        result = []
        for user in self.users.values():
            if role and role not in user.roles:
                continue
            if department and user.department != department:
                continue
            if needle and not _matches(user, needle):
                continue
            result.append(user)
        return result


def _matches(user: User, needle: str) -> bool:
    haystack = [user.full_name, user.email, *user.roles]
    if user.department:
        haystack.append(user.department)
    return any(needle in value.lower() for value in haystack)
