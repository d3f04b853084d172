"""Directory operations exposed to the presentation layer.

:class:`OrgService` loads a fresh :class:`~orgdash.core.directory.Directory`
from the document store for every call, validates the requested change with
the eligibility rules and hierarchy manager, and writes the result back
through the store adaptor. Store and auth failures surface as
:class:`~orgdash.errors.UpstreamError` and are not retried here.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

import pydantic

from .adapters.base import SERVER_TIMESTAMP, TEAMS, USERS, AuthProvider, DocumentStore, Query
from .core.directory import Directory
from .core.eligibility import EligibilityRules
from .core.hierarchy import BulkReassignResult, HierarchyManager
from .core.models import Team, TeamCreate, User, UserCreate, UserUpdate
from .core.roles import permissions_for_roles
from .errors import NotFoundError, OrgDashError, ValidationError
from .session import Session

log = logging.getLogger("orgdash.service")

M = TypeVar("M", bound=pydantic.BaseModel)


def parse_payload(model: type[M], payload: M | Mapping[str, Any]) -> M:
    """Validate ``payload`` as ``model``, raising our :class:`ValidationError`."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(dict(payload))
    except pydantic.ValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(p) for p in first.get("loc", ())) or None
        raise ValidationError(
            f"{loc}: {first['msg']}" if loc else first["msg"], field=loc
        ) from exc


def _load_all(model: type[M], docs: Iterable[dict[str, Any]]) -> list[M]:
    records = []
    for doc in docs:
        try:
            records.append(model.model_validate(doc))
        except pydantic.ValidationError:
            log.warning("Skipping malformed %s document %s", model.__name__, doc.get("id"))
    return records


class OrgService:
    """Users, teams and the reporting hierarchy."""

    def __init__(
        self,
        store: DocumentStore,
        auth: AuthProvider,
        rules: EligibilityRules | None = None,
    ) -> None:
        self.store = store
        self.auth = auth
        self.rules = rules or EligibilityRules()

    # ------------------------------------------------------------------
    # Loading
    async def load_directory(self) -> Directory:
        user_docs, team_docs = await asyncio.gather(
            self.store.fetch(USERS, Query(order_by="createdAt", descending=True)),
            self.store.fetch(TEAMS, Query(order_by="createdAt", descending=True)),
        )
        return Directory(_load_all(User, user_docs), _load_all(Team, team_docs))

    async def _fetch_user(self, user_id: str) -> User:
        doc = await self.store.get(USERS, user_id)
        if doc is None:
            raise NotFoundError("user", user_id)
        return User.model_validate(doc)

    # ------------------------------------------------------------------
    # Users
    async def get_users(
        self,
        search: str = "",
        role: str | None = None,
        department: str | None = None,
    ) -> list[User]:
        """Users matching the filters, newest first."""
        directory = await self.load_directory()
        return directory.filter_users(search, role=role, department=department)

    async def get_users_by_role(self, role: str) -> list[User]:
        return await self.get_users(role=role)

    async def get_user(self, user_id: str) -> User:
        return await self._fetch_user(user_id)

    async def get_user_by_uid(self, uid: str) -> User | None:
        docs = await self.store.fetch(USERS, Query(where=("uid", uid), limit=1))
        users = _load_all(User, docs)
        return users[0] if users else None

    async def create_user(
        self, session: Session, payload: UserCreate | Mapping[str, Any]
    ) -> User:
        """Provision an auth identity and add the user to the directory."""
        data = parse_payload(UserCreate, payload)
        self.rules.validate_user_roles(data.roles, data.department)

        directory = await self.load_directory()
        email = data.email.lower()
        if any(u.email.lower() == email for u in directory.users.values()):
            raise ValidationError(f"{data.email} is already registered.", field="email")
        if data.reports_to is not None and directory.find_user(data.reports_to) is None:
            raise ValidationError(
                f"Superior {data.reports_to!r} does not exist.", field="reports_to"
            )

        override = data.permissions is not None
        user = User(
            email=data.email,
            full_name=data.full_name,
            roles=data.roles,
            department=data.department,
            status=data.status,
            permissions=(
                sorted(set(data.permissions))
                if data.permissions is not None
                else permissions_for_roles(data.roles)
            ),
            permissions_override=override,
            reports_to=data.reports_to,
            created_by=session.user_id,
        )

        user.uid = await self.auth.provision_identity(data.email, data.password)
        document = user.to_document()
        document["createdAt"] = SERVER_TIMESTAMP
        try:
            user_id = await self.store.insert(USERS, document)
        except OrgDashError:
            log.error(
                "Directory insert failed for %s; removing identity %s",
                data.email,
                user.uid,
            )
            try:
                await self.auth.remove_identity(user.uid)
            except OrgDashError:
                log.exception("Could not remove orphaned identity %s", user.uid)
            raise

        log.info("%s created user %s (%s)", session.user_id, user_id, data.email)
        return await self._fetch_user(user_id)

    async def update_user(
        self, session: Session, user_id: str, changes: UserUpdate | Mapping[str, Any]
    ) -> User:
        """Apply a partial update.

        Only keys present in ``changes`` are applied. A role change
        recomputes permissions unless they were explicitly overridden;
        supplying ``permissions`` sets an override, and an explicit
        ``permissions=None`` clears it again.
        """
        update = parse_payload(UserUpdate, changes)
        provided = update.model_fields_set
        directory = await self.load_directory()
        user = directory.find_user(user_id)
        if user is None:
            raise NotFoundError("user", user_id)

        fields: dict[str, Any] = {}
        if "full_name" in provided:
            if not update.full_name or not update.full_name.strip():
                raise ValidationError("Full name is required.", field="full_name")
            fields["fullName"] = update.full_name.strip()

        if "roles" in provided and not update.roles:
            raise ValidationError("At least one role is required.", field="roles")
        roles = update.roles if "roles" in provided and update.roles else user.roles
        department = update.department if "department" in provided else user.department
        if "roles" in provided or "department" in provided:
            self.rules.validate_user_roles(roles, department)
            fields["roles"] = roles
            fields["department"] = department

        if "permissions" in provided:
            if update.permissions is None:
                fields["permissions"] = permissions_for_roles(roles)
                fields["permissionsOverride"] = False
            else:
                fields["permissions"] = sorted(set(update.permissions))
                fields["permissionsOverride"] = True
        elif "roles" in provided and not user.permissions_override:
            fields["permissions"] = permissions_for_roles(roles)

        if "status" in provided and update.status is not None:
            fields["status"] = update.status
        if "active_projects" in provided and update.active_projects is not None:
            fields["activeProjects"] = update.active_projects

        if "reports_to" in provided:
            HierarchyManager(directory).set_reports_to(user_id, update.reports_to)
            fields["reportsTo"] = update.reports_to

        fields["updatedAt"] = SERVER_TIMESTAMP
        fields["updatedBy"] = session.user_id
        await self.store.update(USERS, user_id, fields)
        log.info(
            "%s updated user %s (%s)",
            session.user_id,
            user_id,
            ", ".join(sorted(k for k in fields if k not in {"updatedAt", "updatedBy"})),
        )
        return await self._fetch_user(user_id)

    async def delete_user(self, session: Session, user_id: str) -> None:
        """Remove the directory record and its auth identity.

        References held by other users and teams are left in place and
        resolve to ``"Unknown"`` when displayed.
        """
        user = await self._fetch_user(user_id)
        await self.store.delete(USERS, user_id)
        if user.uid:
            await self.auth.remove_identity(user.uid)
        log.info("%s deleted user %s (%s)", session.user_id, user_id, user.email)

    # ------------------------------------------------------------------
    # Teams
    async def create_team(
        self, session: Session, payload: TeamCreate | Mapping[str, Any]
    ) -> Team:
        data = parse_payload(TeamCreate, payload)
        directory = await self.load_directory()
        self.rules.validate_team(data, directory.users)

        team = Team(**data.model_dump(), created_by=session.user_id)
        document = team.to_document()
        document["createdAt"] = SERVER_TIMESTAMP
        team_id = await self.store.insert(TEAMS, document)
        log.info("%s created team %s (%s)", session.user_id, team_id, data.name)

        doc = await self.store.get(TEAMS, team_id)
        if doc is None:
            raise NotFoundError("team", team_id)
        return Team.model_validate(doc)

    async def get_teams(self) -> list[Team]:
        docs = await self.store.fetch(TEAMS, Query(order_by="createdAt", descending=True))
        return _load_all(Team, docs)

    # ------------------------------------------------------------------
    # Hierarchy
    def _hierarchy_fields(self, session: Session, superior_id: str | None) -> dict[str, Any]:
        return {
            "reportsTo": superior_id,
            "updatedAt": SERVER_TIMESTAMP,
            "updatedBy": session.user_id,
        }

    async def set_reports_to(
        self, session: Session, user_id: str, superior_id: str | None
    ) -> User:
        directory = await self.load_directory()
        HierarchyManager(directory).set_reports_to(user_id, superior_id)
        await self.store.update(USERS, user_id, self._hierarchy_fields(session, superior_id))
        log.info("%s set %s to report to %s", session.user_id, user_id, superior_id)
        return await self._fetch_user(user_id)

    async def bulk_reassign(
        self, session: Session, user_ids: Iterable[str], superior_id: str | None
    ) -> BulkReassignResult:
        """Reassign each user independently; report successes and failures by id.

        Validation runs against one directory snapshot, in input order, so
        assignments earlier in the batch are seen by later cycle checks. The
        accepted writes are then dispatched concurrently. There is no
        multi-document transaction: a write that fails moves its id from
        ``applied`` to ``rejected`` while the others stay committed.
        """
        directory = await self.load_directory()
        result = HierarchyManager(directory).bulk_reassign(user_ids, superior_id)

        accepted = sorted(result.applied)
        fields = self._hierarchy_fields(session, superior_id)
        outcomes = await asyncio.gather(
            *(self.store.update(USERS, uid, dict(fields)) for uid in accepted),
            return_exceptions=True,
        )
        for uid, outcome in zip(accepted, outcomes):
            if isinstance(outcome, OrgDashError):
                log.error("Failed to persist reassignment of %s: %s", uid, outcome)
                result.applied.discard(uid)
                result.rejected[uid] = str(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome

        log.info(
            "%s reassigned %d user(s) to %s, %d rejected",
            session.user_id,
            len(result.applied),
            superior_id,
            len(result.rejected),
        )
        return result

    async def superior_chain(self, user_id: str) -> list[User]:
        directory = await self.load_directory()
        if directory.find_user(user_id) is None:
            raise NotFoundError("user", user_id)
        return HierarchyManager(directory).superior_chain(user_id)
