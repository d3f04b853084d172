import asyncio
from pathlib import Path

import pytest

from orgdash.adapters.base import AuthProvider
from orgdash.adapters.json_store import JSONDocumentStore
from orgdash.errors import CycleError, NotFoundError, UpstreamError, ValidationError
from orgdash.service import OrgService
from orgdash.session import Session

ADMIN = Session(user_id="admin-uid", email="admin@example.com")


class FakeAuth(AuthProvider):
    def __init__(self) -> None:
        self.identities: dict[str, str] = {}
        self.removed: list[str] = []

    async def provision_identity(self, email: str, password: str) -> str:
        uid = f"uid-{len(self.identities) + 1}"
        self.identities[uid] = email
        return uid

    async def remove_identity(self, uid: str) -> None:
        self.removed.append(uid)
        self.identities.pop(uid, None)


class FailingInsertStore(JSONDocumentStore):
    async def insert(self, collection, data):
        raise UpstreamError("store offline")


def make_service(tmp_path: Path) -> tuple[OrgService, FakeAuth]:
    auth = FakeAuth()
    return OrgService(JSONDocumentStore(tmp_path / "data.json"), auth), auth


def user_payload(name: str, **extra) -> dict:
    payload = {
        "email": f"{name.lower()}@example.com",
        "password": "pw",
        "fullName": name,
        "roles": ["developer"],
        "department": "Engineering",
    }
    payload.update(extra)
    return payload


def test_create_user_derives_permissions(tmp_path: Path) -> None:
    service, auth = make_service(tmp_path)
    user = asyncio.run(service.create_user(ADMIN, user_payload("Ada", roles=["developer", "team_lead"])))

    assert user.id
    assert user.uid in auth.identities
    assert user.roles == ["developer", "team_lead"]
    assert "manage_team" in user.permissions and "manage_tasks" in user.permissions
    assert user.permissions_override is False
    assert user.created_by == ADMIN.user_id
    assert user.created_at is not None


def test_create_user_accepts_legacy_single_role(tmp_path: Path) -> None:
    service, _ = make_service(tmp_path)
    payload = user_payload("Ada")
    del payload["roles"]
    payload["role"] = "qa"
    user = asyncio.run(service.create_user(ADMIN, payload))
    assert user.roles == ["qa"]


@pytest.mark.parametrize(
    "extra",
    [
        {"roles": ["sales"]},
        {"roles": []},
        {"department": None},
        {"department": "Moon Base"},
        {"fullName": ""},
        {"reportsTo": "nobody"},
        {"status": "archived"},
    ],
)
def test_create_user_validation(tmp_path: Path, extra: dict) -> None:
    service, auth = make_service(tmp_path)
    with pytest.raises(ValidationError):
        asyncio.run(service.create_user(ADMIN, user_payload("Ada", **extra)))
    assert auth.identities == {}


def test_create_user_rejects_duplicate_email(tmp_path: Path) -> None:
    service, _ = make_service(tmp_path)
    asyncio.run(service.create_user(ADMIN, user_payload("Ada")))
    with pytest.raises(ValidationError) as err:
        asyncio.run(service.create_user(ADMIN, user_payload("ADA")))
    assert err.value.field == "email"


def test_create_user_rolls_back_identity_on_store_failure(tmp_path: Path) -> None:
    auth = FakeAuth()
    service = OrgService(FailingInsertStore(tmp_path / "data.json"), auth)
    with pytest.raises(UpstreamError):
        asyncio.run(service.create_user(ADMIN, user_payload("Ada")))
    assert auth.removed == ["uid-1"]
    assert auth.identities == {}


def test_update_user_role_change_recomputes_permissions(tmp_path: Path) -> None:
    service, _ = make_service(tmp_path)

    async def scenario():
        user = await service.create_user(ADMIN, user_payload("Ada"))
        return await service.update_user(ADMIN, user.id, {"roles": ["qa", "team_lead"]})

    updated = asyncio.run(scenario())
    assert updated.roles == ["qa", "team_lead"]
    assert "manage_team" in updated.permissions
    assert updated.updated_by == ADMIN.user_id


def test_explicit_permissions_survive_role_change(tmp_path: Path) -> None:
    service, _ = make_service(tmp_path)

    async def scenario():
        user = await service.create_user(ADMIN, user_payload("Ada"))
        await service.update_user(ADMIN, user.id, {"permissions": ["view_reports"]})
        kept = await service.update_user(ADMIN, user.id, {"roles": ["team_lead"]})
        reset = await service.update_user(ADMIN, user.id, {"permissions": None})
        return kept, reset

    kept, reset = asyncio.run(scenario())
    assert kept.permissions == ["view_reports"]
    assert kept.permissions_override is True
    assert reset.permissions_override is False
    assert "manage_team" in reset.permissions


def test_update_user_validates_department_roles(tmp_path: Path) -> None:
    service, _ = make_service(tmp_path)
    user = asyncio.run(service.create_user(ADMIN, user_payload("Ada")))
    with pytest.raises(ValidationError):
        asyncio.run(service.update_user(ADMIN, user.id, {"department": "Sales"}))


def test_update_and_delete_missing_user(tmp_path: Path) -> None:
    service, _ = make_service(tmp_path)
    with pytest.raises(NotFoundError):
        asyncio.run(service.update_user(ADMIN, "ghost", {"fullName": "X"}))
    with pytest.raises(NotFoundError):
        asyncio.run(service.delete_user(ADMIN, "ghost"))


def test_delete_user_removes_identity_and_leaves_references(tmp_path: Path) -> None:
    service, auth = make_service(tmp_path)

    async def scenario():
        boss = await service.create_user(ADMIN, user_payload("Boss"))
        worker = await service.create_user(ADMIN, user_payload("Worker", reportsTo=boss.id))
        await service.delete_user(ADMIN, boss.id)
        return boss, await service.load_directory(), worker

    boss, directory, worker = asyncio.run(scenario())
    assert boss.uid in auth.removed
    assert directory.find_user(boss.id) is None
    assert directory.reports_to_name(directory.users[worker.id]) == "Unknown"


def test_get_users_filters(tmp_path: Path) -> None:
    service, _ = make_service(tmp_path)

    async def scenario():
        await service.create_user(ADMIN, user_payload("Ada"))
        await service.create_user(
            ADMIN, user_payload("Don", roles=["marketing"], department="Marketing")
        )
        return (
            await service.get_users("don"),
            await service.get_users(department="Engineering"),
            await service.get_users_by_role("marketing"),
            await service.get_users(),
        )

    by_name, by_dept, by_role, everyone = asyncio.run(scenario())
    assert [u.full_name for u in by_name] == ["Don"]
    assert [u.full_name for u in by_dept] == ["Ada"]
    assert [u.full_name for u in by_role] == ["Don"]
    assert len(everyone) == 2


def test_get_user_by_uid(tmp_path: Path) -> None:
    service, _ = make_service(tmp_path)
    created = asyncio.run(service.create_user(ADMIN, user_payload("Ada")))
    assert asyncio.run(service.get_user_by_uid(created.uid)).id == created.id
    assert asyncio.run(service.get_user_by_uid("nope")) is None


# ----------------------------------------------------------------------
# Teams


def seed_team_users(service: OrgService):
    async def scenario():
        lead = await service.create_user(ADMIN, user_payload("Lead", roles=["team_lead"]))
        dev = await service.create_user(ADMIN, user_payload("Dev"))
        other = await service.create_user(
            ADMIN, user_payload("Sam", roles=["sales"], department="Sales")
        )
        return lead, dev, other

    return asyncio.run(scenario())


def test_create_team_round_trip(tmp_path: Path) -> None:
    service, _ = make_service(tmp_path)
    lead, dev, _ = seed_team_users(service)
    payload = {
        "name": "Platform",
        "department": "Engineering",
        "eligibleRoles": ["developer", "team_lead"],
        "leadId": lead.id,
        "memberIds": [dev.id],
    }
    created = asyncio.run(service.create_team(ADMIN, payload))
    teams = asyncio.run(service.get_teams())

    assert len(teams) == 1
    fetched = teams[0]
    assert fetched.id == created.id
    assert fetched.department == "Engineering"
    assert set(fetched.eligible_roles) == {"developer", "team_lead"}
    assert fetched.lead_id == lead.id
    assert set(fetched.member_ids) == {dev.id}


def test_create_team_rejects_ineligible_lead(tmp_path: Path) -> None:
    service, _ = make_service(tmp_path)
    _, dev, sam = seed_team_users(service)
    payload = {
        "name": "Platform",
        "department": "Engineering",
        "eligibleRoles": ["developer"],
        "leadId": sam.id,
        "memberIds": [dev.id],
    }
    with pytest.raises(ValidationError):
        asyncio.run(service.create_team(ADMIN, payload))
    with pytest.raises(ValidationError):
        asyncio.run(service.create_team(ADMIN, {**payload, "leadId": dev.id, "eligibleRoles": []}))
    with pytest.raises(ValidationError):
        asyncio.run(service.create_team(ADMIN, {**payload, "leadId": dev.id, "department": ""}))
    assert asyncio.run(service.get_teams()) == []


# ----------------------------------------------------------------------
# Hierarchy


def seed_chain(service: OrgService) -> list[str]:
    """Create ``a <- b <- c`` plus a detached ``d``; return their ids."""

    async def scenario():
        a = await service.create_user(ADMIN, user_payload("A"))
        b = await service.create_user(ADMIN, user_payload("B", reportsTo=a.id))
        c = await service.create_user(ADMIN, user_payload("C", reportsTo=b.id))
        d = await service.create_user(ADMIN, user_payload("D"))
        return [a.id, b.id, c.id, d.id]

    return asyncio.run(scenario())


def test_set_reports_to_persists(tmp_path: Path) -> None:
    service, _ = make_service(tmp_path)
    a, b, c, d = seed_chain(service)
    updated = asyncio.run(service.set_reports_to(ADMIN, d, c))
    assert updated.reports_to == c
    chain = asyncio.run(service.superior_chain(d))
    assert [u.id for u in chain] == [c, b, a]


def test_set_reports_to_cycle_leaves_store_unchanged(tmp_path: Path) -> None:
    service, _ = make_service(tmp_path)
    a, b, c, _ = seed_chain(service)
    with pytest.raises(CycleError):
        asyncio.run(service.set_reports_to(ADMIN, a, c))
    with pytest.raises(CycleError):
        asyncio.run(service.update_user(ADMIN, a, {"reportsTo": a}))
    assert asyncio.run(service.get_user(a)).reports_to is None


def test_detach_via_update(tmp_path: Path) -> None:
    service, _ = make_service(tmp_path)
    _, b, _, _ = seed_chain(service)
    assert asyncio.run(service.update_user(ADMIN, b, {"reportsTo": None})).reports_to is None


def test_bulk_reassign_reports_each_id(tmp_path: Path) -> None:
    service, _ = make_service(tmp_path)
    a, b, c, d = seed_chain(service)
    ids = [a, c, d, b, "ghost"]
    result = asyncio.run(service.bulk_reassign(ADMIN, ids, b))

    assert result.applied == {c, d}
    assert set(result.rejected) == {a, b, "ghost"}
    assert result.applied | set(result.rejected) == set(ids)
    directory = asyncio.run(service.load_directory())
    assert directory.users[d].reports_to == b
    assert directory.users[a].reports_to is None


def test_bulk_reassign_reports_store_failures(tmp_path: Path) -> None:
    class FlakyStore(JSONDocumentStore):
        fail_for: set[str] = set()

        async def update(self, collection, doc_id, fields):
            if doc_id in self.fail_for:
                raise UpstreamError("write refused")
            await super().update(collection, doc_id, fields)

    auth = FakeAuth()
    store = FlakyStore(tmp_path / "data.json")
    service = OrgService(store, auth)
    a, b, c, d = seed_chain(service)
    store.fail_for = {d}

    result = asyncio.run(service.bulk_reassign(ADMIN, [c, d], a))
    assert result.applied == {c}
    assert result.rejected == {d: "write refused"}


def test_superior_chain_unknown_user(tmp_path: Path) -> None:
    service, _ = make_service(tmp_path)
    with pytest.raises(NotFoundError):
        asyncio.run(service.superior_chain("ghost"))
