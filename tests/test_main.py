import asyncio
import json
from pathlib import Path

import pytest

from orgdash.adapters.json_store import JSONDocumentStore
from orgdash.main import main


def seed(path: Path) -> dict[str, str]:
    store = JSONDocumentStore(path)

    async def scenario():
        boss = await store.insert("users", {"fullName": "Boss", "roles": ["admin"], "department": "Operations", "createdAt": "2024-01-01"})
        dev = await store.insert("users", {"fullName": "Dev", "roles": ["developer"], "department": "Engineering", "createdAt": "2024-01-02"})
        await store.insert("tasks", {"title": "Ship", "status": "pending", "due_date": "2024-05-01"})
        return {"boss": boss, "dev": dev}

    return asyncio.run(scenario())


def test_dashboard_command(tmp_path: Path, monkeypatch, capsys) -> None:
    path = tmp_path / "data.json"
    seed(path)
    monkeypatch.setenv("ORGDASH_DATA_PATH", str(path))
    assert main(["dashboard", "--now", "2024-06-01"]) == 0
    out = capsys.readouterr().out
    data = json.loads(out[out.index("{"):])
    assert data["taskStats"]["overdue"] == 1
    assert data["teamStats"]["totalMembers"] == 2


def test_reassign_command(tmp_path: Path, monkeypatch, capsys) -> None:
    path = tmp_path / "data.json"
    ids = seed(path)
    monkeypatch.setenv("ORGDASH_DATA_PATH", str(path))
    assert main(["reassign", "--to", ids["boss"], ids["dev"], ids["boss"]]) == 0
    out = capsys.readouterr().out
    data = json.loads(out[out.index("{"):])
    assert data["applied"] == [ids["dev"]]
    assert list(data["rejected"]) == [ids["boss"]]


def test_dashboard_command_rejects_unreadable_now(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("ORGDASH_DATA_PATH", str(tmp_path / "data.json"))
    with pytest.raises(SystemExit) as exc:
        main(["dashboard", "--now", "soon"])
    assert exc.value.code == 2
    assert "--now" in capsys.readouterr().err
