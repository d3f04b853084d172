from __future__ import annotations

import argparse
import asyncio
import datetime
import json
import sys
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel

from .adapters.identity import IdentityToolkitAuth
from .adapters.json_store import JSONDocumentStore
from .config import Settings, load_settings
from .core.dates import coerce_datetime
from .core.eligibility import EligibilityRules
from .core.roles import load_department_roles
from .dashboard import Dashboard
from .errors import OrgDashError
from .logging_config import setup_logging
from .service import OrgService
from .session import Session


def _timestamp(text: str) -> datetime.datetime:
    value = coerce_datetime(text)
    if value is None:
        raise argparse.ArgumentTypeError(f"not an ISO 8601 date or time: {text!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="orgdash", description="Organisation dashboard")
    sub = parser.add_subparsers(dest="command", required=True)

    dash = sub.add_parser("dashboard", help="Project, task and team statistics")
    dash.add_argument("--now", type=_timestamp, help="Reference time for overdue tasks (ISO 8601)")

    sub.add_parser("calendar", help="Task and project deadlines, earliest first")

    users = sub.add_parser("users", help="List directory users")
    users.add_argument("--search", default="")
    users.add_argument("--role")
    users.add_argument("--department")

    sub.add_parser("teams", help="List teams")

    chain = sub.add_parser("chain", help="Show a user's chain of superiors")
    chain.add_argument("user_id")

    reassign = sub.add_parser("reassign", help="Make users report to a new superior")
    target = reassign.add_mutually_exclusive_group(required=True)
    target.add_argument("--to", dest="superior_id")
    target.add_argument("--detach", action="store_true")
    reassign.add_argument("user_ids", nargs="+")
    reassign.add_argument("--actor", default="cli")
    return parser


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


def build_service(settings: Settings, auth: IdentityToolkitAuth) -> OrgService:
    rules = None
    if settings.department_roles_path:
        rules = EligibilityRules(load_department_roles(settings.department_roles_path))
    return OrgService(JSONDocumentStore(settings.data_path), auth, rules)


async def run(args: argparse.Namespace, settings: Settings) -> Any:
    auth = IdentityToolkitAuth(
        settings.api_key, settings.project_id, settings.access_token
    )
    try:
        service = build_service(settings, auth)
        dashboard = Dashboard(service.store, settings.activity_limit)
        if args.command == "dashboard":
            return await dashboard.summary(args.now)
        if args.command == "calendar":
            return await dashboard.calendar()
        if args.command == "users":
            return await service.get_users(args.search, args.role, args.department)
        if args.command == "teams":
            return await service.get_teams()
        if args.command == "chain":
            return await service.superior_chain(args.user_id)
        if args.command == "reassign":
            superior = None if args.detach else args.superior_id
            result = await service.bulk_reassign(
                Session(user_id=args.actor), args.user_ids, superior
            )
            return {"applied": sorted(result.applied), "rejected": result.rejected}
        raise ValueError(f"unknown command {args.command}")
    finally:
        await auth.close()


def main(argv: Sequence[str] | None = None) -> int:
    settings = load_settings()
    log = setup_logging(settings.log_level)
    args = build_parser().parse_args(argv)
    try:
        result = asyncio.run(run(args, settings))
    except OrgDashError as exc:
        log.error("%s", exc)
        return 1
    json.dump(_dump(result), sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
