import logging
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    data_path: str = "orgdash_data.json"
    api_key: str = ""
    project_id: str = ""
    access_token: str = ""
    log_level: str = "INFO"
    # Optional JSON file mapping department -> list of allowed roles
    department_roles_path: str | None = None
    activity_limit: int = 10


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        logging.getLogger("orgdash.config").warning(
            "Ignoring non-numeric %s=%r; using %d", name, raw, default
        )
        return default


def load_settings() -> Settings:
    return Settings(
        data_path=os.getenv("ORGDASH_DATA_PATH", "").strip() or "orgdash_data.json",
        api_key=os.getenv("ORGDASH_API_KEY", "").strip(),
        project_id=os.getenv("ORGDASH_PROJECT_ID", "").strip(),
        access_token=os.getenv("ORGDASH_ACCESS_TOKEN", "").strip(),
        log_level=os.getenv("ORGDASH_LOG_LEVEL", "").strip().upper() or "INFO",
        department_roles_path=os.getenv("ORGDASH_DEPARTMENT_ROLES", "").strip() or None,
        activity_limit=_int_env("ORGDASH_ACTIVITY_LIMIT", 10),
    )
