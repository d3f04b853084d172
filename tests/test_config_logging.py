import logging

from orgdash.config import load_settings
from orgdash.logging_config import setup_logging


def test_load_settings(monkeypatch):
    monkeypatch.setenv("ORGDASH_DATA_PATH", "/tmp/org.json")
    monkeypatch.setenv("ORGDASH_API_KEY", "abc123")
    monkeypatch.setenv("ORGDASH_LOG_LEVEL", "debug")
    s = load_settings()
    assert s.data_path == "/tmp/org.json"
    assert s.api_key == "abc123"
    assert s.log_level == "DEBUG"
    assert s.department_roles_path is None
    assert s.activity_limit == 10


def test_load_settings_defaults(monkeypatch):
    for name in ("ORGDASH_DATA_PATH", "ORGDASH_API_KEY", "ORGDASH_LOG_LEVEL", "ORGDASH_ACTIVITY_LIMIT"):
        monkeypatch.delenv(name, raising=False)
    s = load_settings()
    assert s.data_path == "orgdash_data.json"
    assert s.api_key == ""
    assert s.log_level == "INFO"


def test_setup_logging_idempotent():
    logger1 = setup_logging(logging.DEBUG)
    logger2 = setup_logging(logging.DEBUG)
    assert logger1 is logger2
    assert logger1.handlers  # at least one handler installed


def test_load_settings_non_numeric_activity_limit(monkeypatch):
    monkeypatch.setenv("ORGDASH_ACTIVITY_LIMIT", "many")
    assert load_settings().activity_limit == 10
    monkeypatch.setenv("ORGDASH_ACTIVITY_LIMIT", "25")
    assert load_settings().activity_limit == 25
