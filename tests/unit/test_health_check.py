import json

import pytest

from helpdesk_reply.handlers import health_check

RESOURCE_VARS = (
    "DATABASE_URL",
    "DB_SECRET_ARN",
    "SESSIONS_TABLE",
    "ATTACHMENTS_BUCKET",
    "PUSH_SECRET_ARN",
    "TELEGRAM_TOKEN",
    "FCM_SERVICE_ACCOUNT_JSON",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in RESOURCE_VARS:
        monkeypatch.delenv(name, raising=False)


def test_health_check_returns_ok_when_wired(monkeypatch):
    monkeypatch.setenv("DB_SECRET_ARN", "arn:aws:secretsmanager:eu-west-2:123:secret:db")
    monkeypatch.setenv("SESSIONS_TABLE", "helpdesk-sessions")
    resp = health_check.lambda_handler({}, None)
    assert resp["statusCode"] == 200
    body = json.loads(resp["body"])
    assert body["status"] == "ok"
    assert body["service"] == "helpdesk-reply"
    assert body["resources"] == {
        "database": True,
        "sessions_table": True,
        "attachments_bucket": False,
        "push": False,
    }


def test_missing_database_is_degraded(monkeypatch):
    monkeypatch.setenv("SESSIONS_TABLE", "helpdesk-sessions")
    monkeypatch.setenv("ATTACHMENTS_BUCKET", "bucket")
    resp = health_check.lambda_handler({}, None)
    assert resp["statusCode"] == 503
    body = json.loads(resp["body"])
    assert body["status"] == "degraded"
    assert body["resources"]["attachments_bucket"] is True


def test_secret_values_are_not_echoed(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "mysql+pymysql://user:hunter2@db/hesk")
    assert "hunter2" not in health_check.lambda_handler({}, None)["body"]


def test_health_check_includes_environment(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "test")
    body = json.loads(health_check.lambda_handler({}, None)["body"])
    assert body["environment"] == "test"
