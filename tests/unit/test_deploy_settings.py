"""Deployment settings checks run before the stack is synthesized."""

from infrastructure.config.settings import Settings


def test_complete_settings_have_no_problems():
    settings = Settings(
        db_secret_arn="arn:aws:secretsmanager:eu-west-2:123:secret:db",
        hesk_url="https://help.example.com",
    )
    assert settings.problems() == []


def test_defaults_report_missing_database_and_local_url():
    problems = Settings().problems()
    assert len(problems) == 2
    assert "DB_SECRET_ARN" in problems[0]
    assert "localhost" in problems[1]


def test_push_timeout_must_fit_inside_lambda_timeout():
    settings = Settings(
        db_secret_arn="arn",
        hesk_url="https://help.example.com",
        lambda_timeout_seconds=5,
        push_timeout_seconds=5,
    )
    assert settings.problems() == ["push timeout must be shorter than the Lambda timeout"]


def test_prod_from_environment(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "prod")
    monkeypatch.setenv("DB_SECRET_ARN", "arn")
    monkeypatch.setenv("HESK_URL", "https://help.example.com")

    settings = Settings.from_environment()

    assert settings.environment == "prod"
    assert settings.lambda_timeout_seconds == 30
    assert settings.problems() == []
