import pytest
from pydantic import ValidationError

from outage_monitor.config import Settings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "LOG_LEVEL", "DYNAMO_ACCESS_KEY", "DYNAMO_SECRET_ACCESS_KEY", "DYNAMO_REGION",
        "DYNAMO_ENDPOINT_URL", "TABLE_NAME", "REFRESH_INTERVAL", "HTTP_PORT", "METRICS_PORT",
    ):
        monkeypatch.delenv(f"OUTAGE_MONITOR_{name}", raising=False)


def test_defaults():
    s = load_settings(dotenv=False)
    assert s.log_level == "INFO"
    assert s.table_name == "water.gov.ge"
    assert s.refresh_interval == 3600
    assert s.http_port == 8080
    assert s.dynamo_access_key is None
    assert s.dynamo_endpoint_url is None


def test_reads_prefixed_environment(monkeypatch):
    monkeypatch.setenv("OUTAGE_MONITOR_LOG_LEVEL", "debug")
    monkeypatch.setenv("OUTAGE_MONITOR_DYNAMO_REGION", "eu-west-1")
    monkeypatch.setenv("OUTAGE_MONITOR_DYNAMO_ACCESS_KEY", "AKIA")
    monkeypatch.setenv("OUTAGE_MONITOR_REFRESH_INTERVAL", "600")
    s = load_settings(dotenv=False)
    assert s.log_level == "DEBUG"
    assert s.dynamo_region == "eu-west-1"
    assert s.dynamo_access_key == "AKIA"
    assert s.refresh_interval == 600


def test_empty_values_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("OUTAGE_MONITOR_DYNAMO_ENDPOINT_URL", "")
    monkeypatch.setenv("OUTAGE_MONITOR_TABLE_NAME", "")
    s = load_settings(dotenv=False)
    assert s.dynamo_endpoint_url is None
    assert s.table_name == "water.gov.ge"


def test_reads_dotenv_file(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("OUTAGE_MONITOR_TABLE_NAME=outages-test\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    assert load_settings().table_name == "outages-test"
    assert load_settings(dotenv=False).table_name == "water.gov.ge"


def test_environment_wins_over_dotenv(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("OUTAGE_MONITOR_HTTP_PORT=9000\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("OUTAGE_MONITOR_HTTP_PORT", "8081")
    assert Settings().http_port == 8081


def test_invalid_integer(monkeypatch):
    monkeypatch.setenv("OUTAGE_MONITOR_HTTP_PORT", "eighty")
    with pytest.raises(ValidationError, match="http_port"):
        load_settings(dotenv=False)


def test_interval_must_be_positive(monkeypatch):
    monkeypatch.setenv("OUTAGE_MONITOR_REFRESH_INTERVAL", "0")
    with pytest.raises(ValidationError, match="refresh_interval"):
        load_settings(dotenv=False)
