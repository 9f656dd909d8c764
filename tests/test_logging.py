import json
import logging
from pathlib import Path

from reseller_pricing.config.settings import Settings
from reseller_pricing.utils.logging import JsonFormatter, configure_logging


def _record(msg="Resolved rule %s", args=("r1",), **extra):
    record = logging.LogRecord("reseller_pricing.test", logging.INFO, __file__, 10, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_renders_message_and_extras():
    payload = json.loads(JsonFormatter().format(_record(owner_id="reseller-1", volume=1000)))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "reseller_pricing.test"
    assert payload["message"] == "Resolved rule r1"
    assert payload["owner_id"] == "reseller-1"
    assert payload["volume"] == 1000
    assert "lineno" not in payload


def test_json_formatter_stringifies_unknown_types():
    payload = json.loads(JsonFormatter().format(_record(path=Path("/tmp/rules.csv"))))
    assert payload["path"] == "/tmp/rules.csv"


def test_configure_logging_sets_root_level():
    configure_logging(level="DEBUG", json_logs=True)

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert isinstance(root.handlers[0].formatter, JsonFormatter)

    configure_logging(level="INFO")
    assert logging.getLogger().level == logging.INFO


def test_settings_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("RESELLER_PRICING_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("RESELLER_PRICING_DEFAULT_BASE_COST", "0.02")
    monkeypatch.setenv("RESELLER_PRICING_JSON_LOGS", "true")
    monkeypatch.setenv("RESELLER_PRICING_LOG_LEVEL", "debug")

    settings = Settings.load(project_root=tmp_path)

    assert settings.rules_csv == tmp_path / 'markup_rules.csv'
    assert str(settings.default_base_cost) == "0.02"
    assert settings.json_logs is True
    assert settings.log_level == "DEBUG"
    assert settings.analytics_default_days == 30
