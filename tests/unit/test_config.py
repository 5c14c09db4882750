import pytest

from bulletin.adapters.brevo import BrevoMessagingProvider
from bulletin.adapters.dev_provider import DevMessagingProvider
from bulletin.app_shell.config import ConfigError, validate_ops_rules
from bulletin.app_shell.providers import build_provider
from bulletin.app_shell.settings import Settings
from bulletin.rules.models import Rules


def brevo_rules(sender_id=7) -> Rules:
    return Rules.model_validate(
        {
            "provider": {
                "name": "brevo",
                "api_key_env": "TEST_BREVO_KEY",
                "sender_id": sender_id,
                "group_list_map": {1: 11},
            }
        }
    )


def test_dev_rules_validate():
    validate_ops_rules(Rules())


def test_missing_required_env(monkeypatch):
    monkeypatch.delenv("BULLETIN_SECRET", raising=False)
    rules = Rules.model_validate({"ops": {"required_env": ["BULLETIN_SECRET"]}})

    with pytest.raises(ConfigError, match="BULLETIN_SECRET"):
        validate_ops_rules(rules)


def test_brevo_requires_api_key(monkeypatch):
    monkeypatch.delenv("TEST_BREVO_KEY", raising=False)

    with pytest.raises(ConfigError, match="TEST_BREVO_KEY"):
        validate_ops_rules(brevo_rules())


def test_brevo_requires_sender(monkeypatch):
    monkeypatch.setenv("TEST_BREVO_KEY", "xkeysib-test")

    with pytest.raises(ConfigError, match="sender_id"):
        validate_ops_rules(brevo_rules(sender_id=None))


def test_brevo_valid(monkeypatch):
    monkeypatch.setenv("TEST_BREVO_KEY", "xkeysib-test")
    validate_ops_rules(brevo_rules())


def test_build_provider_dev():
    provider = build_provider(Rules.model_validate({"provider": {"group_list_map": {2: 20}}}))

    assert isinstance(provider, DevMessagingProvider)
    assert provider.list_ids_for_groups([2, 3]) == ["20", "3"]


def test_build_provider_brevo(monkeypatch):
    monkeypatch.setenv("TEST_BREVO_KEY", "xkeysib-test")

    provider = build_provider(brevo_rules())

    assert isinstance(provider, BrevoMessagingProvider)
    assert provider.session.headers["api-key"] == "xkeysib-test"
    assert provider.list_ids_for_groups([1]) == ["11"]


def test_build_provider_brevo_without_key(monkeypatch):
    monkeypatch.delenv("TEST_BREVO_KEY", raising=False)

    with pytest.raises(ValueError, match="TEST_BREVO_KEY"):
        build_provider(brevo_rules())


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("BULLETIN_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("BULLETIN_RULES_PATH", str(tmp_path / "custom.yaml"))

    settings = Settings()

    assert settings.db_path == str(tmp_path / "bulletin.db")
    assert settings.rules_path == tmp_path / "custom.yaml"
