"""Tests for environment-driven configuration."""

import pytest

from clinical_note_update.core.config import UpdateConfiguration
from clinical_note_update.core.exceptions import ConfigurationError


ENV_NAMES = (
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "OPENAI_API_KEY",
    "GEMINI_MODEL",
    "OPENAI_MODEL",
    "PRIMARY_PROVIDER",
    "FALLBACK_PROVIDER",
    "GENERATION_TIMEOUT",
    "RATE_LIMIT_DELAY",
    "PROVIDER_MAX_RETRIES",
    "DEFAULT_EMR_PROFILE",
    "PROFILE_CONFIG_PATH",
    "ENABLE_COMPLIANCE_RETRY",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    # setenv first so monkeypatch restores anything load_dotenv adds
    for name in ENV_NAMES:
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def test_from_environment_reads_keys_and_settings(clean_env):
    clean_env.setenv("GOOGLE_API_KEY", "g-key")
    clean_env.setenv("OPENAI_API_KEY", "o-key")
    clean_env.setenv("PRIMARY_PROVIDER", "OpenAI")
    clean_env.setenv("FALLBACK_PROVIDER", "gemini")
    clean_env.setenv("GENERATION_TIMEOUT", "12.5")
    clean_env.setenv("ENABLE_COMPLIANCE_RETRY", "false")
    clean_env.setenv("DEFAULT_EMR_PROFILE", "Credible")

    config = UpdateConfiguration.from_environment()

    assert config.gemini_api_key == "g-key"
    assert config.primary_provider == "openai"
    assert config.fallback_provider == "gemini"
    assert config.generation_timeout == 12.5
    assert config.enable_compliance_retry is False
    assert config.default_emr_profile == "credible"
    assert config.api_key_for("openai") == "o-key"


def test_from_env_file(clean_env, tmp_path):
    env_file = tmp_path / "update.env"
    env_file.write_text("GEMINI_API_KEY=file-g\nOPENAI_API_KEY=file-o\n", encoding="utf-8")

    config = UpdateConfiguration.from_environment(env_file=str(env_file))

    assert config.gemini_api_key == "file-g"
    assert config.openai_api_key == "file-o"
    assert config.primary_provider == "gemini"


def test_missing_key_fails_validation(clean_env):
    clean_env.setenv("GEMINI_API_KEY", "g-key")

    with pytest.raises(ConfigurationError) as excinfo:
        UpdateConfiguration.from_environment()

    assert excinfo.value.context["setting"] == "OPENAI_API_KEY"


def test_validation_can_be_deferred(clean_env):
    config = UpdateConfiguration.from_environment(validate_on_load=False)

    assert config.gemini_api_key is None


def test_invalid_number_is_configuration_error(clean_env):
    clean_env.setenv("GENERATION_TIMEOUT", "soon")

    with pytest.raises(ConfigurationError):
        UpdateConfiguration.from_environment(validate_on_load=False)


@pytest.mark.parametrize(
    "overrides",
    [
        {"primary_provider": "claude"},
        {"generation_timeout": 0},
        {"provider_max_retries": 0},
        {"profile_config_path": "/nonexistent/profiles.json"},
    ],
)
def test_validate_rejects_bad_values(overrides):
    config = UpdateConfiguration(gemini_api_key="g", openai_api_key="o", **overrides)

    with pytest.raises(ConfigurationError):
        config.validate()


def test_to_dict_masks_keys():
    data = UpdateConfiguration(gemini_api_key="secret").to_dict()

    assert data["gemini_api_key"] == "***"
    assert data["openai_api_key"] is None
