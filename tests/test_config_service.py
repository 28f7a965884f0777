"""
ConfigService and tagging settings tests.

Goal: Avoid overwriting the repository template configuration file, keep the
test environment out of real user directories, and check the tagging keys.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from models.tagging import TaggingSettings


@pytest.fixture(autouse=True)
def _reset_config_service():
    from services.config_service import ConfigService

    ConfigService.reset_instance()
    yield
    ConfigService.reset_instance()


def _sandbox_user_config_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    base = tmp_path / "user-config"
    # Set for Windows/Mac/Linux to avoid platform differences leaking to real user directories
    monkeypatch.setenv("APPDATA", str(base))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(base))
    return base


def test_builtin_tagging_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    from services.config_service import ConfigService, DEFAULT_SYSTEM_PROMPT

    _sandbox_user_config_dir(monkeypatch, tmp_path)
    config = ConfigService(str(tmp_path / "missing.yaml"))

    assert config.get("ai_tagger.tag_source") == "existing"
    assert config.get("ai_tagger.max_tags") == 8
    assert config.get("ai_tagger.concurrency") == 3
    assert config.get("ai_tagger.request_interval_ms") == 1000
    assert config.get("ai_tagger.tag_prefix_filter") == "_"
    assert config.get("ai_tagger.system_prompt") == DEFAULT_SYSTEM_PROMPT
    assert config.get("ai_tagger.nope", "fallback") == "fallback"


def test_custom_config_path_save_and_reload_round_trip(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    from services.config_service import ConfigService

    _sandbox_user_config_dir(monkeypatch, tmp_path)

    custom_path = tmp_path / "isolated.yaml"
    config = ConfigService(str(custom_path))
    config.set("ai_tagger.model", "local-model")

    assert config.save() is True
    assert custom_path.exists()

    # Custom mode should not write to the default user directory
    assert ConfigService._get_user_config_path().exists() is False

    ConfigService.reset_instance()
    config2 = ConfigService(str(custom_path))
    assert config2.get("ai_tagger.model") == "local-model"
    # Untouched keys keep their defaults after the merge
    assert config2.get("ai_tagger.max_tags") == 8


def test_passing_default_template_path_does_not_write_to_repo_template(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
):
    from services.config_service import ConfigService

    _sandbox_user_config_dir(monkeypatch, tmp_path)

    template_path = Path("config/default_config.yaml")
    before = template_path.read_text(encoding="utf-8")

    config = ConfigService("config/default_config.yaml")
    config.set("ai_tagger.concurrency", 5)
    assert config.save() is True

    assert ConfigService._get_user_config_path().exists()
    assert template_path.read_text(encoding="utf-8") == before


def test_default_mode_user_config_overrides_template(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    from services.config_service import ConfigService

    _sandbox_user_config_dir(monkeypatch, tmp_path)

    user_config_path = ConfigService._get_user_config_path()
    user_config_path.parent.mkdir(parents=True, exist_ok=True)
    user_config_path.write_text(
        yaml.safe_dump({"ai_tagger": {"tag_source": "new", "max_tags": 4}}), encoding="utf-8"
    )

    config = ConfigService()
    assert config.get("ai_tagger.tag_source") == "new"
    assert config.get("ai_tagger.max_tags") == 4
    assert config.get("ai_tagger.temperature") == 0.1


def test_broken_yaml_falls_back_to_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    from services.config_service import ConfigService

    _sandbox_user_config_dir(monkeypatch, tmp_path)
    broken = tmp_path / "broken.yaml"
    broken.write_text("ai_tagger: [unclosed", encoding="utf-8")

    config = ConfigService(str(broken))
    assert config.get("ai_tagger.max_tags") == 8


class _Config:
    def __init__(self, values):
        self._values = values

    def get(self, key, default=None):
        return self._values.get(key, default)


def test_tagging_settings_from_config_clamps_values():
    settings = TaggingSettings.from_config(_Config({
        "ai_tagger.tag_source": "NEW",
        "ai_tagger.max_tags": 500,
        "ai_tagger.temperature": -1,
        "ai_tagger.concurrency": 0,
        "ai_tagger.request_interval_ms": "250",
        "ai_tagger.tag_prefix_filter": None,
    }))

    assert settings.tag_source == "new"
    assert not settings.existing_only
    assert settings.max_tags == 50
    assert settings.temperature == 0.0
    assert settings.concurrency == 1
    assert settings.request_interval_ms == 250
    assert settings.request_interval_seconds == 0.25
    assert settings.tag_prefix_filter == ""


def test_full_text_length_has_a_floor_of_one():
    settings = TaggingSettings.from_config(_Config({"ai_tagger.max_full_text_length": 0}))

    assert settings.max_full_text_length == 1


def test_tagging_settings_defaults_for_garbage():
    settings = TaggingSettings.from_config(_Config({
        "ai_tagger.tag_source": "whatever",
        "ai_tagger.max_tags": "many",
    }))

    assert settings.existing_only
    assert settings.max_tags == 8
    assert settings.concurrency == 3
    assert settings.request_interval_ms == 1000
