import pytest
import yaml
from pydantic import ValidationError

from llm_cache.models.config import AppConfig, StoreSettings
from llm_cache.services.config_manager import ConfigManager
from llm_cache.utils.exceptions import ConfigValidationError

CONFIG_TEMPLATE = """
store:
  url: ${REDIS_URL}
  token: ${REDIS_TOKEN}
  operation_timeout_seconds: 1.0
analytics:
  key_prefix: stats
  tracked_endpoints: [translate, query]
server:
  admin_token: ${ADMIN_API_TOKEN}
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "cache_config.yaml"
    path.write_text(CONFIG_TEMPLATE)
    return path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("REDIS_URL", "REDIS_TOKEN", "ADMIN_API_TOKEN"):
        monkeypatch.delenv(name, raising=False)


def test_substitutes_environment(config_file, monkeypatch):
    monkeypatch.setenv("REDIS_URL", "rediss://cache.example.com:6379/0")
    monkeypatch.setenv("REDIS_TOKEN", "tok")
    monkeypatch.setenv("ADMIN_API_TOKEN", "admin")

    config = ConfigManager(str(config_file), load_env=False).load_config()

    assert config.store.url == "rediss://cache.example.com:6379/0"
    assert config.store.token == "tok"
    assert config.store.operation_timeout_seconds == 1.0
    assert config.server.admin_token == "admin"
    assert config.analytics.key_prefix == "stats"
    assert config.analytics.tracked_endpoints == ["translate", "query"]


def test_unset_variables_disable_store(config_file):
    config = ConfigManager(str(config_file), load_env=False).load_config()

    assert config.store.url is None
    assert config.store.token is None
    assert config.server.admin_token is None


def test_config_is_cached(config_file):
    manager = ConfigManager(str(config_file), load_env=False)

    assert manager.load_config() is manager.load_config()


def test_missing_file():
    manager = ConfigManager(config_path="nonexistent.yaml", load_env=False)
    with pytest.raises(FileNotFoundError):
        manager.load_config()


def test_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("store: [unclosed")

    with pytest.raises(ConfigValidationError, match="Failed to parse YAML"):
        ConfigManager(str(path), load_env=False).load_config()


def test_non_mapping_root(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text(yaml.dump(["a", "b"]))

    with pytest.raises(ConfigValidationError, match="mapping"):
        ConfigManager(str(path), load_env=False).load_config()


def test_invalid_values(tmp_path):
    path = tmp_path / "invalid.yaml"
    path.write_text(yaml.dump({"analytics": {"hourly_retention_hours": 1}}))

    with pytest.raises(ConfigValidationError, match="Invalid configuration"):
        ConfigManager(str(path), load_env=False).load_config()


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    config = ConfigManager(str(path), load_env=False).load_config()

    assert config == AppConfig()


def test_rejects_unknown_url_scheme():
    with pytest.raises(ValidationError):
        StoreSettings(url="http://cache.example.com")


def test_example_config_loads():
    config = ConfigManager("config/cache_config.yaml", load_env=False).load_config()

    assert config.ttl.translation == 30 * 24 * 3600
    assert config.analytics.daily_retention_days == 35
    assert config.ttl.quiz == config.ttl.speech == 30 * 24 * 3600
    assert config.store.default_ttl_seconds == 300
    assert "quiz" in config.analytics.tracked_endpoints
