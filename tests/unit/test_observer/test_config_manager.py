"""
Unit tests for observer configuration.
"""

import json

import pytest
import yaml

from observer.monitoring.logging_config import LogFormat, LoggingConfig
from observer.sdk.config_manager import (
    AdapterConfig,
    ConfigManager,
    ObserverConfig,
    SenderConfig,
)
from observer.sdk.exceptions import ConfigurationError, ValidationError


class TestObserverConfig:
    """Test the configuration dataclasses."""

    def test_defaults_disable_everything(self):
        config = ObserverConfig()
        assert config.collecting_period_in_ms is None
        assert config.sampling_period_in_ms is None
        assert config.sending_period_in_ms is None
        assert config.stats_expiration_time_in_ms is None
        assert config.sender is None
        assert config.logging is None

    def test_negative_period_rejected(self):
        with pytest.raises(ValidationError):
            ObserverConfig(sampling_period_in_ms=-1)

    def test_zero_period_allowed(self):
        assert ObserverConfig(sending_period_in_ms=0).sending_period_in_ms == 0


class TestConfigManager:
    """Test loading configuration from the supported sources."""

    def test_camel_case_dict(self):
        manager = ConfigManager({
            "collectingPeriodInMs": 1000,
            "statsExpirationTimeInMs": 5000,
            "collectors": {"adapter": {"browserType": "chrome", "browserVersion": "90"}},
            "sampler": {"roomId": "room-1"},
            "sender": {"url": "https://collector.example.com", "headers": {"X-Api-Key": "k"}},
            "accumulator": {"maxSamplesPerBatch": 10},
            "logging": {"level": "debug", "formatType": "json"},
        }, use_env=False)
        config = manager.config

        assert config.collecting_period_in_ms == 1000
        assert config.stats_expiration_time_in_ms == 5000
        assert config.collectors.adapter == AdapterConfig("chrome", "90")
        assert config.sampler.room_id == "room-1"
        assert isinstance(config.sender, SenderConfig)
        assert config.sender.headers == {"X-Api-Key": "k"}
        assert config.accumulator.max_samples_per_batch == 10
        assert isinstance(config.logging, LoggingConfig)
        assert config.logging.level == "DEBUG"
        assert config.logging.format_type is LogFormat.JSON

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigurationError):
            ConfigManager({"samplingPeriod": 1000}, use_env=False)

    def test_invalid_type_rejected(self):
        with pytest.raises(ConfigurationError):
            ConfigManager(42)

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "observer.yaml"
        path.write_text(yaml.safe_dump({"samplingPeriodInMs": 2000, "sampler": {"callId": "c1"}}))

        config = ConfigManager(path, use_env=False).config

        assert config.sampling_period_in_ms == 2000
        assert config.sampler.call_id == "c1"

    def test_json_file(self, tmp_path):
        path = tmp_path / "observer.json"
        path.write_text(json.dumps({"sendingPeriodInMs": 3000}))
        assert ConfigManager(str(path), use_env=False).config.sending_period_in_ms == 3000

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigManager(tmp_path / "missing.yaml")

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("OBSERVER_SAMPLING_PERIOD_IN_MS", "750")
        config = ConfigManager({"samplingPeriodInMs": 1000}).config
        assert config.sampling_period_in_ms == 750

    def test_invalid_env_override(self, monkeypatch):
        monkeypatch.setenv("OBSERVER_SENDING_PERIOD_IN_MS", "-5")
        with pytest.raises(ValidationError):
            ConfigManager()

    def test_dotted_get(self):
        manager = ConfigManager({"sender": {"url": "https://a.example.com"}}, use_env=False)

        assert manager.get("sender.url") == "https://a.example.com"
        assert manager.get("sampler.missing", "default") == "default"
        assert manager.get("sender.timeout") == 10.0
        assert manager.to_dict()["sender"]["url"] == "https://a.example.com"

    def test_validate(self):
        manager = ConfigManager({"sendingPeriodInMs": 1000}, use_env=False)
        problems = manager.validate()
        assert any("no sender" in problem for problem in problems)

        manager = ConfigManager({
            "samplingPeriodInMs": 500,
            "sendingPeriodInMs": 1000,
            "sender": {"url": "https://a.example.com"},
        }, use_env=False)
        assert manager.validate() == []

    def test_save_and_reload(self, tmp_path):
        manager = ConfigManager({
            "collectingPeriodInMs": 1000,
            "logging": {"formatType": "colored"},
        }, use_env=False)
        path = tmp_path / "saved.yaml"

        manager.save(path)
        reloaded = ConfigManager(path, use_env=False).config

        assert reloaded.collecting_period_in_ms == 1000
        assert reloaded.logging.format_type is LogFormat.COLORED
