"""
Unit tests for configuration validation system.
Tests required secrets, environment overrides and validation bounds.
"""

import pytest
import yaml
import os
from dataclasses import FrozenInstanceError

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from ecohavest_bot.utils.config import (
    ConfigManager, ConfigurationError, AppConfig, TelegramConfig,
    TelegramConfigModel, MarketApiConfigModel, NewsApiConfigModel,
    SchedulerConfigModel, LoggingConfigModel, load_config
)
from pydantic import ValidationError


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every environment variable the config layer reads."""
    for env_var in ConfigManager.ENV_MAPPINGS:
        monkeypatch.delenv(env_var, raising=False)
    return monkeypatch


@pytest.fixture
def write_config(tmp_path):
    def _write(data):
        path = tmp_path / "config.yaml"
        with open(path, 'w') as f:
            yaml.safe_dump(data, f)
        return str(path)
    return _write


def complete_config():
    return {
        'telegram': {
            'bot_token': '123:abc',
            'target_chat_id': -100123,
            'port': 8443,
        },
        'api': {
            'news': {'api_key': 'news-key'},
        },
        'scheduler': {'cron': '0 */6 * * *'},
        'logging': {'level': 'debug', 'log_file': 'logs/test.log'},
    }


class TestTelegramConfigValidation:
    """Test telegram section validation."""

    def test_missing_token_rejected(self):
        with pytest.raises(ValidationError):
            TelegramConfigModel(target_chat_id='1')

    def test_empty_chat_id_rejected(self):
        with pytest.raises(ValidationError):
            TelegramConfigModel(bot_token='t', target_chat_id='')

    def test_numeric_chat_id_coerced_to_string(self):
        model = TelegramConfigModel(bot_token='t', target_chat_id=-100123)
        assert model.target_chat_id == '-100123'

    def test_webhook_domain_normalized(self):
        model = TelegramConfigModel(bot_token='t', target_chat_id='1', webhook_domain='bot.example.org/')
        assert model.webhook_domain == 'bot.example.org'

    def test_blank_webhook_domain_means_polling(self):
        model = TelegramConfigModel(bot_token='t', target_chat_id='1', webhook_domain='  ')
        assert model.webhook_domain is None

    def test_webhook_domain_with_scheme_rejected(self):
        with pytest.raises(ValidationError):
            TelegramConfigModel(bot_token='t', target_chat_id='1', webhook_domain='https://bot.example.org')

    def test_port_bounds(self):
        for port in [0, 70000, -1]:
            with pytest.raises(ValidationError):
                TelegramConfigModel(bot_token='t', target_chat_id='1', port=port)

    def test_webhook_url(self):
        config = TelegramConfig(bot_token='t', target_chat_id='1', webhook_domain='bot.example.org')
        assert config.webhook_url == 'https://bot.example.org/telegram'
        assert TelegramConfig(bot_token='t', target_chat_id='1').webhook_url is None


class TestApiConfigValidation:
    """Test upstream API section validation."""

    def test_market_defaults(self):
        model = MarketApiConfigModel()
        assert model.limit == 10
        assert model.time_period == '3h'
        assert model.timeout_seconds > 0

    def test_invalid_time_period(self):
        with pytest.raises(ValidationError):
            MarketApiConfigModel(time_period='2h')

    def test_news_defaults(self):
        model = NewsApiConfigModel()
        assert model.query == 'crypto'
        assert model.page_size == 5
        assert model.api_key is None

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValidationError):
            NewsApiConfigModel(timeout_seconds=0)


class TestSchedulerAndLoggingValidation:

    def test_cron_requires_five_fields(self):
        with pytest.raises(ValidationError):
            SchedulerConfigModel(cron='*/6 * * *')

    def test_cron_fields_must_parse(self):
        with pytest.raises(ValidationError):
            SchedulerConfigModel(cron='a b c d e')

    def test_default_schedule_every_six_hours_utc(self):
        model = SchedulerConfigModel()
        assert model.cron == '0 */6 * * *'
        assert model.timezone == 'UTC'

    def test_log_level_uppercased(self):
        assert LoggingConfigModel(level='warning').level == 'WARNING'

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            LoggingConfigModel(level='LOUD')


class TestConfigManager:
    """Test loading, overrides and assembly."""

    def test_load_complete_config(self, clean_env, write_config):
        manager = ConfigManager(write_config(complete_config()), load_env_file=False)
        config = manager.build()

        assert isinstance(config, AppConfig)
        assert config.telegram.bot_token == '123:abc'
        assert config.telegram.target_chat_id == '-100123'
        assert config.telegram.port == 8443
        assert config.news.api_key == 'news-key'
        assert config.market.limit == 10
        assert config.logging.level == 'DEBUG'

    def test_missing_file_is_fatal(self, clean_env, tmp_path):
        with pytest.raises(ConfigurationError):
            ConfigManager(str(tmp_path / "missing.yaml"), load_env_file=False)

    def test_missing_token_is_fatal(self, clean_env, write_config):
        data = complete_config()
        del data['telegram']['bot_token']
        with pytest.raises(ConfigurationError):
            ConfigManager(write_config(data), load_env_file=False)

    def test_missing_chat_id_is_fatal(self, clean_env, write_config):
        data = complete_config()
        del data['telegram']['target_chat_id']
        with pytest.raises(ConfigurationError):
            ConfigManager(write_config(data), load_env_file=False)

    def test_environment_overrides(self, clean_env, write_config):
        data = complete_config()
        del data['telegram']['bot_token']
        clean_env.setenv('BOT_TOKEN', 'env-token')
        clean_env.setenv('TARGET_CHAT_ID', '42')
        clean_env.setenv('PORT', '9000')
        clean_env.setenv('WEBHOOK_DOMAIN', 'hooks.example.org')
        clean_env.setenv('NEWS_API_ORG_KEY', 'env-news-key')
        clean_env.setenv('LOG_LEVEL', 'error')

        config = ConfigManager(write_config(data), load_env_file=False).build()

        assert config.telegram.bot_token == 'env-token'
        assert config.telegram.target_chat_id == '42'
        assert config.telegram.port == 9000
        assert config.telegram.webhook_domain == 'hooks.example.org'
        assert config.news.api_key == 'env-news-key'
        assert config.logging.level == 'ERROR'

    def test_env_creates_missing_sections(self, clean_env, write_config):
        clean_env.setenv('BOT_TOKEN', 'env-token')
        clean_env.setenv('TARGET_CHAT_ID', '42')

        config = ConfigManager(write_config({}), load_env_file=False).build()

        assert config.telegram.bot_token == 'env-token'
        assert config.news.api_key is None
        assert config.scheduler.cron == '0 */6 * * *'

    def test_non_integer_port_is_fatal(self, clean_env, write_config):
        clean_env.setenv('PORT', 'eighty')
        with pytest.raises(ConfigurationError):
            ConfigManager(write_config(complete_config()), load_env_file=False)

    def test_bad_cron_from_env_is_fatal(self, clean_env, write_config):
        clean_env.setenv('DIGEST_CRON', 'a b c d e')
        with pytest.raises(ConfigurationError):
            ConfigManager(write_config(complete_config()), load_env_file=False)

    def test_config_is_immutable(self, clean_env, write_config):
        config = ConfigManager(write_config(complete_config()), load_env_file=False).build()
        with pytest.raises(FrozenInstanceError):
            config.telegram.target_chat_id = 'other'

    def test_summary_has_no_secrets(self, clean_env, write_config):
        manager = ConfigManager(write_config(complete_config()), load_env_file=False)
        summary = str(manager.get_config_summary())

        assert '123:abc' not in summary
        assert 'news-key' not in summary
        assert manager.get_config_summary()['telegram']['mode'] == 'polling'
        assert manager.get_config_summary()['api']['news_key_configured'] is True

    def test_load_config_helper(self, clean_env, write_config, monkeypatch):
        monkeypatch.setattr('ecohavest_bot.utils.config.load_dotenv', lambda: None)
        config = load_config(write_config(complete_config()))
        assert config.telegram.bot_token == '123:abc'
