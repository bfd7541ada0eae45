"""
Configuration management for the Ecohavest community bot.
Handles loading and validation of configuration parameters.
"""

import yaml
import os
import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass
from pydantic import BaseModel, Field, field_validator, ValidationError
from apscheduler.triggers.cron import CronTrigger
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/default.yaml"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""


# Pydantic models for configuration validation
class TelegramConfigModel(BaseModel):
    """Telegram configuration validation model."""
    bot_token: str = Field(min_length=1, description="Bot API token")
    target_chat_id: str = Field(min_length=1, description="Chat receiving the scheduled digest")
    webhook_domain: Optional[str] = Field(default=None, description="Public domain for webhook mode")
    webhook_path: str = Field(default="telegram", description="URL path the webhook is served on")
    port: int = Field(default=8080, gt=0, le=65535, description="Webhook listen port")

    @field_validator('target_chat_id', mode='before')
    @classmethod
    def coerce_chat_id(cls, v):
        # YAML reads numeric chat ids as int
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator('webhook_domain')
    @classmethod
    def validate_webhook_domain(cls, v):
        if v is None or not v.strip():
            return None
        v = v.strip()
        if v.startswith(('http://', 'https://')):
            raise ValueError("webhook_domain must be a bare domain without scheme")
        return v.rstrip('/')


class MarketApiConfigModel(BaseModel):
    """Market data API validation model."""
    base_url: str = Field(default="https://api.coinranking.com/v2", description="CoinRanking base URL")
    limit: int = Field(default=10, gt=0, le=100, description="Number of coins requested")
    time_period: str = Field(default="3h", description="Change window")
    timeout_seconds: float = Field(default=10.0, gt=0, description="Per-request timeout")
    api_key: Optional[str] = Field(default=None, description="Optional access token")

    @field_validator('time_period')
    @classmethod
    def validate_time_period(cls, v):
        valid_periods = ['1h', '3h', '12h', '24h', '7d', '30d', '3m', '1y', '3y', '5y']
        if v not in valid_periods:
            raise ValueError(f"time_period must be one of {valid_periods}")
        return v


class NewsApiConfigModel(BaseModel):
    """News API validation model."""
    base_url: str = Field(default="https://newsapi.org/v2", description="NewsAPI base URL")
    query: str = Field(default="crypto", min_length=1, description="Topic query")
    page_size: int = Field(default=5, gt=0, le=100, description="Articles requested")
    timeout_seconds: float = Field(default=10.0, gt=0, description="Per-request timeout")
    api_key: Optional[str] = Field(default=None, description="NewsAPI key")


class APIConfigModel(BaseModel):
    """API configuration validation model."""
    market: MarketApiConfigModel = Field(default_factory=MarketApiConfigModel)
    news: NewsApiConfigModel = Field(default_factory=NewsApiConfigModel)


class SchedulerConfigModel(BaseModel):
    """Digest scheduler validation model."""
    cron: str = Field(default="0 */6 * * *", description="Crontab expression")
    timezone: str = Field(default="UTC", description="Timezone the cron is evaluated in")
    run_on_startup: bool = Field(default=False, description="Send one digest right after start")

    @field_validator('cron')
    @classmethod
    def validate_cron(cls, v):
        if len(v.split()) != 5:
            raise ValueError("cron must have five fields: minute hour day month day_of_week")
        try:
            CronTrigger.from_crontab(v, timezone="UTC")
        except ValueError as e:
            raise ValueError(f"invalid cron expression '{v}': {e}")
        return v


class LoggingConfigModel(BaseModel):
    """Logging configuration validation model."""
    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s", description="Log format")
    log_file: str = Field(default="logs/ecohavest_bot.log", description="Log file path")
    max_file_size: int = Field(default=10485760, gt=0, description="Max log file size")
    backup_count: int = Field(default=5, ge=0, description="Log backup count")
    console_output: bool = Field(default=True, description="Console output flag")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()


# Configuration dataclasses for application use
@dataclass(frozen=True)
class TelegramConfig:
    """Telegram bot configuration parameters."""
    bot_token: str
    target_chat_id: str
    webhook_domain: Optional[str] = None
    webhook_path: str = "telegram"
    port: int = 8080

    @property
    def webhook_url(self) -> Optional[str]:
        if not self.webhook_domain:
            return None
        return f"https://{self.webhook_domain}/{self.webhook_path}"


@dataclass(frozen=True)
class MarketApiConfig:
    """CoinRanking API parameters."""
    base_url: str = "https://api.coinranking.com/v2"
    limit: int = 10
    time_period: str = "3h"
    timeout_seconds: float = 10.0
    api_key: Optional[str] = None


@dataclass(frozen=True)
class NewsApiConfig:
    """NewsAPI parameters."""
    base_url: str = "https://newsapi.org/v2"
    query: str = "crypto"
    page_size: int = 5
    timeout_seconds: float = 10.0
    api_key: Optional[str] = None


@dataclass(frozen=True)
class SchedulerConfig:
    """Digest schedule parameters."""
    cron: str = "0 */6 * * *"
    timezone: str = "UTC"
    run_on_startup: bool = False


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration parameters."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: str = "logs/ecohavest_bot.log"
    max_file_size: int = 10485760  # 10MB
    backup_count: int = 5
    console_output: bool = True


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration, assembled once at startup."""
    telegram: TelegramConfig
    market: MarketApiConfig
    news: NewsApiConfig
    scheduler: SchedulerConfig
    logging: LoggingConfig


class ConfigManager:
    """Manages application configuration with validation and environment variable support."""

    # Environment variable mapping
    ENV_MAPPINGS = {
        'BOT_TOKEN': ['telegram', 'bot_token'],
        'TARGET_CHAT_ID': ['telegram', 'target_chat_id'],
        'WEBHOOK_DOMAIN': ['telegram', 'webhook_domain'],
        'PORT': ['telegram', 'port'],
        'NEWS_API_ORG_KEY': ['api', 'news', 'api_key'],
        'COINRANKING_API_KEY': ['api', 'market', 'api_key'],
        'DIGEST_CRON': ['scheduler', 'cron'],
        'LOG_LEVEL': ['logging', 'level'],
    }

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH, load_env_file: bool = True):
        self.config_path = config_path
        self.raw_config: Dict[str, Any] = {}
        self.validated_config: Dict[str, Any] = {}
        if load_env_file:
            load_dotenv()
        self.config = self.load_config()

    def load_config(self) -> Dict[str, Any]:
        """Load and validate configuration from YAML file with environment variable substitution."""
        config_file = Path(self.config_path)
        if not config_file.exists():
            logger.error(f"Configuration file not found: {self.config_path}")
            raise ConfigurationError(f"Configuration file not found: {self.config_path}")

        try:
            with open(config_file, 'r') as file:
                self.raw_config = yaml.safe_load(file) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse configuration: {e}")
            raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e

        # Apply environment variable overrides
        self.raw_config = self._apply_env_overrides(self.raw_config)

        # Validate configuration
        self.validated_config = self._validate_config(self.raw_config)

        logger.info(f"Configuration loaded successfully from {self.config_path}")
        return self.validated_config

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        for env_var, config_path in self.ENV_MAPPINGS.items():
            env_value = os.getenv(env_var)
            if env_value is None or env_value == '':
                continue

            # Navigate to the nested config location
            current = config
            for key in config_path[:-1]:
                if not isinstance(current.get(key), dict):
                    current[key] = {}
                current = current[key]

            final_key = config_path[-1]
            if env_var == 'PORT':
                try:
                    current[final_key] = int(env_value)
                except ValueError as e:
                    raise ConfigurationError(f"PORT must be an integer, got {env_value!r}") from e
            else:
                current[final_key] = env_value

            logger.info(f"Applied environment override: {env_var} -> {'.'.join(config_path)}")

        return config

    def _validate_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Validate configuration using pydantic models."""
        validated = {}

        try:
            # Telegram credentials are mandatory, everything else has defaults
            validated['telegram'] = TelegramConfigModel(**(config.get('telegram') or {})).model_dump()
            validated['api'] = APIConfigModel(**(config.get('api') or {})).model_dump()
            validated['scheduler'] = SchedulerConfigModel(**(config.get('scheduler') or {})).model_dump()
            validated['logging'] = LoggingConfigModel(**(config.get('logging') or {})).model_dump()
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        logger.info("Configuration validation completed successfully")
        return validated

    def get_telegram_config(self) -> TelegramConfig:
        """Get validated Telegram configuration."""
        return TelegramConfig(**self.config['telegram'])

    def get_market_config(self) -> MarketApiConfig:
        """Get validated market data API configuration."""
        return MarketApiConfig(**self.config['api']['market'])

    def get_news_config(self) -> NewsApiConfig:
        """Get validated news API configuration."""
        return NewsApiConfig(**self.config['api']['news'])

    def get_scheduler_config(self) -> SchedulerConfig:
        """Get validated scheduler configuration."""
        return SchedulerConfig(**self.config['scheduler'])

    def get_logging_config(self) -> LoggingConfig:
        """Get validated logging configuration."""
        return LoggingConfig(**self.config['logging'])

    def build(self) -> AppConfig:
        """Assemble the immutable application configuration."""
        return AppConfig(
            telegram=self.get_telegram_config(),
            market=self.get_market_config(),
            news=self.get_news_config(),
            scheduler=self.get_scheduler_config(),
            logging=self.get_logging_config(),
        )

    def get_config_summary(self) -> Dict[str, Any]:
        """Get a summary of current configuration for logging/debugging. Secrets are omitted."""
        telegram_config = self.get_telegram_config()
        scheduler_config = self.get_scheduler_config()
        return {
            'config_file': self.config_path,
            'telegram': {
                'mode': 'webhook' if telegram_config.webhook_domain else 'polling',
                'target_chat_id': telegram_config.target_chat_id,
                'port': telegram_config.port,
            },
            'api': {
                'market_url': self.get_market_config().base_url,
                'news_url': self.get_news_config().base_url,
                'news_key_configured': bool(self.get_news_config().api_key),
            },
            'scheduler': {
                'cron': scheduler_config.cron,
                'timezone': scheduler_config.timezone,
            },
        }


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Load, validate and assemble configuration. Raises ConfigurationError on failure."""
    return ConfigManager(config_path).build()
