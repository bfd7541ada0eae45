"""
Integration tests for configuration with the bot wiring.
Tests the complete flow from a YAML file to a configured Application.
"""

import pytest
import yaml
import os
from unittest.mock import MagicMock, AsyncMock

from telegram.ext import CallbackQueryHandler, CommandHandler, MessageHandler

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from ecohavest_bot.utils.config import ConfigManager
from ecohavest_bot.telegram_bot import CommunityBot
from ecohavest_bot.telegram_bot.bot import FALLBACK_GROUP, MAIN_GROUP
from ecohavest_bot.telegram_bot.keywords import KeywordDispatcher, KeywordEntry
from ecohavest_bot.telegram_bot.scheduler import DIGEST_JOB_ID


class TestConfigBotIntegration:
    """Test configuration integration with the bot."""

    @pytest.fixture
    def config(self, tmp_path, monkeypatch):
        for env_var in ConfigManager.ENV_MAPPINGS:
            monkeypatch.delenv(env_var, raising=False)
        data = {
            'telegram': {'bot_token': '123456:TEST-TOKEN', 'target_chat_id': '-1001'},
            'api': {'news': {'api_key': 'news-key'}},
            'scheduler': {'cron': '0 */6 * * *', 'timezone': 'UTC'},
        }
        path = tmp_path / 'config.yaml'
        with open(path, 'w') as f:
            yaml.safe_dump(data, f)
        return ConfigManager(str(path), load_env_file=False).build()

    @pytest.fixture
    def bot(self, config):
        return CommunityBot(config)

    def test_shared_configuration(self, bot, config):
        assert bot.digest_service.chat_id == '-1001'
        assert bot.digest_service.news_client.config.api_key == 'news-key'
        assert bot.digest_service.market_client.config.limit == 10
        assert bot.handlers.digest_service is bot.digest_service

    def test_command_handlers_registered(self, bot):
        commands = set()
        for handler in bot.application.handlers[MAIN_GROUP]:
            if isinstance(handler, CommandHandler):
                commands |= set(handler.commands)
        assert commands == {'start', 'help', 'faq', 'crypto_updates', 'ban', 'shutdown'}

    def test_callback_handlers_registered(self, bot):
        callbacks = [h for h in bot.application.handlers[MAIN_GROUP] if isinstance(h, CallbackQueryHandler)]
        assert len(callbacks) == 2

    def test_keyword_handler_before_fallback(self, bot):
        main_callbacks = [h.callback for h in bot.application.handlers[MAIN_GROUP] if isinstance(h, MessageHandler)]
        fallback_callbacks = [h.callback for h in bot.application.handlers[FALLBACK_GROUP]]

        assert bot.dispatcher.handle_message in main_callbacks
        assert fallback_callbacks == [bot.handlers.log_unmatched_text]

    def test_custom_keyword_table(self, config):
        dispatcher = KeywordDispatcher([KeywordEntry('hello', 'hi')])
        bot = CommunityBot(config, dispatcher=dispatcher)
        assert bot.dispatcher is dispatcher

    def test_polling_mode_without_domain(self, bot):
        bot.application = MagicMock()

        bot.run()

        bot.application.run_polling.assert_called_once()
        bot.application.run_webhook.assert_not_called()

    def test_webhook_mode_with_domain(self, tmp_path, monkeypatch):
        for env_var in ConfigManager.ENV_MAPPINGS:
            monkeypatch.delenv(env_var, raising=False)
        monkeypatch.setenv('BOT_TOKEN', '123456:TEST-TOKEN')
        monkeypatch.setenv('TARGET_CHAT_ID', '-1001')
        monkeypatch.setenv('WEBHOOK_DOMAIN', 'bot.example.org')
        monkeypatch.setenv('PORT', '8443')
        path = tmp_path / 'config.yaml'
        path.write_text('{}')

        bot = CommunityBot(ConfigManager(str(path), load_env_file=False).build())
        bot.application = MagicMock()
        bot.run()

        kwargs = bot.application.run_webhook.call_args.kwargs
        assert kwargs['port'] == 8443
        assert kwargs['webhook_url'] == 'https://bot.example.org/telegram'
        assert kwargs['url_path'] == 'telegram'

    @pytest.mark.asyncio
    async def test_post_init_registers_commands_and_arms_scheduler(self, bot):
        application = MagicMock()
        application.bot.set_my_commands = AsyncMock()

        await bot._post_init(application)
        try:
            application.bot.set_my_commands.assert_awaited_once()
            registered = [command.command for command in application.bot.set_my_commands.call_args.args[0]]
            assert 'crypto_updates' in registered
            assert bot.scheduler.running
            assert bot.scheduler.scheduler.get_job(DIGEST_JOB_ID) is not None
        finally:
            await bot._post_shutdown(application)

        assert not bot.scheduler.running
