"""
Main Telegram bot implementation for the Ecohavest community chat.
Handles bot initialization, handler routing, the digest schedule and run mode.
"""

import logging
from typing import Optional

import telegram
from telegram.error import TelegramError
from telegram.ext import (
    Application, CallbackQueryHandler, CommandHandler, ContextTypes, MessageHandler, filters,
)

from ..data.collectors import MarketDataClient, NewsClient
from ..utils.config import AppConfig
from .digest import DigestService
from .handlers import COMMANDS, BotHandlers
from .keywords import KeywordDispatcher, build_keyword_table
from .scheduler import DigestScheduler

logger = logging.getLogger(__name__)

# Handler groups: keywords stop propagation on match, so group 1 only sees unmatched text
MAIN_GROUP = 0
FALLBACK_GROUP = 1


class CommunityBot:
    """Wires configuration, handlers, keyword dispatch and the digest schedule together."""

    def __init__(self, config: AppConfig, dispatcher: Optional[KeywordDispatcher] = None):
        self.config = config
        self.dispatcher = dispatcher or KeywordDispatcher(build_keyword_table())
        self.application: Optional[Application] = None
        self.digest_service: Optional[DigestService] = None
        self.scheduler: Optional[DigestScheduler] = None
        self.handlers: Optional[BotHandlers] = None
        self.setup_bot()

    def setup_bot(self):
        """Initialize bot application and handlers."""
        try:
            self.application = (
                Application.builder()
                .token(self.config.telegram.bot_token)
                .post_init(self._post_init)
                .post_shutdown(self._post_shutdown)
                .build()
            )

            self.digest_service = DigestService(
                MarketDataClient(self.config.market),
                NewsClient(self.config.news),
                self.application.bot,
                self.config.telegram.target_chat_id,
            )
            self.scheduler = DigestScheduler(self.digest_service, self.config.scheduler)
            self.handlers = BotHandlers(self.digest_service)

            self._register_handlers(self.application)

            logger.info("Telegram bot setup completed successfully")

        except Exception as e:
            logger.error(f"Failed to setup Telegram bot: {e}")
            raise

    def _register_handlers(self, application: Application):
        handlers = self.handlers

        # Command handlers
        application.add_handler(CommandHandler("start", handlers.start_command), MAIN_GROUP)
        application.add_handler(CommandHandler("help", handlers.help_command), MAIN_GROUP)
        application.add_handler(CommandHandler("faq", handlers.faq_command), MAIN_GROUP)
        application.add_handler(CommandHandler("crypto_updates", handlers.crypto_updates_command), MAIN_GROUP)
        application.add_handler(CommandHandler("ban", handlers.ban_command), MAIN_GROUP)
        application.add_handler(CommandHandler("shutdown", handlers.shutdown_command), MAIN_GROUP)

        # Events
        application.add_handler(
            MessageHandler(filters.StatusUpdate.NEW_CHAT_MEMBERS, handlers.welcome_new_members), MAIN_GROUP
        )

        # Callback queries from inline keyboards
        application.add_handler(CallbackQueryHandler(handlers.start_intro_callback, pattern='^start_intro$'), MAIN_GROUP)
        application.add_handler(CallbackQueryHandler(handlers.kyc_help_callback, pattern='^kyc_help$'), MAIN_GROUP)

        # Keyword responder, then whatever is left
        application.add_handler(
            MessageHandler(filters.TEXT & ~filters.COMMAND, self.dispatcher.handle_message), MAIN_GROUP
        )
        application.add_handler(
            MessageHandler(filters.TEXT & ~filters.COMMAND, handlers.log_unmatched_text), FALLBACK_GROUP
        )

        application.add_error_handler(self.error_handler)

    async def _post_init(self, application: Application):
        """Register the command menu and arm the digest schedule once the event loop is running."""
        try:
            await application.bot.set_my_commands(
                [telegram.BotCommand(command, description) for command, description in COMMANDS]
            )
        except TelegramError as e:
            logger.error(f"Failed to register bot commands: {e}")

        self.scheduler.start()
        if self.config.scheduler.run_on_startup:
            self.scheduler.run_once_now()

    async def _post_shutdown(self, application: Application):
        self.scheduler.shutdown()

    async def error_handler(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        """Handle bot errors."""
        logger.error(f"Bot error: {context.error}", exc_info=context.error)

        if isinstance(update, telegram.Update) and update.effective_message:
            try:
                await update.effective_message.reply_text(
                    "❌ An unexpected error occurred. Please try again later."
                )
            except TelegramError as e:
                logger.error(f"Failed to report error to user: {e}")

    def run(self):
        """Run the bot until stopped, via webhook when a domain is configured, else long polling."""
        telegram_config = self.config.telegram
        if telegram_config.webhook_url:
            logger.info(f"Starting webhook on port {telegram_config.port} for {telegram_config.webhook_url}")
            self.application.run_webhook(
                listen='0.0.0.0',
                port=telegram_config.port,
                url_path=telegram_config.webhook_path,
                webhook_url=telegram_config.webhook_url,
                allowed_updates=telegram.Update.ALL_TYPES,
            )
        else:
            logger.info("No webhook domain configured, starting long polling")
            self.application.run_polling(allowed_updates=telegram.Update.ALL_TYPES)
