"""
Command, event and callback handlers for the community bot.
Handles user commands, new member greetings, admin actions and button callbacks.
"""

import html
import logging
from typing import List, Tuple

import telegram
from telegram.constants import ChatMemberStatus
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from ..utils.logging import log_response_time
from .digest import DigestService

logger = logging.getLogger(__name__)

COMMANDS: List[Tuple[str, str]] = [
    ('help', 'Show this help message'),
    ('faq', 'Frequently Asked Questions'),
    ('crypto_updates', 'Get latest crypto prices & news'),
    ('ban', 'Ban a user (admin only)'),
    ('shutdown', 'Shutdown the bot (admin only)'),
]

ADMIN_STATUSES = (ChatMemberStatus.ADMINISTRATOR, ChatMemberStatus.OWNER)

START_TEXT = "HI from Ecohavest"

FAQ_TEXT = """
<b>Frequently Asked Questions:</b>

<b>1. How can I make deals with Ecoharvest?</b>
   - To make a deal, you must first become a registered customer. Once you are signed up, you can make your first deposit. Alternatively, reach out to our customer service at <a href="mailto:support@ecohavest.org">support@ecohavest.org</a>.

<b>2. How can I apply for KYC Verification?</b>
   - Once verified, you'll access all Ecoharvest services. Verify your identity by uploading clear color copies (photo or scan) of:
     • <b>Proof of identity:</b> Passport, national ID card, or driving license (if it includes your address, additional proof might not be needed).
     • <b>Proof of address:</b> Bank/card statement or utility bill (e.g., water, gas, electric, internet, phone), residency certificate, or tenancy contract.

<b>3. Are there any withdrawal limits?</b>
   - You can request cryptocurrency withdrawals equivalent to at least 50 USD.

<b>4. How long does it take for my deposit to be added?</b>
   - Deposits are processed immediately.

<b>5. How does Ecoharvest thrive?</b>
   - Ecoharvest provides Solar Energy Solutions using automated elements, cryptocurrency trading, AI-based asset management, Blockchain technologies, and protocols for fast order delivery.
"""

INTRO_TEXT = (
    "Here's a quick intro to get started:\n\n"
    "• Read the <a href=\"https://ecohavest.org/about\">About Us</a>\n"
    "• Drop a hello in #introductions\n"
    "• Use /help for commands\n"
    "• Use /faq for frequently asked questions"
)

START_INTRO_TEXT = (
    "Great! Please tell us a bit about yourself.<i> For example:</i>\n"
    "\"I'm Alex, I love automation and chess!\""
)

KYC_HELP_TEXT = (
    "<b>Need help with KYC?</b>\n\n"
    "If you're having trouble with the KYC process, please:\n"
    "• Ensure your documents are clear and valid.\n"
    "• Check the <a href=\"https://ecohavest.org/faq\">FAQ page</a> for common issues.\n"
    "• Contact support at <a href=\"mailto:support@ecohavest.org\">support@ecohavest.org</a> for direct assistance."
)

NOT_AUTHORIZED = "You are not authorized to use this command."

CRYPTO_UNAVAILABLE = "Could not retrieve crypto price data."
NEWS_UNAVAILABLE = "Could not retrieve cryptocurrency news (check API key and network)."


def help_text() -> str:
    lines = ['Available commands:']
    lines.extend(f"/{command} - {description}" for command, description in COMMANDS)
    return "\n".join(lines)


def intro_keyboard() -> telegram.InlineKeyboardMarkup:
    return telegram.InlineKeyboardMarkup([
        [telegram.InlineKeyboardButton('📜 About Us', url='https://ecohavest.org/about')],
        [telegram.InlineKeyboardButton('💬 Introduce Me', callback_data='start_intro')],
    ])


class BotHandlers:
    """Handles all bot commands, events and callbacks."""

    def __init__(self, digest_service: DigestService):
        self.digest_service = digest_service

    @log_response_time
    async def start_command(self, update: telegram.Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /start command."""
        await update.effective_message.reply_text(START_TEXT)

    @log_response_time
    async def help_command(self, update: telegram.Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /help command."""
        await update.effective_message.reply_text(help_text())

    @log_response_time
    async def faq_command(self, update: telegram.Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /faq command."""
        await update.effective_message.reply_html(FAQ_TEXT)

    @log_response_time
    async def crypto_updates_command(self, update: telegram.Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /crypto_updates: build the digest on demand and reply with it."""
        message = update.effective_message
        await message.reply_text('Fetching latest crypto prices and news, please wait...')
        try:
            digest = await self.digest_service.build_digest(
                market_failed=CRYPTO_UNAVAILABLE, news_failed=NEWS_UNAVAILABLE
            )
            await message.reply_html(digest.text)
        except Exception as e:
            logger.error(f"Error fetching or sending crypto/news data: {e}", exc_info=True)
            await message.reply_text('An error occurred while fetching crypto prices and news.')

    async def is_admin(self, update: telegram.Update, context: ContextTypes.DEFAULT_TYPE) -> bool:
        """Check the sender is a chat administrator; tell them why not otherwise."""
        message = update.effective_message
        user = update.effective_user
        if user is None:
            await message.reply_text('Unable to verify user.')
            return False

        try:
            member = await context.bot.get_chat_member(update.effective_chat.id, user.id)
        except TelegramError as e:
            logger.error(f"Error checking admin status: {e}")
            await message.reply_text('An error occurred while checking permissions.')
            return False

        if member.status in ADMIN_STATUSES:
            return True

        logger.info(f"User {user.id} denied admin command in chat {update.effective_chat.id}")
        await message.reply_text(NOT_AUTHORIZED)
        return False

    @log_response_time
    async def ban_command(self, update: telegram.Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /ban: admins reply to a member's message to ban them."""
        if not await self.is_admin(update, context):
            return

        message = update.effective_message
        target_message = message.reply_to_message
        if target_message is None or target_message.from_user is None:
            await message.reply_text('Reply to a message from the user you want to ban.')
            return

        target = target_message.from_user
        try:
            await context.bot.ban_chat_member(update.effective_chat.id, target.id)
        except TelegramError as e:
            logger.error(f"Failed to ban user {target.id}: {e}")
            await message.reply_text('Could not ban that user.')
            return

        logger.info(f"User {target.id} banned by {update.effective_user.id}")
        await message.reply_html(f"🚫 <b>{html.escape(target.full_name)}</b> has been banned.")

    @log_response_time
    async def shutdown_command(self, update: telegram.Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /shutdown: admins stop the bot."""
        if not await self.is_admin(update, context):
            return

        await update.effective_message.reply_text('Shutting down...')
        logger.info(f"Shutdown requested by user {update.effective_user.id}")
        context.application.stop_running()

    @log_response_time
    async def welcome_new_members(self, update: telegram.Update, context: ContextTypes.DEFAULT_TYPE):
        """Greet each new chat member."""
        message = update.effective_message
        for member in message.new_chat_members or []:
            if member.is_bot:
                continue
            try:
                await message.reply_html(f"👋 Welcome, <b>{html.escape(member.first_name)}</b>!")
                await message.reply_html(INTRO_TEXT, reply_markup=intro_keyboard())
            except TelegramError as e:
                logger.error(f"Failed to welcome member {member.id}: {e}")

    @log_response_time
    async def start_intro_callback(self, update: telegram.Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle the 'Introduce Me' button."""
        query = update.callback_query
        await query.answer()
        await query.message.reply_html(START_INTRO_TEXT)

    @log_response_time
    async def kyc_help_callback(self, update: telegram.Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle the KYC 'Need Help?' button."""
        query = update.callback_query
        await query.answer("Providing KYC help...")
        await query.message.reply_html(KYC_HELP_TEXT)

    @log_response_time
    async def log_unmatched_text(self, update: telegram.Update, context: ContextTypes.DEFAULT_TYPE):
        """Last handler group: text no keyword claimed."""
        message = update.effective_message
        if message is not None:
            logger.debug(f"No keyword matched message {message.message_id} in chat {message.chat_id}")
