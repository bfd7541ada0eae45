"""
This module initializes the Telegram bot, including its handlers and main components.
It ensures that the bot is properly configured and ready to run.
"""

from .bot import CommunityBot

__all__ = ['CommunityBot']
