#!/usr/bin/env python3
"""
Main entry point for the Ecohavest community bot.
Loads configuration, sets up logging and runs the bot until it is stopped.
"""

import argparse
import logging
import os
import sys

from .utils.config import DEFAULT_CONFIG_PATH, ConfigManager, ConfigurationError
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ecohavest community Telegram bot")
    parser.add_argument(
        '--config',
        default=os.getenv('BOT_CONFIG_PATH', DEFAULT_CONFIG_PATH),
        help="Path to the YAML configuration file"
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config_manager = ConfigManager(args.config)
        config = config_manager.build()
    except ConfigurationError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.critical(f"Cannot start: {e}")
        return 1

    setup_logging(config.logging)
    logger.info(f"Starting Ecohavest bot with {config_manager.get_config_summary()}")

    # Imported late so configuration errors surface before the bot stack loads
    from .telegram_bot import CommunityBot

    bot = CommunityBot(config)
    bot.run()
    logger.info("Bot stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
