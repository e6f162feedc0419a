"""
Discord Music Bot - Main Entry Point
Streams audio URLs into Discord voice channels with a simple queue and idle auto-leave.
"""

import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler

from dotenv import load_dotenv

from bot import MusicBot
from config import LOGGING_CONFIG, load_token, validate_config

logger = logging.getLogger(__name__)

def setup_logging():
    """Log to the console and to a rotating file."""
    logging.basicConfig(
        level=LOGGING_CONFIG['level'],
        format=LOGGING_CONFIG['format'],
        handlers=[
            RotatingFileHandler(
                LOGGING_CONFIG['file'],
                maxBytes=LOGGING_CONFIG['max_file_size'],
                backupCount=LOGGING_CONFIG['backup_count']
            ),
            logging.StreamHandler()
        ]
    )

async def main(token: str):
    """Main function to start the Discord music bot."""
    bot = MusicBot()
    async with bot:
        logger.info("Starting Discord Music Bot...")
        await bot.start(token)

def run():
    load_dotenv()
    setup_logging()

    errors, warnings = validate_config()
    for warning in warnings:
        logger.warning(warning)
    if errors:
        for error in errors:
            logger.critical(error)
        sys.exit(1)

    try:
        asyncio.run(main(load_token()))
    except KeyboardInterrupt:
        logger.info("Bot shutdown requested by user")
    finally:
        logger.info("Bot shutdown complete")

if __name__ == "__main__":
    run()
