"""Main module for the Telegram bot."""
import logging
import sys

# Import config first (before logging setup to use LOG_LEVEL)
from mediagrab.config import config

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, config.LOG_LEVEL),
)
# httpx logs every Telegram API poll at INFO
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)
logger.info(f"Logging configured at level: {config.LOG_LEVEL}")

from telegram import Update
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, MessageHandler, filters

from mediagrab.error_handler import error_handler
from mediagrab.handlers import (
    get_service,
    handle_download_command,
    handle_resolve_callback,
    handle_resolve_cancel_callback,
    handle_url_detection,
    start,
)


def main() -> None:
    """Start the bot."""
    if not config.BOT_TOKEN or not config.BOT_TOKEN.strip():
        logger.error("BOT_TOKEN is required to start the bot")
        sys.exit(1)

    # Build the resolver once so tool discovery is logged at startup
    get_service()

    # Create the Application and pass it your bot's token
    application = Application.builder().token(config.BOT_TOKEN).build()

    # Add handlers
    application.add_handler(CommandHandler("start", start))
    application.add_handler(CommandHandler("download", handle_download_command))

    # Callback handlers (cancel before the general quality pattern)
    application.add_handler(CallbackQueryHandler(handle_resolve_cancel_callback, pattern="^resolve:cancel:"))
    application.add_handler(CallbackQueryHandler(handle_resolve_callback, pattern="^resolve:(sd|hd|photo):"))

    # URL detection handler - detects URLs in regular text messages
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_url_detection))

    # Add global error handler
    application.add_error_handler(error_handler)
    logger.info("Error handler registered")

    # Run the bot until the user presses Ctrl-C
    logger.info("Starting bot...")
    application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
