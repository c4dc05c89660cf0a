"""Error handling module for the Telegram bot.

Centralized error handling with user-friendly messages in Spanish. Resolver
errors carry their own message; anything else gets a generic one.
"""
import logging
from typing import Optional

from telegram import Update
from telegram.ext import ContextTypes

from mediagrab.resolvers.exceptions import ResolutionError

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Ocurrió un error inesperado. Por favor intenta de nuevo."


def get_user_message(error: Optional[BaseException]) -> str:
    """Map an exception to the message shown to the user."""
    if isinstance(error, ResolutionError):
        return error.to_user_message()
    return DEFAULT_ERROR_MESSAGE


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle errors gracefully and send user-friendly messages.

    Logs the full error for debugging and sends an appropriate
    message to the user based on the error type.

    Args:
        update: Telegram update object (may be None for job errors)
        context: Telegram context object containing the error
    """
    error = context.error
    user_id = "unknown"
    if isinstance(update, Update) and update.effective_user:
        user_id = update.effective_user.id

    # Log the full error for debugging
    logger.error(f"Error handling update for user {user_id}: {error}", exc_info=error)

    # Send message to user if we have a chat to reply to
    if isinstance(update, Update) and update.effective_message:
        try:
            await update.effective_message.reply_text(get_user_message(error))
        except Exception as e:
            logger.error(f"Failed to send error message to user: {e}")


__all__ = ["DEFAULT_ERROR_MESSAGE", "error_handler", "get_user_message"]
