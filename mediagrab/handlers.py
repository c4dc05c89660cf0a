"""Telegram bot handlers for media URL resolution."""
import logging
import uuid
from typing import Optional, Tuple

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from mediagrab.formatters import format_result_message
from mediagrab.resolvers import MediaResolverService, ResolveRequest, build_service
from mediagrab.resolvers.exceptions import ResolutionError
from mediagrab.resolvers.url_detector import detect_urls, is_well_formed, platform_label

logger = logging.getLogger(__name__)

VALID_TIERS = ("sd", "hd", "photo")

_service: Optional[MediaResolverService] = None


def get_service() -> MediaResolverService:
    """Return the process-wide resolver service, building it on first use."""
    global _service
    if _service is None:
        _service = build_service()
    return _service


def _url_key(correlation_id: str) -> str:
    return f"download_url_{correlation_id}"


def _get_quality_keyboard(correlation_id: str) -> InlineKeyboardMarkup:
    """Build the quality selection keyboard for a stored URL.

    Args:
        correlation_id: Key of the URL in user_data

    Returns:
        InlineKeyboardMarkup with SD, HD, photo and cancel options
    """
    keyboard = [
        [
            InlineKeyboardButton("📱 SD (480p)", callback_data=f"resolve:sd:{correlation_id}"),
            InlineKeyboardButton("🎬 HD (1080p)", callback_data=f"resolve:hd:{correlation_id}"),
        ],
        [InlineKeyboardButton("🖼 Foto", callback_data=f"resolve:photo:{correlation_id}")],
        [InlineKeyboardButton("❌ Cancelar", callback_data=f"resolve:cancel:{correlation_id}")],
    ]
    return InlineKeyboardMarkup(keyboard)


async def _resolve_for_user(
    url: str,
    tier: str,
    correlation_id: str,
) -> Tuple[str, Optional[str]]:
    """Run the resolver and build the reply.

    Returns:
        Tuple of (message text, parse mode)
    """
    try:
        request = ResolveRequest.from_dict({"url": url, "qualityTier": tier})
        result = await get_service().resolve(request, correlation_id=correlation_id)
    except ResolutionError as e:
        logger.warning(f"[{correlation_id}] Resolution failed: {e}")
        return e.to_user_message(), None

    return format_result_message(result), ParseMode.HTML


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Send a welcome message when the command /start is issued.

    Args:
        update: Telegram update object
        context: Telegram context object
    """
    await update.message.reply_text(
        "¡Hola! Envíame un enlace de un video o foto y te daré un enlace de "
        "descarga directa.\n\n"
        "Plataformas: YouTube, Instagram, TikTok, Twitter/X, Facebook, Vimeo "
        "y muchas más.\n\n"
        "Comandos disponibles:\n"
        "/download <url> [sd|hd|photo] - Obtiene el enlace de descarga"
    )


async def handle_download_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /download command.

    Usage: /download <url> [sd|hd|photo]

    Without a quality the user picks one from an inline keyboard.

    Args:
        update: Telegram update object
        context: Telegram context object
    """
    user_id = update.effective_user.id
    args = context.args if context.args else []
    logger.info(f"Download command received from user {user_id}")

    if not args:
        await update.message.reply_text(
            "Por favor proporciona una URL.\n"
            "Ejemplo: /download https://youtu.be/dQw4w9WgXcQ hd"
        )
        return

    url = args[0].strip()
    if not is_well_formed(url):
        await update.message.reply_text(
            "La URL no parece válida. Debe empezar con http:// o https://"
        )
        return

    correlation_id = str(uuid.uuid4())[:8]

    tier = args[1].lower() if len(args) > 1 else None
    if tier is None:
        context.user_data[_url_key(correlation_id)] = url
        await update.message.reply_text(
            f"Enlace de {platform_label(url)}. Selecciona calidad:",
            reply_markup=_get_quality_keyboard(correlation_id),
        )
        return

    if tier not in VALID_TIERS:
        await update.message.reply_text(
            f"Calidad no soportada: {tier}\n"
            f"Calidades soportadas: {', '.join(VALID_TIERS)}"
        )
        return

    status_message = await update.message.reply_text("Buscando enlace de descarga...")
    text, parse_mode = await _resolve_for_user(url, tier, correlation_id)
    await status_message.edit_text(text, parse_mode=parse_mode)


async def handle_url_detection(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Detect URLs in regular text messages and offer quality options.

    Only the first URL of a message is handled.

    Args:
        update: Telegram update object
        context: Telegram context object
    """
    message = update.message
    if not message or not message.text:
        return None

    urls = [u for u in detect_urls(message.text, message.entities) if is_well_formed(u)]
    if not urls:
        return None

    url = urls[0]
    correlation_id = str(uuid.uuid4())[:8]
    context.user_data[_url_key(correlation_id)] = url
    logger.info(
        f"[{correlation_id}] URL detected from user {update.effective_user.id}: {url}"
    )

    await message.reply_text(
        f"Enlace de {platform_label(url)} detectado. Selecciona calidad:",
        reply_markup=_get_quality_keyboard(correlation_id),
    )


async def handle_resolve_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle quality selection from the inline keyboard.

    Callback data: ``resolve:<sd|hd|photo>:<correlation_id>``

    Args:
        update: Telegram update object
        context: Telegram context object
    """
    query = update.callback_query
    await query.answer()

    try:
        _, tier, correlation_id = query.data.split(":", 2)
    except ValueError:
        logger.warning(f"Malformed callback data: {query.data!r}")
        return

    url = context.user_data.pop(_url_key(correlation_id), None)
    if not url:
        await query.edit_message_text(
            "No se encontró la URL. Envía el enlace de nuevo."
        )
        return

    await query.edit_message_text("Buscando enlace de descarga...")
    text, parse_mode = await _resolve_for_user(url, tier, correlation_id)
    await query.edit_message_text(text, parse_mode=parse_mode)


async def handle_resolve_cancel_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle the cancel button of the quality keyboard.

    Args:
        update: Telegram update object
        context: Telegram context object
    """
    query = update.callback_query
    await query.answer()

    correlation_id = query.data.split(":", 2)[-1]
    context.user_data.pop(_url_key(correlation_id), None)
    await query.edit_message_text("Cancelado.")


__all__ = [
    "get_service",
    "handle_download_command",
    "handle_resolve_callback",
    "handle_resolve_cancel_callback",
    "handle_url_detection",
    "start",
]
