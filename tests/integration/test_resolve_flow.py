"""Integration tests for the resolve flow of the bot.

These tests verify the end-to-end resolve functionality including:
- /download command with and without a quality
- URL detection in messages
- Quality selection from the inline keyboard
- Cancellation
- Error handling
"""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from telegram import InlineKeyboardMarkup, Update
from telegram.constants import ParseMode

from mediagrab.error_handler import DEFAULT_ERROR_MESSAGE, error_handler
from mediagrab.handlers import (
    _get_quality_keyboard,
    handle_download_command,
    handle_resolve_callback,
    handle_resolve_cancel_callback,
    handle_url_detection,
    start,
)
from mediagrab.resolvers.exceptions import (
    AttemptFailure,
    FailureKind,
    MediaNotFoundError,
    ResolutionFailed,
)
from mediagrab.resolvers.models import Format, MediaDescriptor, MediaKind, Platform, QualityTier
from mediagrab.resolvers.service import ResolvedMedia

YOUTUBE_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


def make_result():
    fmt = Format(
        format_id="22", extension="mp4", width=1280, height=720,
        video_codec="avc1", audio_codec="mp4a",
        direct_url="https://rr1.googlevideo.com/22",
    )
    descriptor = MediaDescriptor(
        id="dQw4w9WgXcQ",
        canonical_url=YOUTUBE_URL,
        source_platform=Platform.YOUTUBE,
        media_kind=MediaKind.VIDEO,
        formats=(fmt,),
        title="Never Gonna Give You Up",
        duration_seconds=213,
        uploader="Rick Astley",
        platform_label="YouTube",
    )
    return ResolvedMedia(descriptor, fmt, fmt.direct_url, "yt-dlp")


@pytest.fixture
def mock_update():
    """Create mock update object."""
    update = MagicMock()
    update.effective_user = MagicMock()
    update.effective_user.id = 12345
    update.effective_chat = MagicMock()
    update.effective_chat.id = 67890
    update.message = MagicMock()
    update.message.text = ""
    update.message.entities = []
    update.message.reply_text = AsyncMock()
    update.callback_query = MagicMock()
    update.callback_query.data = ""
    update.callback_query.answer = AsyncMock()
    update.callback_query.edit_message_text = AsyncMock()
    return update


@pytest.fixture
def mock_context():
    """Create mock context object."""
    context = MagicMock()
    context.user_data = {}
    context.bot = AsyncMock()
    context.args = []
    return context


@pytest.fixture
def mock_service():
    """Patch the resolver service used by the handlers."""
    service = MagicMock()
    service.resolve = AsyncMock(return_value=make_result())
    with patch("mediagrab.handlers.get_service", return_value=service):
        yield service


class TestStartCommand:
    @pytest.mark.asyncio
    async def test_start_lists_download_command(self, mock_update, mock_context):
        await start(mock_update, mock_context)

        call_args = mock_update.message.reply_text.call_args[0][0]
        assert "/download" in call_args


class TestDownloadCommand:
    """Tests for /download command."""

    @pytest.mark.asyncio
    async def test_download_command_no_url(self, mock_update, mock_context):
        """Test /download command without URL shows error."""
        mock_context.args = []

        await handle_download_command(mock_update, mock_context)

        mock_update.message.reply_text.assert_called_once()
        call_args = mock_update.message.reply_text.call_args[0][0]
        assert "Por favor proporciona una URL" in call_args

    @pytest.mark.asyncio
    async def test_download_command_invalid_url(self, mock_update, mock_context):
        """Test /download command with invalid URL shows error."""
        mock_context.args = ["not-a-valid-url"]

        await handle_download_command(mock_update, mock_context)

        call_args = mock_update.message.reply_text.call_args[0][0]
        assert "no parece válida" in call_args

    @pytest.mark.asyncio
    async def test_download_command_without_quality_shows_menu(self, mock_update, mock_context):
        """Test /download command with only a URL shows the quality menu."""
        mock_context.args = [YOUTUBE_URL]

        await handle_download_command(mock_update, mock_context)

        call_args = mock_update.message.reply_text.call_args[0][0]
        assert "Selecciona calidad" in call_args
        assert "YouTube" in call_args

        reply_markup = mock_update.message.reply_text.call_args[1]["reply_markup"]
        assert isinstance(reply_markup, InlineKeyboardMarkup)
        stored_urls = [v for k, v in mock_context.user_data.items() if k.startswith("download_url_")]
        assert stored_urls == [YOUTUBE_URL]

    @pytest.mark.asyncio
    async def test_download_command_unsupported_quality(self, mock_update, mock_context, mock_service):
        mock_context.args = [YOUTUBE_URL, "8k"]

        await handle_download_command(mock_update, mock_context)

        call_args = mock_update.message.reply_text.call_args[0][0]
        assert "Calidad no soportada" in call_args
        mock_service.resolve.assert_not_called()

    @pytest.mark.asyncio
    async def test_download_command_with_quality_resolves(self, mock_update, mock_context, mock_service):
        """Test /download <url> hd replies with the direct link."""
        mock_context.args = [YOUTUBE_URL, "HD"]
        status_message = MagicMock()
        status_message.edit_text = AsyncMock()
        mock_update.message.reply_text.return_value = status_message

        await handle_download_command(mock_update, mock_context)

        request = mock_service.resolve.call_args[0][0]
        assert request.url == YOUTUBE_URL
        assert request.quality_tier == QualityTier.HD

        text = status_message.edit_text.call_args[0][0]
        assert "Never Gonna Give You Up" in text
        assert "https://rr1.googlevideo.com/22" in text
        assert status_message.edit_text.call_args[1]["parse_mode"] == ParseMode.HTML

    @pytest.mark.asyncio
    async def test_download_command_failure_message(self, mock_update, mock_context, mock_service):
        """Test resolver failures are shown with their user message."""
        mock_context.args = [YOUTUBE_URL, "sd"]
        mock_service.resolve.side_effect = ResolutionFailed([
            AttemptFailure("yt-dlp", FailureKind.NOT_FOUND, "Video unavailable"),
        ])
        status_message = MagicMock()
        status_message.edit_text = AsyncMock()
        mock_update.message.reply_text.return_value = status_message

        await handle_download_command(mock_update, mock_context)

        text = status_message.edit_text.call_args[0][0]
        assert "no está disponible" in text
        assert status_message.edit_text.call_args[1]["parse_mode"] is None


class TestUrlDetection:
    """Tests for URL detection in messages."""

    @pytest.mark.asyncio
    async def test_url_detection_no_url(self, mock_update, mock_context):
        """Test message without URL is ignored."""
        mock_update.message.text = "Hola, sin enlaces aquí"

        result = await handle_url_detection(mock_update, mock_context)

        assert result is None
        mock_update.message.reply_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_url_detection_with_url(self, mock_update, mock_context):
        """Test message with URL shows quality menu."""
        mock_update.message.text = "Mira este video: https://vm.tiktok.com/ZMabc123/"

        await handle_url_detection(mock_update, mock_context)

        call_args = mock_update.message.reply_text.call_args[0][0]
        assert "Enlace de TikTok detectado" in call_args

    @pytest.mark.asyncio
    async def test_url_detection_multiple_urls(self, mock_update, mock_context):
        """Test message with multiple URLs uses first one."""
        mock_update.message.text = (
            "Videos: https://youtube.com/watch?v=first and https://youtube.com/watch?v=second"
        )

        await handle_url_detection(mock_update, mock_context)

        mock_update.message.reply_text.assert_called_once()
        stored_urls = [v for k, v in mock_context.user_data.items() if k.startswith("download_url_")]
        assert len(stored_urls) == 1
        assert "first" in stored_urls[0]


class TestQualitySelection:
    """Tests for the quality selection callback."""

    @pytest.mark.asyncio
    async def test_quality_selection_resolves(self, mock_update, mock_context, mock_service):
        correlation_id = "abc123"
        mock_update.callback_query.data = f"resolve:sd:{correlation_id}"
        mock_context.user_data[f"download_url_{correlation_id}"] = YOUTUBE_URL

        await handle_resolve_callback(mock_update, mock_context)

        mock_update.callback_query.answer.assert_called_once()
        request = mock_service.resolve.call_args[0][0]
        assert request.quality_tier == QualityTier.SD
        assert mock_service.resolve.call_args[1]["correlation_id"] == correlation_id

        last_text = mock_update.callback_query.edit_message_text.call_args[0][0]
        assert "Enlace de descarga" in last_text
        assert f"download_url_{correlation_id}" not in mock_context.user_data

    @pytest.mark.asyncio
    async def test_photo_selection_sets_photo_hint(self, mock_update, mock_context, mock_service):
        correlation_id = "abc123"
        mock_update.callback_query.data = f"resolve:photo:{correlation_id}"
        mock_context.user_data[f"download_url_{correlation_id}"] = YOUTUBE_URL

        await handle_resolve_callback(mock_update, mock_context)

        request = mock_service.resolve.call_args[0][0]
        assert request.media_kind_hint.value == "photo"

    @pytest.mark.asyncio
    async def test_quality_selection_missing_url(self, mock_update, mock_context, mock_service):
        """Test selection with missing URL shows error."""
        mock_update.callback_query.data = "resolve:hd:abc123"

        await handle_resolve_callback(mock_update, mock_context)

        mock_update.callback_query.edit_message_text.assert_called_once()
        call_args = mock_update.callback_query.edit_message_text.call_args[0][0]
        assert "No se encontró la URL" in call_args
        mock_service.resolve.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancel(self, mock_update, mock_context):
        correlation_id = "abc123"
        mock_update.callback_query.data = f"resolve:cancel:{correlation_id}"
        mock_context.user_data[f"download_url_{correlation_id}"] = YOUTUBE_URL

        await handle_resolve_cancel_callback(mock_update, mock_context)

        assert mock_context.user_data == {}
        mock_update.callback_query.edit_message_text.assert_called_once_with("Cancelado.")


class TestKeyboard:
    def test_keyboard_callback_data(self):
        keyboard = _get_quality_keyboard("abc123").inline_keyboard
        data = [button.callback_data for row in keyboard for button in row]
        assert data == [
            "resolve:sd:abc123",
            "resolve:hd:abc123",
            "resolve:photo:abc123",
            "resolve:cancel:abc123",
        ]


class TestErrorHandler:
    """Tests for the global error handler."""

    @pytest.mark.asyncio
    async def test_resolution_error_message(self, mock_context):
        update = MagicMock(spec=Update)
        update.effective_user = MagicMock(id=12345)
        update.effective_message = MagicMock()
        update.effective_message.reply_text = AsyncMock()
        mock_context.error = MediaNotFoundError("private video")

        await error_handler(update, mock_context)

        text = update.effective_message.reply_text.call_args[0][0]
        assert text == MediaNotFoundError().to_user_message()

    @pytest.mark.asyncio
    async def test_unexpected_error_message(self, mock_context):
        update = MagicMock(spec=Update)
        update.effective_user = MagicMock(id=12345)
        update.effective_message = MagicMock()
        update.effective_message.reply_text = AsyncMock()
        mock_context.error = RuntimeError("boom")

        await error_handler(update, mock_context)

        update.effective_message.reply_text.assert_called_once_with(DEFAULT_ERROR_MESSAGE)

    @pytest.mark.asyncio
    async def test_no_update(self, mock_context):
        mock_context.error = RuntimeError("job failed")
        await error_handler(None, mock_context)
