"""Display helpers for bot replies."""
import html
from typing import Optional

from mediagrab.resolvers.format_selector import quality_label
from mediagrab.resolvers.service import ResolvedMedia

UNKNOWN_SIZE = "Tamaño desconocido"


def format_duration(seconds: float) -> str:
    """Format seconds as M:SS or H:MM:SS."""
    total = int(seconds or 0)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_filesize(size_bytes: Optional[int]) -> str:
    """Format a byte count in MB, or GB from 1024 MB up."""
    if not size_bytes:
        return UNKNOWN_SIZE
    mb = size_bytes / (1024 * 1024)
    if mb >= 1024:
        return f"{mb / 1024:.2f} GB"
    return f"{mb:.2f} MB"


def format_result_message(result: ResolvedMedia) -> str:
    """Build the HTML reply for a resolved media item.

    Args:
        result: Successful resolution outcome

    Returns:
        Message text for ``parse_mode="HTML"``
    """
    descriptor = result.descriptor
    fmt = result.selected_format

    lines = [
        f"<b>{html.escape(descriptor.title)}</b>",
        f"{html.escape(descriptor.platform_label)} · {html.escape(descriptor.uploader)}",
    ]
    if descriptor.is_photo:
        lines.append(f"Foto {fmt.width}x{fmt.height} ({fmt.extension or 'jpg'})")
    else:
        lines.append(
            f"Duración: {format_duration(descriptor.duration_seconds)} · "
            f"Calidad: {quality_label(fmt.height)} ({fmt.extension})"
        )
    lines.append(f"Tamaño: {format_filesize(fmt.file_size_bytes)}")

    if result.degraded:
        lines.append("⚠️ Solo encontré este formato sin audio.")

    lines.append("")
    lines.append(f'<a href="{html.escape(result.download_url, quote=True)}">Enlace de descarga</a>')
    lines.append("El enlace es temporal; descárgalo pronto.")
    return "\n".join(lines)


__all__ = [
    "format_duration",
    "format_filesize",
    "format_result_message",
]
