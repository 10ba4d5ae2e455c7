"""Telegram handlers mapping chat updates onto the shell's commands."""

import logging

from telegram import Update
from telegram.ext import ContextTypes

from eldercare.care.devices import FixedLocator
from eldercare.care.models import Location, Media, Role
from eldercare.llm.models import MODEL_MAP, ModelManager
from eldercare.shell import Shell

logger = logging.getLogger(__name__)

MAX_UPLOAD_SIZE = 20 * 1024 * 1024  # 20 MB

STILL_THINKING = "Still thinking about your last message, one moment..."
STILL_ANALYZING = "Still analyzing the previous request, one moment..."
PARENT_ONLY = "Switch to /parent to share photos, voice notes or your location."

_shell: Shell | None = None


def get_shell() -> Shell:
    """Get or create the process-wide shell."""
    global _shell  # noqa: PLW0603
    if _shell is None:
        _shell = Shell()
    return _shell


def _format_size(size_bytes: int) -> str:
    """Format byte count as a human-readable string."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"


def _check_size(file_size: int | None) -> None:
    if file_size and file_size > MAX_UPLOAD_SIZE:
        size = _format_size(file_size)
        limit = _format_size(MAX_UPLOAD_SIZE)
        raise ValueError(f"File too large: {size} (max {limit})")


async def _download_media(message) -> Media | None:
    """Download a photo, video, voice note or audio file as inline Media.

    Returns None if the message carries no attachment.
    Raises ValueError for oversized or unsupported files.
    """
    if message.photo:
        # Take the largest resolution (last in the list)
        source = message.photo[-1]
        mime_type = "image/jpeg"
    elif message.video:
        source = message.video
        mime_type = source.mime_type or "video/mp4"
    elif message.voice:
        source = message.voice
        mime_type = source.mime_type or "audio/ogg"
    elif message.audio:
        source = message.audio
        mime_type = source.mime_type or "audio/mpeg"
    elif message.document:
        source = message.document
        mime_type = source.mime_type or ""
        if not mime_type.startswith(("image/", "video/", "audio/")):
            raise ValueError("Only photos, videos and voice notes can be shared.")
    else:
        return None

    _check_size(source.file_size)
    tg_file = await source.get_file()
    data = await tg_file.download_as_bytearray()
    return Media.from_bytes(bytes(data), mime_type)


async def _reply_parent(update: Update, reply) -> None:
    if reply is None:
        await update.message.reply_text(STILL_THINKING)
        return
    await update.message.reply_text(reply.content)


async def handle_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — greet and explain the two views."""
    shell = get_shell()
    await update.message.reply_text(
        f"{shell.parent.messages[0].content}\n\n"
        "Use /parent for the check-in chat and /child for the care dashboard."
    )


async def handle_parent(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /parent — switch to the check-in chat."""
    get_shell().switch_role(Role.PARENT)
    await update.message.reply_text("Parent view. Send a message, photo, voice note or location.")


async def handle_child(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /child — switch to the caregiver dashboard."""
    shell = get_shell()
    shell.switch_role(Role.CHILD)
    await update.message.reply_text(
        f"Child view. Ask about {shell.parent_name}'s day, or use /dashboard and /update."
    )


async def handle_dashboard(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /dashboard — show the derived cards and timeline."""
    await update.message.reply_text("\n".join(get_shell().dashboard.summary_lines()))


async def _answer_child(update: Update, query: str | None) -> None:
    dashboard = get_shell().dashboard
    if dashboard.busy:
        await update.message.reply_text(STILL_ANALYZING)
        return
    text = await dashboard.request_update(query)
    await update.message.reply_text(text or STILL_ANALYZING)


async def handle_update(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /update [question] — ask the caregiver assistant."""
    query = " ".join(context.args or []).strip() or None
    await _answer_child(update, query)


async def handle_status(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /status — show session info."""
    shell = get_shell()
    mm = ModelManager.get()
    lines = [
        "ElderCare Status",
        f"View: {shell.role.value.lower()}",
        f"Chat model: {mm.active().name} ({mm.active().provider})",
        f"Messages in chat: {len(shell.parent.messages)}",
        f"Feed entries: {len(shell.feed)}",
        f"Structured check-ins: {len(shell.feed.check_ins)}",
    ]
    await update.message.reply_text("\n".join(lines))


async def handle_model(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /model — view or switch the chat model."""
    mm = ModelManager.get()
    args = context.args

    if not args:
        await update.message.reply_text(
            f"Chat model: {mm.active().name}\nOptions: {', '.join(MODEL_MAP)}"
        )
        return

    name = args[0].lower()
    model = mm.select(name)
    if model is None:
        await update.message.reply_text(
            f"Unknown model '{name}'. Valid options: {', '.join(MODEL_MAP)}"
        )
        return
    await update.message.reply_text(f"Chat model → {model.name} ({model.provider})")


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle plain text in whichever view is active."""
    shell = get_shell()
    text = update.message.text
    logger.info("Message (%s view): %s", shell.role.value, text[:80])

    if shell.role is Role.CHILD:
        await _answer_child(update, text)
        return

    await _reply_parent(update, await shell.parent.send(text))


async def handle_media(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle photos, videos and voice notes from the parent."""
    shell = get_shell()
    if shell.role is not Role.PARENT:
        await update.message.reply_text(PARENT_ONLY)
        return

    try:
        media = await _download_media(update.message)
    except ValueError as exc:
        await update.message.reply_text(str(exc))
        return
    except Exception:
        logger.exception("Failed to download attachment")
        await update.message.reply_text("Something went wrong receiving that file.")
        return

    if media is None:
        return

    logger.info("Media from parent: %s", media.mime_type)
    reply = await shell.parent.send(update.message.caption or "", media=media)
    await _reply_parent(update, reply)


async def handle_location(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle a shared Telegram location as a one-shot position."""
    shell = get_shell()
    if shell.role is not Role.PARENT:
        await update.message.reply_text(PARENT_ONLY)
        return

    loc = update.message.location
    locator = FixedLocator(Location(lat=loc.latitude, lng=loc.longitude))
    await _reply_parent(update, await shell.parent.share_location(locator))
