"""Telegram application factory."""

import logging

from telegram.ext import Application, CommandHandler, MessageHandler, filters

from eldercare.bot.handlers import (
    handle_child,
    handle_dashboard,
    handle_location,
    handle_media,
    handle_message,
    handle_model,
    handle_parent,
    handle_start,
    handle_status,
    handle_update,
)
from eldercare.config import settings

logger = logging.getLogger(__name__)

MEDIA_FILTER = filters.PHOTO | filters.VIDEO | filters.VOICE | filters.AUDIO | filters.Document.ALL


def create_app() -> Application:
    """Build and configure the Telegram application."""
    app = Application.builder().token(settings.telegram_bot_token).build()

    app.add_handler(CommandHandler("start", handle_start))
    app.add_handler(CommandHandler("parent", handle_parent))
    app.add_handler(CommandHandler("child", handle_child))
    app.add_handler(CommandHandler("dashboard", handle_dashboard))
    app.add_handler(CommandHandler("update", handle_update))
    app.add_handler(CommandHandler("status", handle_status))
    app.add_handler(CommandHandler("model", handle_model))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))
    app.add_handler(MessageHandler(MEDIA_FILTER, handle_media))
    app.add_handler(MessageHandler(filters.LOCATION, handle_location))

    return app
