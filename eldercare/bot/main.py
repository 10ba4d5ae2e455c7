"""ElderCare bot entry point."""

import logging

from eldercare.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Start the Telegram bot."""
    from eldercare.bot.app import create_app
    from eldercare.llm.models import ModelManager

    if not settings.telegram_bot_token:
        logger.warning("TELEGRAM_BOT_TOKEN is empty — the bot cannot connect")

    model = ModelManager.get().active()
    logger.info("Starting ElderCare on Telegram with model %s...", model.name)
    app = create_app()
    app.run_polling()


if __name__ == "__main__":
    main()
