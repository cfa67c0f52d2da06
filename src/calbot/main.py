import logging
from typing import Optional

from fastapi import FastAPI

from calbot.chat.bot_logic import BotLogic
from calbot.chat.handlers import ChatHandlerRegistry
from calbot.config import Settings, get_settings, validate_required_keys
from calbot.constants import APP_SETTINGS
from calbot.routes import health, messages
from calbot.supervisor.workflow import build_agent_system

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s"
    )


def build_bot(settings: Settings) -> BotLogic:
    """Wire agent, chat handlers and router from settings."""
    agent = build_agent_system(settings)
    registry = ChatHandlerRegistry.from_chat_calendars(agent, settings.CHAT_CALENDARS)
    return BotLogic(registry)


def create_app(bot: Optional[BotLogic] = None, settings: Optional[Settings] = None) -> FastAPI:
    app = FastAPI(
        title=APP_SETTINGS.APP_NAME,
        version=APP_SETTINGS.VERSION,
        description=APP_SETTINGS.DESCRIPTION
    )
    app.state.bot = bot

    @app.on_event("startup")
    async def startup_event():
        """Validate configuration and build the bot on startup"""
        if app.state.bot is not None:
            return
        current = settings or get_settings()
        try:
            validate_required_keys(current)
            app.state.bot = build_bot(current)
            logger.info("Configuration validation passed, %d chats configured", len(app.state.bot.registry))
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup resources on shutdown"""
        logger.info("Shutting down gracefully...")

    @app.get("/")
    async def root():
        return {"message": f"Welcome to {APP_SETTINGS.APP_NAME}"}

    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(messages.router, prefix="/messages", tags=["Messages"])

    return app


def main():
    import uvicorn

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        create_app(settings=settings),
        host="0.0.0.0",
        port=settings.APP_PORT,
    )


if __name__ == "__main__":
    main()
