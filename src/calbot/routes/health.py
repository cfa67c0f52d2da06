from fastapi import APIRouter, Request

from calbot.routes.dto import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check(request: Request):
    """Health check with the number of configured chats."""
    bot = getattr(request.app.state, "bot", None)
    if bot is None:
        return HealthResponse(status="degraded", service="calbot", components={"bot": "not initialized"})
    return HealthResponse(
        status="ok",
        service="calbot",
        components={"bot": "ready", "chats": str(len(bot.registry))},
    )
