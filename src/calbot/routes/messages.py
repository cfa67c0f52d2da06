import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request

from calbot.chat.bot_logic import BotLogic
from calbot.chat.dto import IncomingMessage
from calbot.routes.dto import MessageRequest, MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def get_bot(request: Request) -> BotLogic:
    bot = getattr(request.app.state, "bot", None)
    if bot is None:
        raise HTTPException(status_code=503, detail="Bot is not initialized")
    return bot


@router.post("", response_model=MessageResponse)
async def receive_message(payload: MessageRequest, bot: BotLogic = Depends(get_bot)):
    """
    Webhook for chat messages.

    Flow:
    1. Annotate the message with its sender
    2. Route it to the handler of its chat (unknown and direct chats are ignored)
    3. Return the agent's reply, or null when there is nothing to say
    """
    route_start_time = time.time()
    message = IncomingMessage(**payload.model_dump())

    outgoing = await bot.handle_message(message)

    logger.info(
        "Message for chat %s handled in %.3f seconds (reply=%s)",
        payload.chat_id,
        time.time() - route_start_time,
        outgoing is not None,
    )
    return MessageResponse(reply=outgoing.text if outgoing else None)
