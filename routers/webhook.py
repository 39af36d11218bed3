import asyncio
import logging
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import PlainTextResponse

from dependencies import get_dispatcher
from dispatcher import Dispatcher

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/wh", summary="GitHub Push Webhook Endpoint", response_class=PlainTextResponse)
async def handle_webhook(
        request: Request,
        x_hub_signature_256: str = Header(None),
        x_github_event: str = Header(None),
        dispatcher: Dispatcher = Depends(get_dispatcher)
):
    logger.info("Webhook endpoint was called.")
    body_bytes = await request.body()

    # The deploy script blocks until it exits; keep it off the event loop.
    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(
        None,
        dispatcher.dispatch,
        body_bytes,
        x_hub_signature_256,
        x_github_event
    )
    return PlainTextResponse(result.message, status_code=result.status_code)
