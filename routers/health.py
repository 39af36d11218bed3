# routers/health.py

from fastapi import APIRouter, Depends
import logging

from dependencies import get_dispatcher
from dispatcher import Dispatcher

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", summary="Health Check Endpoint")
def health_check(dispatcher: Dispatcher = Depends(get_dispatcher)):
    logger.debug("Health check endpoint was called.")
    return {"status": "OK", "repositories": len(dispatcher.repositories)}
