import logging
from typing import Any, Dict
from fastapi import APIRouter, Body, Depends, HTTPException, Request
from pydantic import ValidationError

from api.deps import get_gateway, require_session
from api.envelope import relay
from clients.gateway import BackendGateway
from models.chat import CHAT_COMMANDS

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/chat", summary="Single entry point for every chat action")
async def chat(
    request: Request,
    body: Dict[str, Any] = Body(...),
    gateway: BackendGateway = Depends(get_gateway)
):
    """
    1. `action` picks one variant of the chat request union.
    2. The variant validates its own required fields.
    3. The variant names the single backend call it maps to.
    """
    action = body.get("action")
    if not action:
        raise HTTPException(status_code=400, detail="Action is required")

    cookie = require_session(request, request.headers.get("cookie"))

    if not isinstance(action, str) or action not in CHAT_COMMANDS:
        raise HTTPException(status_code=400, detail="Invalid action")
    command_cls = CHAT_COMMANDS[action]

    try:
        command = command_cls.model_validate(body)
    except ValidationError:
        raise HTTPException(status_code=400, detail=command_cls.missing_fields_message)

    call = command.backend_call()
    logger.info(f"Chat action '{action}' -> {call.method} {call.path}")
    return relay(await gateway.dispatch(call, cookie), call.failure_message)
