import logging
import httpx
from typing import Any, Optional
from fastapi import HTTPException
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

def error_message(response: httpx.Response, fallback: str) -> str:
    """
    Pulls the user-visible message out of a failed backend response.
    FastAPI backends answer with `detail`; anything else falls back.
    """
    try:
        data = response.json()
    except ValueError:
        return fallback

    if isinstance(data, dict):
        for key in ("detail", "message", "error"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return fallback

def success_body(payload: Any) -> dict:
    if isinstance(payload, dict):
        return {**payload, "success": True}
    return {"success": True, "data": payload}

def relay(response: httpx.Response, fallback: str, success_status: Optional[int] = None) -> JSONResponse:
    """
    Reshapes a backend response into the proxy envelope:
    failures become {"error": ...} with the backend's status code, successes
    become the backend payload plus {"success": true}.
    """
    if response.is_error:
        raise HTTPException(status_code=response.status_code, detail=error_message(response, fallback))

    if not response.content:
        return JSONResponse(success_body({}), status_code=success_status or 200)

    try:
        payload = response.json()
    except ValueError:
        logger.error(f"Backend returned non-JSON body for {response.request.url}")
        raise HTTPException(status_code=502, detail=fallback)

    return JSONResponse(success_body(payload), status_code=success_status or response.status_code)
