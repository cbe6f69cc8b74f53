from typing import Optional
from fastapi import Depends, HTTPException, Request

from clients.gateway import BackendGateway
from config.settings import settings

# Dependency to get the gateway from app state
def get_gateway(request: Request) -> BackendGateway:
    return request.app.state.gateway

def forwarded_cookie(request: Request) -> Optional[str]:
    """The browser's Cookie header, relayed to the backend untouched."""
    return request.headers.get("cookie")

def has_session(request: Request) -> bool:
    return any(request.cookies.get(name) for name in settings.session.cookie_names)

def require_session(request: Request, cookie: Optional[str] = Depends(forwarded_cookie)) -> str:
    if not has_session(request):
        raise HTTPException(status_code=401, detail="Not authenticated")
    return cookie
