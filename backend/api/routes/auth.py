import logging
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.deps import get_gateway, forwarded_cookie, has_session
from api.envelope import error_message, relay, success_body
from clients.base import ServiceError
from clients.gateway import BackendGateway
from config.settings import settings
from models.auth import LoginRequest, RegisterRequest, ProfileInfo, HealthInfo

router = APIRouter(prefix="/auth")
logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

def _require_credentials(email: Optional[str], password: Optional[str]) -> None:
    if not email or not password:
        raise HTTPException(status_code=400, detail="Email and password are required")

def _set_session_cookies(response: JSONResponse, values: Dict[str, str]) -> None:
    config = settings.session
    for name, value in values.items():
        response.set_cookie(
            key=name,
            value=value,
            max_age=config.cookie_max_age,
            httponly=True,
            secure=config.cookie_secure,
            samesite=config.cookie_samesite,
            path="/",
        )

@router.post("/login", summary="Log in and relay the backend session cookie")
async def login(
    credentials: LoginRequest,
    gateway: BackendGateway = Depends(get_gateway)
):
    """
    1. Validates that both credentials are present (no backend call otherwise).
    2. Forwards to /auth/login.
    3. Copies the backend's session token(s) into HTTP-only cookies on our response.
    """
    _require_credentials(credentials.email, credentials.password)

    backend_response = await gateway.login(credentials.model_dump(exclude_none=True))
    if backend_response.is_error:
        raise HTTPException(
            status_code=backend_response.status_code,
            detail=error_message(backend_response, "Login failed")
        )

    try:
        payload = backend_response.json()
    except ValueError:
        raise HTTPException(status_code=502, detail="Login failed")

    # The token may arrive as Set-Cookie, in the JSON body, or both.
    tokens = {}
    for name in settings.session.cookie_names:
        value = backend_response.cookies.get(name)
        if not value and isinstance(payload, dict) and isinstance(payload.get(name), str):
            value = payload[name]
        if value:
            tokens[name] = value

    if not tokens:
        logger.warning("Backend login succeeded without a session token")

    response = JSONResponse(success_body(payload), status_code=200)
    _set_session_cookies(response, tokens)
    return response

@router.post("/register", summary="Create an account")
async def register(
    details: RegisterRequest,
    gateway: BackendGateway = Depends(get_gateway)
):
    _require_credentials(details.email, details.password)
    if len(details.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    backend_response = await gateway.register(details.model_dump(exclude_none=True))
    return relay(backend_response, "Registration failed", success_status=201)

@router.post("/logout", summary="End the session and clear cookies")
async def logout(
    cookie: Optional[str] = Depends(forwarded_cookie),
    gateway: BackendGateway = Depends(get_gateway)
):
    backend_response = await gateway.logout(cookie)
    if backend_response.is_error:
        # cookies are cleared even when the backend call fails
        logger.warning(f"Backend logout returned {backend_response.status_code}")

    response = JSONResponse({"success": True})
    for name in settings.session.cookie_names:
        response.delete_cookie(name, path="/")
    return response

@router.get("/me", summary="Return the user behind the current session")
async def me(
    request: Request,
    cookie: Optional[str] = Depends(forwarded_cookie),
    gateway: BackendGateway = Depends(get_gateway)
):
    if not has_session(request):
        raise HTTPException(status_code=401, detail="Not authenticated")

    # transport failures and unreadable bodies count as an invalid session
    try:
        backend_response = await gateway.me(cookie)
    except ServiceError as e:
        logger.warning(f"Session check failed: {e.message}")
        raise HTTPException(status_code=401, detail="Session expired or invalid")
    if backend_response.is_error:
        raise HTTPException(status_code=401, detail="Session expired or invalid")
    try:
        return relay(backend_response, "Session expired or invalid")
    except HTTPException:
        raise HTTPException(status_code=401, detail="Session expired or invalid")

@router.get("/profile-info", summary="Fetch profile details")
async def get_profile_info(
    cookie: Optional[str] = Depends(forwarded_cookie),
    gateway: BackendGateway = Depends(get_gateway)
):
    return relay(await gateway.get_profile_info(cookie), "Failed to load profile")

@router.post("/profile-info", summary="Save profile details")
async def save_profile_info(
    profile: ProfileInfo,
    cookie: Optional[str] = Depends(forwarded_cookie),
    gateway: BackendGateway = Depends(get_gateway)
):
    payload: Dict[str, Any] = profile.model_dump(exclude_none=True)
    return relay(await gateway.save_profile_info(payload, cookie), "Failed to save profile")

@router.get("/health-info", summary="Fetch health details")
async def get_health_info(
    cookie: Optional[str] = Depends(forwarded_cookie),
    gateway: BackendGateway = Depends(get_gateway)
):
    return relay(await gateway.get_health_info(cookie), "Failed to load health information")

@router.post("/health-info", summary="Save health details")
async def save_health_info(
    health: HealthInfo,
    cookie: Optional[str] = Depends(forwarded_cookie),
    gateway: BackendGateway = Depends(get_gateway)
):
    payload: Dict[str, Any] = health.model_dump(exclude_none=True)
    return relay(await gateway.save_health_info(payload, cookie), "Failed to save health information")
