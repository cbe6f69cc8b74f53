import logging
import httpx
from typing import Any, Dict, Optional
from config.settings import settings
from clients.base import ServiceError
from models.chat import BackendCall

logger = logging.getLogger(__name__)

BACKEND_UNAVAILABLE = "Backend service is unavailable"

class BackendGateway:
    """
    Async client for the Backend Gateway. Every call relays the caller's Cookie
    header verbatim and returns the raw httpx.Response; shaping the response for
    the browser is the route's job.
    A fresh AsyncClient is opened per call so that Set-Cookie headers from one
    user's response never land in a jar shared with the next request.
    """

    def __init__(self,
                 base_url: Optional[str] = None,
                 timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or settings.gateway_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.gateway.timeout_seconds
        self.transport = transport

    async def request(self,
                      method: str,
                      path: str,
                      cookie: Optional[str] = None,
                      **kwargs: Any) -> httpx.Response:
        headers = {"Cookie": cookie} if cookie else {}
        try:
            async with httpx.AsyncClient(base_url=self.base_url,
                                         timeout=self.timeout,
                                         transport=self.transport) as client:
                response = await client.request(method, path, headers=headers, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"Backend call {method} {path} failed: {e}")
            raise ServiceError(BACKEND_UNAVAILABLE) from e

        logger.info(f"Backend {method} {path} -> {response.status_code}")
        return response

    # --- Auth ---
    async def login(self, payload: Dict[str, Any]) -> httpx.Response:
        return await self.request("POST", "/auth/login", json=payload)

    async def register(self, payload: Dict[str, Any]) -> httpx.Response:
        return await self.request("POST", "/auth/register", json=payload)

    async def logout(self, cookie: Optional[str]) -> httpx.Response:
        return await self.request("POST", "/auth/logout", cookie)

    async def me(self, cookie: Optional[str]) -> httpx.Response:
        return await self.request("GET", "/auth/me", cookie)

    async def get_profile_info(self, cookie: Optional[str]) -> httpx.Response:
        return await self.request("GET", "/auth/profile-info", cookie)

    async def save_profile_info(self, payload: Dict[str, Any], cookie: Optional[str]) -> httpx.Response:
        return await self.request("POST", "/auth/profile-info", cookie, json=payload)

    async def get_health_info(self, cookie: Optional[str]) -> httpx.Response:
        return await self.request("GET", "/auth/health-info", cookie)

    async def save_health_info(self, payload: Dict[str, Any], cookie: Optional[str]) -> httpx.Response:
        return await self.request("POST", "/auth/health-info", cookie, json=payload)

    # --- Reports ---
    async def upload_file(self,
                          filename: str,
                          content: bytes,
                          content_type: str,
                          report_type_id: str,
                          cookie: Optional[str]) -> httpx.Response:
        return await self.request(
            "POST", "/upload/upload-file", cookie,
            files={"report_file": (filename, content, content_type)},
            data={"report_type_id": report_type_id},
        )

    async def upload_status(self, file_id: str, cookie: Optional[str]) -> httpx.Response:
        return await self.request("GET", f"/upload/status/{file_id}", cookie)

    async def analyze(self, file_id: str, cookie: Optional[str]) -> httpx.Response:
        return await self.request("POST", f"/upload/analyze/{file_id}", cookie)

    # --- Dashboards ---
    async def create_dashboard(self, file_id: str, cookie: Optional[str]) -> httpx.Response:
        return await self.request("POST", "/dashboard/create", cookie, json={"file_id": file_id})

    async def get_dashboard(self, file_id: str, cookie: Optional[str]) -> httpx.Response:
        return await self.request("GET", f"/dashboard/{file_id}", cookie)

    # --- Chat ---
    async def dispatch(self, call: BackendCall, cookie: Optional[str]) -> httpx.Response:
        kwargs: Dict[str, Any] = {}
        if call.json_body is not None:
            kwargs["json"] = call.json_body
        if call.params:
            kwargs["params"] = call.params
        return await self.request(call.method, call.path, cookie, **kwargs)
