import logging
import httpx
from typing import Any, Dict, List, Optional
from pydantic import ValidationError

from clients.base import ServiceError, ReportService, DashboardService, ChatService, AuthService
from config.settings import settings
from models.auth import User
from models.chat import Chat, Message
from models.report import AnalysisResult, StatusReport

logger = logging.getLogger(__name__)

class PortalClient(ReportService, DashboardService, ChatService, AuthService):
    """
    Talks to the portal proxy (`/api/...`) and unwraps its envelope.
    Failures surface as ServiceError carrying the proxy's `error` text, or the
    call's fallback message when the body is missing or not JSON.
    Session cookies set by the proxy on login are kept and sent on every call.
    """

    def __init__(self,
                 base_url: Optional[str] = None,
                 cookies: Optional[Dict[str, str]] = None,
                 timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or settings.portal.base_url).rstrip("/")
        self.cookies: Dict[str, str] = dict(cookies or {})
        self.timeout = timeout if timeout is not None else settings.gateway.timeout_seconds
        self.transport = transport

    async def _call(self, method: str, path: str, fallback: str, **kwargs: Any) -> Any:
        try:
            async with httpx.AsyncClient(base_url=self.base_url,
                                         timeout=self.timeout,
                                         transport=self.transport,
                                         cookies=self.cookies) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"Portal call {method} {path} failed: {e}")
            raise ServiceError(fallback) from e

        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = None

        if response.is_error:
            message = fallback
            if isinstance(data, dict) and isinstance(data.get("error"), str) and data["error"]:
                message = data["error"]
            raise ServiceError(message, response.status_code)

        if data is None:
            logger.error(f"Portal returned non-JSON body for {method} {path}")
            raise ServiceError(fallback, response.status_code)

        for name in settings.session.cookie_names:
            value = response.cookies.get(name)
            if value:
                self.cookies[name] = value
        return data

    # --- Reports ---
    async def upload(self, filename: str, content: bytes, content_type: str, report_type_id: str) -> str:
        data = await self._call(
            "POST", "/api/upload", "Failed to upload file",
            files={"file": (filename, content, content_type)},
            data={"reportTypeId": report_type_id},
        )
        file_id = data.get("file_id") if isinstance(data, dict) else None
        if not file_id:
            raise ServiceError("Failed to upload file")
        return file_id

    async def get_status(self, file_id: str) -> StatusReport:
        data = await self._call("GET", f"/api/upload/status/{file_id}", "Failed to check processing status")
        try:
            return StatusReport.model_validate(data)
        except ValidationError as e:
            raise ServiceError(f"Unexpected status response: {data!r}") from e

    async def analyze(self, file_id: str) -> AnalysisResult:
        data = await self._call("POST", f"/api/upload/analyze/{file_id}", "Failed to analyze report")
        try:
            return AnalysisResult.model_validate(data)
        except ValidationError as e:
            raise ServiceError("Failed to analyze report") from e

    # --- Dashboards ---
    async def fetch_dashboard(self, file_id: str) -> Dict[str, Any]:
        return await self._call("GET", "/api/dashboard", "Dashboard not found", params={"file_id": file_id})

    async def create_dashboard(self, file_id: str) -> Dict[str, Any]:
        return await self._call("POST", "/api/dashboard", "Failed to create dashboard", json={"file_id": file_id})

    # --- Chat ---
    async def _chat(self, fallback: str, **body: Any) -> Any:
        return await self._call("POST", "/api/chat", fallback, json=body)

    async def create_chat(self, file_id: str) -> Chat:
        data = await self._chat("Failed to create chat", action="create", file_id=file_id)
        return Chat.model_validate({"file_id": file_id, **data})

    async def continue_chat(self, chat_id: str, user_query: str) -> Message:
        data = await self._chat("Failed to send message", action="continue", chat_id=chat_id, user_query=user_query)
        if isinstance(data.get("message"), dict):
            data = data["message"]
        return Message.model_validate({"user_query": user_query, **data})

    async def chat_history(self, chat_id: str) -> List[Message]:
        data = await self._chat("Failed to get chat history", action="history", chat_id=chat_id)
        items = data.get("messages") or data.get("data") or []
        messages = [Message.model_validate(item) for item in items]
        return sorted(messages, key=lambda m: m.created_at)

    async def recent_chats(self, search: Optional[str] = None) -> List[Chat]:
        body: Dict[str, Any] = {"action": "recent"}
        if search:
            body["search"] = search
        data = await self._chat("Failed to get recent chats", **body)
        items = data.get("chats") or data.get("data") or []
        return [Chat.model_validate(item) for item in items]

    async def rename_chat(self, chat_id: str, chat_name: str) -> Chat:
        data = await self._chat("Failed to rename chat", action="rename", chat_id=chat_id, chat_name=chat_name)
        return Chat(chat_id=chat_id, chat_name=data.get("chat_name") or chat_name)

    async def delete_chat(self, chat_id: str) -> None:
        await self._chat("Failed to delete chat", action="delete", chat_id=chat_id)

    # --- Auth ---
    async def login(self, email: str, password: str) -> User:
        data = await self._call("POST", "/api/auth/login", "Login failed",
                                json={"email": email, "password": password})
        return User.model_validate(data.get("user") or data)

    async def logout(self) -> None:
        try:
            await self._call("POST", "/api/auth/logout", "Logout failed")
        finally:
            self.cookies.clear()

    async def me(self) -> User:
        data = await self._call("GET", "/api/auth/me", "Session expired or invalid")
        return User.model_validate(data.get("user") or data)
