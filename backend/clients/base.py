from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from models.report import AnalysisResult, StatusReport
from models.chat import Chat, Message
from models.auth import User

class ServiceError(Exception):
    """
    A failed call, carrying the user-visible message and the HTTP status when
    there was one (None for transport failures).
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

class ReportService(ABC):
    @abstractmethod
    async def upload(self, filename: str, content: bytes, content_type: str, report_type_id: str) -> str:
        """Returns the backend-assigned file_id."""
        pass

    @abstractmethod
    async def get_status(self, file_id: str) -> StatusReport:
        pass

    @abstractmethod
    async def analyze(self, file_id: str) -> AnalysisResult:
        pass

class DashboardService(ABC):
    @abstractmethod
    async def fetch_dashboard(self, file_id: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def create_dashboard(self, file_id: str) -> Dict[str, Any]:
        pass

class ChatService(ABC):
    @abstractmethod
    async def create_chat(self, file_id: str) -> Chat:
        pass

    @abstractmethod
    async def continue_chat(self, chat_id: str, user_query: str) -> Message:
        pass

    @abstractmethod
    async def chat_history(self, chat_id: str) -> List[Message]:
        pass

    @abstractmethod
    async def recent_chats(self, search: Optional[str] = None) -> List[Chat]:
        pass

    @abstractmethod
    async def rename_chat(self, chat_id: str, chat_name: str) -> Chat:
        pass

    @abstractmethod
    async def delete_chat(self, chat_id: str) -> None:
        pass

class AuthService(ABC):
    @abstractmethod
    async def login(self, email: str, password: str) -> User:
        pass

    @abstractmethod
    async def logout(self) -> None:
        pass

    @abstractmethod
    async def me(self) -> User:
        pass
