import logging
from typing import Optional
from pydantic import BaseModel

from clients.base import AuthService, ServiceError
from core.events import Observable
from models.auth import User

logger = logging.getLogger(__name__)

class AuthState(BaseModel):
    user: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

class AuthSession(Observable[AuthState]):
    """
    The signed-in user, shared by injection instead of ambient globals.
    Subscribers are told about every login, logout and refresh.
    """

    def __init__(self, service: AuthService):
        super().__init__()
        self.service = service
        self.state = AuthState()

    @property
    def user(self) -> Optional[User]:
        return self.state.user

    def _set_user(self, user: Optional[User]) -> None:
        self.state = AuthState(user=user)
        self._notify(self.state)

    async def login(self, email: str, password: str) -> User:
        user = await self.service.login(email, password)
        logger.info(f"Signed in as {user.email}")
        self._set_user(user)
        return user

    async def logout(self) -> None:
        try:
            await self.service.logout()
        finally:
            self._set_user(None)

    async def refresh(self) -> Optional[User]:
        """Re-reads the session; an expired session signs the user out locally."""
        try:
            user = await self.service.me()
        except ServiceError as e:
            if e.status_code != 401:
                raise
            logger.info("Session expired")
            user = None
        self._set_user(user)
        return user
