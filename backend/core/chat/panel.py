import logging
from typing import List, Optional

from clients.base import ChatService, ServiceError
from models.chat import Chat, Message

logger = logging.getLogger(__name__)

class ChatPanel:
    """
    Conversation about one report. The chat itself is created lazily, right
    before the first message is sent.
    """

    def __init__(self, service: ChatService, file_id: str, chat: Optional[Chat] = None):
        self.service = service
        self.file_id = file_id
        self.chat = chat
        self.messages: List[Message] = []

    @property
    def chat_id(self) -> Optional[str]:
        return self.chat.chat_id if self.chat else None

    async def send(self, user_query: str) -> Message:
        query = (user_query or "").strip()
        if not query:
            raise ServiceError("Message cannot be empty", 400)

        if self.chat is None:
            self.chat = await self.service.create_chat(self.file_id)
            logger.info(f"Created chat {self.chat.chat_id} for report {self.file_id}")

        message = await self.service.continue_chat(self.chat.chat_id, query)
        self.messages.append(message)
        return message

    async def load_history(self) -> List[Message]:
        if self.chat is None:
            return self.messages
        history = await self.service.chat_history(self.chat.chat_id)
        self.messages = sorted(history, key=lambda m: m.created_at)
        return self.messages

    async def rename(self, chat_name: str) -> Chat:
        if self.chat is None:
            raise ServiceError("Chat has not been created yet", 400)
        name = (chat_name or "").strip()
        if not name:
            raise ServiceError("Chat name cannot be empty", 400)

        self.chat = await self.service.rename_chat(self.chat.chat_id, name)
        return self.chat

    async def delete(self) -> None:
        if self.chat is None:
            return
        await self.service.delete_chat(self.chat.chat_id)
        logger.info(f"Deleted chat {self.chat.chat_id}")
        self.chat = None
        self.messages = []
