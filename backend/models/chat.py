from typing import Annotated, ClassVar, Literal, Union, get_args
from pydantic import BaseModel, ConfigDict, Field

class Chat(BaseModel):
    model_config = ConfigDict(extra="allow")

    chat_id: str
    chat_name: str = "Untitled Chat"
    file_id: str | None = None

class Message(BaseModel):
    """One exchange: the user's query and the bot's reply travel together."""
    model_config = ConfigDict(extra="allow")

    message_id: str
    user_query: str
    bot_response: str
    created_at: str                  # ISO 8601, sorts lexically

class BackendCall(BaseModel):
    method: str
    path: str
    json_body: dict | None = None
    params: dict | None = None
    failure_message: str

class ChatCommand(BaseModel):
    """
    Base for the chat proxy's tagged union. Each subclass pins `action` to a
    literal, declares the fields it needs, and maps to exactly one backend call.
    """
    missing_fields_message: ClassVar[str] = "Invalid request"

    def backend_call(self) -> BackendCall:
        raise NotImplementedError

class CreateChat(ChatCommand):
    missing_fields_message: ClassVar[str] = "file_id is required to create a chat"
    action: Literal["create"]
    file_id: str = Field(min_length=1)

    def backend_call(self) -> BackendCall:
        return BackendCall(method="POST", path="/chat/create-chat",
                           json_body={"file_id": self.file_id},
                           failure_message="Failed to create chat")

class ContinueChat(ChatCommand):
    missing_fields_message: ClassVar[str] = "chat_id and user_query are required"
    action: Literal["continue"]
    chat_id: str = Field(min_length=1)
    user_query: str = Field(min_length=1)

    def backend_call(self) -> BackendCall:
        return BackendCall(method="POST", path="/chat/continue-chat",
                           json_body={"chat_id": self.chat_id, "user_query": self.user_query},
                           failure_message="Failed to send message")

class ChatHistory(ChatCommand):
    missing_fields_message: ClassVar[str] = "chat_id is required"
    action: Literal["history"]
    chat_id: str = Field(min_length=1)

    def backend_call(self) -> BackendCall:
        return BackendCall(method="POST", path=f"/chat/chat-history/{self.chat_id}",
                           failure_message="Failed to get chat history")

class RecentChats(ChatCommand):
    action: Literal["recent"]
    search: str | None = None

    def backend_call(self) -> BackendCall:
        return BackendCall(method="POST", path="/chat/recent-chat",
                           json_body={},
                           params={"search": self.search} if self.search else None,
                           failure_message="Failed to get recent chats")

class RenameChat(ChatCommand):
    missing_fields_message: ClassVar[str] = "chat_id and chat_name are required"
    action: Literal["rename"]
    chat_id: str = Field(min_length=1)
    chat_name: str = Field(min_length=1)

    def backend_call(self) -> BackendCall:
        return BackendCall(method="POST", path="/chat/rename-chat",
                           json_body={"chat_id": self.chat_id, "chat_name": self.chat_name},
                           failure_message="Failed to rename chat")

class DeleteChat(ChatCommand):
    missing_fields_message: ClassVar[str] = "chat_id is required"
    action: Literal["delete"]
    chat_id: str = Field(min_length=1)

    def backend_call(self) -> BackendCall:
        return BackendCall(method="DELETE", path="/chat/delete-chat",
                           json_body={"chat_id": self.chat_id},
                           failure_message="Failed to delete chat")

ChatRequest = Annotated[
    Union[CreateChat, ContinueChat, ChatHistory, RecentChats, RenameChat, DeleteChat],
    Field(discriminator="action"),
]

# action literal -> variant, derived from the union so the two cannot drift
CHAT_COMMANDS: dict[str, type[ChatCommand]] = {
    get_args(variant.model_fields["action"].annotation)[0]: variant
    for variant in get_args(get_args(ChatRequest)[0])
}
