import asyncio
import gc
import os
import sys
from unittest.mock import AsyncMock, MagicMock

# Add backend to sys.path
sys.path.append(os.path.join(os.getcwd(), "backend"))

import pytest

from clients.base import AuthService, ChatService, DashboardService, ServiceError
from core.auth.session import AuthSession
from core.chat.panel import ChatPanel
from core.dashboard.loader import DashboardLoader
from models.auth import User
from models.chat import Chat, Message

DASHBOARD = {"dashboard_id": "d-1", "topBar": [], "recommendations": []}

def dashboard_service():
    service = MagicMock(spec=DashboardService)
    service.fetch_dashboard = AsyncMock(return_value=DASHBOARD)
    service.create_dashboard = AsyncMock(return_value=DASHBOARD)
    return service

# --- Dashboard loader ---

def test_fresh_dashboard_skips_fetch():
    print("Testing DashboardLoader...")
    service = dashboard_service()
    result = asyncio.run(DashboardLoader(service).load("f-1", fresh=True))

    assert result == DASHBOARD
    service.fetch_dashboard.assert_not_called()
    service.create_dashboard.assert_awaited_once_with("f-1")

def test_existing_dashboard_is_fetched():
    service = dashboard_service()
    asyncio.run(DashboardLoader(service).load("f-1"))

    service.fetch_dashboard.assert_awaited_once_with("f-1")
    service.create_dashboard.assert_not_called()

def test_404_falls_back_to_create():
    service = dashboard_service()
    service.fetch_dashboard.side_effect = ServiceError("Dashboard not found", 404)

    assert asyncio.run(DashboardLoader(service).load("f-1")) == DASHBOARD
    service.create_dashboard.assert_awaited_once_with("f-1")

def test_other_failures_do_not_create():
    service = dashboard_service()
    service.fetch_dashboard.side_effect = ServiceError("Forbidden", 403)

    with pytest.raises(ServiceError) as excinfo:
        asyncio.run(DashboardLoader(service).load("f-1"))

    assert excinfo.value.status_code == 403
    service.create_dashboard.assert_not_called()

def test_concurrent_loads_share_one_create():
    service = dashboard_service()

    async def slow_create(file_id):
        await asyncio.sleep(0.01)
        return DASHBOARD

    service.fetch_dashboard.side_effect = ServiceError("Dashboard not found", 404)
    service.create_dashboard.side_effect = slow_create
    loader = DashboardLoader(service)

    async def scenario():
        return await asyncio.gather(loader.load("f-1"), loader.load("f-1"))

    first, second = asyncio.run(scenario())

    assert first == second == DASHBOARD
    assert service.create_dashboard.await_count == 1

def test_abandoned_failed_load_is_not_reported_as_unhandled():
    service = dashboard_service()

    async def slow_failure(file_id):
        await asyncio.sleep(0.02)
        raise ServiceError("Forbidden", 403)

    service.fetch_dashboard.side_effect = slow_failure
    loader = DashboardLoader(service)
    unhandled = []

    async def scenario():
        asyncio.get_running_loop().set_exception_handler(lambda loop, context: unhandled.append(context))
        waiter = asyncio.create_task(loader.load("f-1"))
        await asyncio.sleep(0.005)
        waiter.cancel()
        await asyncio.sleep(0.05)
        gc.collect()
        await asyncio.sleep(0)

        service.fetch_dashboard.side_effect = None
        return await loader.load("f-1")

    assert asyncio.run(scenario()) == DASHBOARD
    assert unhandled == []
    assert service.fetch_dashboard.await_count == 2
    print("DashboardLoader tests PASSED")

# --- Chat panel ---

def chat_service():
    service = MagicMock(spec=ChatService)
    service.create_chat = AsyncMock(return_value=Chat(chat_id="c-1", chat_name="Untitled Chat"))
    service.continue_chat = AsyncMock(side_effect=lambda chat_id, query: Message(
        message_id=f"m-{query}", user_query=query, bot_response="ok", created_at="2026-01-01T10:00:00Z"))
    service.chat_history = AsyncMock(return_value=[])
    service.rename_chat = AsyncMock(return_value=Chat(chat_id="c-1", chat_name="Thyroid"))
    service.delete_chat = AsyncMock(return_value=None)
    return service

def test_chat_created_lazily_once():
    print("Testing ChatPanel...")
    service = chat_service()
    panel = ChatPanel(service, "f-1")

    async def scenario():
        await panel.send("first")
        await panel.send("second")

    asyncio.run(scenario())

    service.create_chat.assert_awaited_once_with("f-1")
    assert service.continue_chat.await_count == 2
    assert [m.user_query for m in panel.messages] == ["first", "second"]
    assert panel.chat_id == "c-1"

def test_empty_message_is_rejected_without_calls():
    service = chat_service()
    panel = ChatPanel(service, "f-1")

    with pytest.raises(ServiceError):
        asyncio.run(panel.send("   "))

    service.create_chat.assert_not_called()
    assert panel.chat is None

def test_history_is_sorted_by_creation():
    service = chat_service()
    service.chat_history.return_value = [
        Message(message_id="m-2", user_query="b", bot_response="B", created_at="2026-01-02T00:00:00Z"),
        Message(message_id="m-1", user_query="a", bot_response="A", created_at="2026-01-01T00:00:00Z"),
    ]
    panel = ChatPanel(service, "f-1", chat=Chat(chat_id="c-1"))

    messages = asyncio.run(panel.load_history())

    assert [m.message_id for m in messages] == ["m-1", "m-2"]

def test_rename_and_delete():
    service = chat_service()
    panel = ChatPanel(service, "f-1", chat=Chat(chat_id="c-1"))

    async def scenario():
        await panel.rename("Thyroid")
        name = panel.chat.chat_name
        await panel.delete()
        return name

    assert asyncio.run(scenario()) == "Thyroid"
    service.delete_chat.assert_awaited_once_with("c-1")
    assert panel.chat is None and panel.messages == []
    print("ChatPanel tests PASSED")

# --- Auth session ---

def test_auth_session_notifies_subscribers():
    print("Testing AuthSession...")
    service = MagicMock(spec=AuthService)
    service.login = AsyncMock(return_value=User(id="u-1", email="pat@example.com"))
    service.logout = AsyncMock(return_value=None)
    session = AuthSession(service)
    events = []
    unsubscribe = session.subscribe(lambda state: events.append(state.is_authenticated))

    async def scenario():
        await session.login("pat@example.com", "hunter22")
        await session.logout()
        unsubscribe()
        await session.login("pat@example.com", "hunter22")

    asyncio.run(scenario())

    assert events == [True, False]
    assert session.user.email == "pat@example.com"

def test_expired_session_signs_out_locally():
    service = MagicMock(spec=AuthService)
    service.me = AsyncMock(side_effect=ServiceError("Session expired or invalid", 401))
    session = AuthSession(service)

    assert asyncio.run(session.refresh()) is None
    assert session.state.is_authenticated is False

def test_broken_listener_does_not_block_others():
    service = MagicMock(spec=AuthService)
    service.me = AsyncMock(return_value=User(id="u-1"))
    session = AuthSession(service)
    received = []

    def broken(state):
        raise RuntimeError("listener bug")

    session.subscribe(broken)
    session.subscribe(lambda state: received.append(state.user.id))
    asyncio.run(session.refresh())

    assert received == ["u-1"]
    print("AuthSession tests PASSED")

if __name__ == "__main__":
    for name, fn in list(globals().items()):
        if name.startswith("test_"):
            fn()
    print("\nAll collaborator tests PASSED")
