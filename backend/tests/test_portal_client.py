import asyncio
import json
import os
import sys

# Add backend to sys.path
sys.path.append(os.path.join(os.getcwd(), "backend"))

import httpx
import pytest

from clients.base import ServiceError
from clients.portal import PortalClient
from config.settings import settings
from models.report import ProcessingStatus

def portal(handler, cookies=None):
    return PortalClient(base_url="http://portal.test", cookies=cookies,
                        transport=httpx.MockTransport(handler))

def test_upload_returns_file_id():
    print("Testing PortalClient.upload...")

    def handler(request):
        assert request.url.path == "/api/upload"
        assert b'name="file"; filename="rx.png"' in request.content
        assert b'name="reportTypeId"' in request.content
        assert request.headers["cookie"] == "session_id=s-1"
        return httpx.Response(200, json={"success": True, "file_id": "f-9", "status": "processing"})

    client = portal(handler, cookies={"session_id": "s-1"})
    file_id = asyncio.run(client.upload("rx.png", b"\x89PNG", "image/png", "29574bad-7899-4317-b6f1-8cd26e2e4e3e"))

    assert file_id == "f-9"
    print("Upload tests PASSED")

def test_error_envelope_becomes_service_error():
    client = portal(lambda request: httpx.Response(413, json={"error": "File too large for backend"}))

    with pytest.raises(ServiceError) as excinfo:
        asyncio.run(client.upload("a.pdf", b"x", "application/pdf", "id"))

    assert excinfo.value.message == "File too large for backend"
    assert excinfo.value.status_code == 413

def test_non_json_failure_uses_fallback():
    client = portal(lambda request: httpx.Response(502, text="Bad Gateway"))

    with pytest.raises(ServiceError) as excinfo:
        asyncio.run(client.analyze("f-1"))

    assert excinfo.value.message == "Failed to analyze report"
    assert excinfo.value.status_code == 502

def test_transport_failure_has_no_status():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(ServiceError) as excinfo:
        asyncio.run(portal(handler).get_status("f-1"))

    assert excinfo.value.status_code is None

def test_status_and_analysis_parsing():
    def handler(request):
        if request.url.path == "/api/upload/status/f-1":
            return httpx.Response(200, json={"success": True, "status": "failed", "error": "Blurry image"})
        return httpx.Response(200, json={
            "success": True,
            "summary": "Vitamin D low",
            "key_findings": {"vitamin_d": "moderate deficiency"},
            "recommendations": ["Supplement D3"],
            "insights": "Recheck in 8 weeks",
            "medications": [{"name": "D3", "dose": "2000 IU"}],
        })

    client = portal(handler)
    status = asyncio.run(client.get_status("f-1"))
    result = asyncio.run(client.analyze("f-1"))

    assert status.status == ProcessingStatus.failed
    assert status.error == "Blurry image"
    assert result.summary == "Vitamin D low"
    assert result.risk_level.value == "medium"
    assert result.medications[0]["name"] == "D3"

def test_unknown_status_is_a_service_error():
    client = portal(lambda request: httpx.Response(200, json={"success": True, "status": "queued"}))
    with pytest.raises(ServiceError):
        asyncio.run(client.get_status("f-1"))

def test_login_keeps_session_cookie():
    print("Testing PortalClient session handling...")
    seen_cookies = []

    def handler(request):
        seen_cookies.append(request.headers.get("cookie"))
        if request.url.path == "/api/auth/login":
            return httpx.Response(200, json={"success": True, "user": {"id": "u-1", "email": "pat@example.com"}},
                                  headers={"set-cookie": "session_id=s-77; Path=/; HttpOnly"})
        return httpx.Response(200, json={"success": True, "id": "u-1", "email": "pat@example.com"})

    client = portal(handler)

    async def scenario():
        user = await client.login("pat@example.com", "hunter22")
        me = await client.me()
        return user, me

    user, me = asyncio.run(scenario())

    assert user.email == "pat@example.com"
    assert me.id == "u-1"
    assert client.cookies == {"session_id": "s-77"}
    assert seen_cookies[0] is None
    assert seen_cookies[1] == "session_id=s-77"
    print("Session tests PASSED")

def test_chat_calls_use_action_envelope():
    bodies = []

    def handler(request):
        body = json.loads(request.content)
        bodies.append(body)
        action = body["action"]
        if action == "create":
            return httpx.Response(200, json={"success": True, "chat_id": "c-1", "chat_name": "Untitled Chat"})
        if action == "continue":
            return httpx.Response(200, json={"success": True, "message_id": "m-1",
                                             "bot_response": "Your LDL is mildly raised.",
                                             "created_at": "2026-01-01T10:00:00Z"})
        if action == "history":
            return httpx.Response(200, json={"success": True, "messages": [
                {"message_id": "m-2", "user_query": "b", "bot_response": "B", "created_at": "2026-01-01T10:05:00Z"},
                {"message_id": "m-1", "user_query": "a", "bot_response": "A", "created_at": "2026-01-01T10:00:00Z"},
            ]})
        if action == "recent":
            return httpx.Response(200, json={"success": True, "data": [{"chat_id": "c-1", "chat_name": "Lipids"}]})
        return httpx.Response(200, json={"success": True})

    client = portal(handler)

    async def scenario():
        chat = await client.create_chat("f-1")
        message = await client.continue_chat(chat.chat_id, "Is my LDL bad?")
        history = await client.chat_history(chat.chat_id)
        recent = await client.recent_chats(search="lip")
        renamed = await client.rename_chat(chat.chat_id, "Lipids")
        await client.delete_chat(chat.chat_id)
        return chat, message, history, recent, renamed

    chat, message, history, recent, renamed = asyncio.run(scenario())

    assert chat.chat_id == "c-1" and chat.file_id == "f-1"
    assert message.user_query == "Is my LDL bad?"
    assert [m.message_id for m in history] == ["m-1", "m-2"]
    assert recent[0].chat_name == "Lipids"
    assert renamed.chat_name == "Lipids"
    assert [b["action"] for b in bodies] == ["create", "continue", "history", "recent", "rename", "delete"]
    assert bodies[3]["search"] == "lip"

def test_default_base_url_comes_from_settings():
    client = PortalClient()
    assert client.base_url == settings.portal.base_url.rstrip("/")
    assert client.base_url == "http://localhost:8000"

    assert PortalClient(base_url="http://portal.test/").base_url == "http://portal.test"

if __name__ == "__main__":
    for name, fn in list(globals().items()):
        if name.startswith("test_"):
            fn()
    print("\nAll PortalClient tests PASSED")
