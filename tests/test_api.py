"""Test suite for the session API endpoints."""

import asyncio
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient

from algomentor.api.app import app, get_llm_service, get_repository
from algomentor.config import StaticConfig
from algomentor.domain.models import GREETING
from algomentor.repositories.memory import InMemoryRepository
from algomentor.services.llm import LLMService
from algomentor.services.personas import PROFILES


class StubTutor:
    """Replies with fixed text and keeps every transcript it was given."""

    def __init__(self, reply="What is the cost of the inner loop?"):
        self.reply = reply
        self.transcripts = []

    async def get_reply(self, transcript):
        self.transcripts.append(transcript)
        await asyncio.sleep(0)
        return self.reply


@pytest.fixture
def tutor():
    stub = StubTutor()
    repository = InMemoryRepository()
    app.dependency_overrides[get_llm_service] = lambda: stub
    app.dependency_overrides[get_repository] = lambda: repository
    yield stub
    app.dependency_overrides.clear()


def client():
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def create_session(client):
    response = await client.post("/sessions")
    assert response.status_code == 200
    return response.json()["id"]


@pytest.mark.asyncio
async def test_create_session_seeds_greeting(tutor):
    async with client() as c:
        response = await c.post("/sessions")
        assert response.status_code == 200
        data = response.json()
        assert "id" in data
        assert "created_at" in data
        assert len(data["messages"]) == 1
        assert data["messages"][0]["author"] == "assistant"
        assert data["messages"][0]["text"] == GREETING


@pytest.mark.asyncio
async def test_chat_message_round_trip(tutor):
    """A question appends the user turn and the tutor's reply."""
    async with client() as c:
        session_id = await create_session(c)

        response = await c.post(
            f"/sessions/{session_id}/messages",
            json={"text": "What is Big-O?"}
        )
        assert response.status_code == 200
        reply = response.json()
        assert reply["author"] == "assistant"
        assert reply["text"] == tutor.reply

        messages = (await c.get(f"/sessions/{session_id}/messages")).json()
        assert len(messages) == 3
        assert [m["author"] for m in messages] == ["assistant", "user", "assistant"]
        assert messages[1]["text"] == "What is Big-O?"

    seen = tutor.transcripts[0]
    assert len(seen) == 2
    assert seen.last.text == "What is Big-O?"


@pytest.mark.asyncio
async def test_code_submission(tutor):
    async with client() as c:
        session_id = await create_session(c)

        response = await c.post(
            f"/sessions/{session_id}/code",
            json={"code": "int x=1;", "topic": "Arrays"}
        )
        assert response.status_code == 200

        messages = (await c.get(f"/sessions/{session_id}/messages")).json()
        submitted = messages[1]["text"]
        assert messages[1]["author"] == "user"
        assert "Arrays" in submitted
        assert "int x=1;" in submitted
        assert "```java" in submitted


@pytest.mark.asyncio
async def test_validation_errors(tutor):
    async with client() as c:
        session_id = await create_session(c)

        response = await c.post(f"/sessions/{session_id}/messages", json={"text": "   "})
        assert response.status_code == 422

        response = await c.post(f"/sessions/{session_id}/messages", json={})
        assert response.status_code == 422

        response = await c.post(f"/sessions/{session_id}/code", json={"code": "", "topic": "Arrays"})
        assert response.status_code == 422

        response = await c.get("/sessions/not-a-uuid")
        assert response.status_code == 422

    assert tutor.transcripts == []


@pytest.mark.asyncio
async def test_unknown_session(tutor):
    missing = "00000000-0000-0000-0000-000000000000"
    async with client() as c:
        assert (await c.get(f"/sessions/{missing}")).status_code == 404
        assert (await c.get(f"/sessions/{missing}/messages")).status_code == 404
        response = await c.post(f"/sessions/{missing}/messages", json={"text": "hi"})
        assert response.status_code == 404

    assert tutor.transcripts == []


@pytest.mark.asyncio
async def test_message_pagination(tutor):
    async with client() as c:
        session_id = await create_session(c)
        for i in range(3):
            await c.post(f"/sessions/{session_id}/messages", json={"text": f"Message {i}"})

        response = await c.get(f"/sessions/{session_id}/messages?limit=2&offset=0")
        assert [m["author"] for m in response.json()] == ["assistant", "user"]

        response = await c.get(f"/sessions/{session_id}/messages?limit=3&offset=3")
        messages = response.json()
        assert len(messages) == 3
        assert messages[0]["text"] == "Message 1"


@pytest.mark.asyncio
async def test_overlapping_messages_are_all_recorded(tutor):
    async with client() as c:
        session_id = await create_session(c)

        responses = await asyncio.gather(
            *[
                c.post(f"/sessions/{session_id}/messages", json={"text": f"Question {i}"})
                for i in range(3)
            ]
        )
        assert all(r.status_code == 200 for r in responses)

        messages = (await c.get(f"/sessions/{session_id}/messages")).json()
        assert len(messages) == 7
        user_texts = {m["text"] for m in messages if m["author"] == "user"}
        assert user_texts == {"Question 0", "Question 1", "Question 2"}

    assert all(t.last.author.value == "user" for t in tutor.transcripts)


@pytest.mark.asyncio
async def test_missing_credential_reply_is_appended():
    """Without a key the real service answers with the setup hint."""
    repository = InMemoryRepository()
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_llm_service] = lambda: LLMService(StaticConfig(), PROFILES["socratic"])
    try:
        async with client() as c:
            session_id = await create_session(c)
            response = await c.post(f"/sessions/{session_id}/messages", json={"text": "hi"})
            assert response.status_code == 200
            assert response.json()["text"] == (
                "TUTOR_GEMINI_API_KEY is not set. Please add it to your .env file."
            )
    finally:
        app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_editor_defaults_and_metrics(tutor):
    async with client() as c:
        editor = (await c.get("/editor")).json()
        assert editor["default_topic"] == "Arrays"
        assert "Recursion" in editor["topics"]
        assert "public class Solution" in editor["starter_code"]

        response = await c.get("/metrics")
        assert response.status_code == 200
        assert "requests_total" in response.text


@pytest.mark.asyncio
async def test_delete_session(tutor):
    async with client() as c:
        session_id = await create_session(c)

        response = await c.delete(f"/sessions/{session_id}")
        assert response.status_code == 204

        assert (await c.get(f"/sessions/{session_id}")).status_code == 404
        assert (await c.get(f"/sessions/{session_id}/messages")).status_code == 404
        assert (await c.delete(f"/sessions/{session_id}")).status_code == 404


@pytest.mark.asyncio
async def test_session_deleted_while_reply_in_flight():
    """The reply is still returned when its session ends mid-request."""
    repository = InMemoryRepository()

    class EndingTutor(StubTutor):
        async def get_reply(self, transcript):
            await repository.delete_session(self.session_id)
            return await super().get_reply(transcript)

    stub = EndingTutor()
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_llm_service] = lambda: stub
    try:
        async with client() as c:
            stub.session_id = UUID(await create_session(c))
            response = await c.post(f"/sessions/{stub.session_id}/messages", json={"text": "hi"})
            assert response.status_code == 200
            assert response.json()["text"] == stub.reply
            assert (await c.get(f"/sessions/{stub.session_id}")).status_code == 404
    finally:
        app.dependency_overrides.clear()
