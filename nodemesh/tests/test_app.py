"""
HTTP surface tests using FastAPI's TestClient.
"""

import pytest
from fastapi.testclient import TestClient

from nodemesh.app import create_app
from nodemesh.dispatcher import ChatDispatcher, validate_message
from nodemesh.models import ChatReply


class StubDispatcher:
    """Replies with a fixed ChatReply, or raises the configured error."""

    def __init__(self, reply=None, error=None):
        self.reply = reply or ChatReply(reply="It is sunny.", intent="weather", location="Tokyo")
        self.error = error
        self.messages = []

    async def dispatch(self, message):
        validate_message(message)
        self.messages.append(message)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def stub_dispatcher():
    return StubDispatcher()


@pytest.fixture
def client(test_config, stub_dispatcher):
    with TestClient(create_app(test_config, dispatcher=stub_dispatcher)) as test_client:
        yield test_client


def test_chat_success(client, stub_dispatcher):
    response = client.post("/chat", json={"message": "What's the weather in Tokyo?"})

    assert response.status_code == 200
    assert response.json() == {"reply": "It is sunny.", "intent": "weather", "location": "Tokyo", "topic": ""}
    assert stub_dispatcher.messages == ["What's the weather in Tokyo?"]


@pytest.mark.parametrize("payload", [{"message": ""}, {"message": "   "}, {}, {"message": None}])
def test_chat_rejects_empty_message(client, stub_dispatcher, payload):
    response = client.post("/chat", json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": "Message is required."}
    assert stub_dispatcher.messages == []


def test_chat_internal_failure(test_config):
    dispatcher = StubDispatcher(error=RuntimeError("kaboom"))
    with TestClient(create_app(test_config, dispatcher=dispatcher)) as client:
        response = client.post("/chat", json={"message": "hello"})

    assert response.status_code == 500
    assert response.json() == {"error": "Sorry, something went wrong while processing your request."}
    assert "kaboom" not in response.text


def test_chat_before_startup(test_config):
    client = TestClient(create_app(test_config, dispatcher=StubDispatcher()))

    response = client.post("/chat", json={"message": "hello"})

    assert response.status_code == 503


def test_root_is_plain_ok(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.text == "OK"
    assert response.headers["content-type"].startswith("text/plain")


def test_healthz(client):
    body = client.get("/healthz").json()

    assert body["status"] == "ok"
    assert "time" in body


def test_health_healthy(client):
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["dispatcher"] == "initialized"
    assert body["llm_enabled"] is True
    assert body["models"] == ["gemini-2.0-flash", "gemini-1.5-flash", "gemini-pro"]
    assert body["weather_configured"] is True
    assert body["news_configured"] is True


def test_health_degraded_without_llm(keyword_only_config):
    with TestClient(create_app(keyword_only_config, dispatcher=StubDispatcher())) as client:
        body = client.get("/health").json()

    assert body["status"] == "degraded"
    assert body["llm_enabled"] is False


def test_lifespan_builds_real_dispatcher(keyword_only_config):
    app = create_app(keyword_only_config)

    with TestClient(app) as client:
        assert isinstance(app.state.dispatcher, ChatDispatcher)
        assert client.get("/health").json()["status"] == "degraded"

    assert app.state.dispatcher is None


def test_cors_allows_configured_origin(client):
    response = client.options(
        "/chat",
        headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"},
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
