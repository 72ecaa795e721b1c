from __future__ import annotations

import httpx
import openai
import pytest

from fixtures import ScriptedOpenAI, StatusError

from notequiz.core import ai


def test_load_client_requires_api_key():
    with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
        ai.load_client()


def test_load_client_disables_retries(monkeypatch):
    captured = {}

    def fake_openai(**kwargs):
        captured.update(kwargs)
        return "client"

    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OPENAI_BASE_URL", "http://localhost:9999/v1")
    monkeypatch.setattr(ai, "OpenAI", fake_openai)

    assert ai.load_client(timeout=12.5) == "client"
    assert captured == {
        "api_key": "sk-test",
        "max_retries": 0,
        "base_url": "http://localhost:9999/v1",
        "timeout": 12.5,
    }


@pytest.mark.parametrize(
    "exc, kind, status",
    [
        (StatusError(429), ai.RemoteErrorKind.RATE_LIMITED, 429),
        (StatusError(402), ai.RemoteErrorKind.QUOTA_EXHAUSTED, 402),
        (
            StatusError(429, code="insufficient_quota"),
            ai.RemoteErrorKind.QUOTA_EXHAUSTED,
            429,
        ),
        (StatusError(503), ai.RemoteErrorKind.GENERIC, 503),
        (ConnectionError("reset"), ai.RemoteErrorKind.GENERIC, None),
    ],
)
def test_classify_exception(exc, kind, status):
    error = ai.classify_exception(exc)
    assert error.kind is kind
    assert error.status == status


def test_classify_exception_detects_timeout():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat")
    error = ai.classify_exception(openai.APITimeoutError(request=request))
    assert error.kind is ai.RemoteErrorKind.TIMEOUT


def test_rate_limit_and_quota_messages_differ():
    rate = ai.classify_exception(StatusError(429))
    quota = ai.classify_exception(StatusError(402))
    assert "try again" in str(rate)
    assert "credits" in str(quota)


def test_complete_sends_parameters_and_strips_reply():
    stub = ScriptedOpenAI("  hello  ")
    client = ai.ChatClient(model="m1", request_timeout=30.0, client=stub)

    reply = client.complete_prompt("Hi", system="Be brief", temperature=0.3)

    assert reply == "hello"
    call = stub.last_call
    assert call["model"] == "m1"
    assert call["temperature"] == 0.3
    assert call["timeout"] == 30.0
    assert call["messages"] == [
        {"role": "system", "content": "Be brief"},
        {"role": "user", "content": "Hi"},
    ]


def test_complete_with_image_uses_vision_model_and_timeout():
    stub = ScriptedOpenAI("page text")
    client = ai.ChatClient(model="m1", vision_model="vision", client=stub)

    client.complete_with_image(
        "Read this", data_url="data:image/png;base64,AAAA", temperature=0.1,
        timeout=120.0,
    )

    call = stub.last_call
    assert call["model"] == "vision"
    assert call["timeout"] == 120.0
    content = call["messages"][0]["content"]
    assert content[1] == {
        "type": "image_url",
        "image_url": {"url": "data:image/png;base64,AAAA"},
    }


def test_complete_raises_on_empty_reply():
    client = ai.ChatClient(client=ScriptedOpenAI("   "))
    with pytest.raises(ai.RemoteCallError, match="empty"):
        client.complete_prompt("Hi", temperature=0.1)


def test_complete_wraps_provider_errors():
    client = ai.ChatClient(client=ScriptedOpenAI(StatusError(429)))
    with pytest.raises(ai.RemoteCallError) as excinfo:
        client.complete_prompt("Hi", temperature=0.1)
    assert excinfo.value.kind is ai.RemoteErrorKind.RATE_LIMITED


def test_missing_credentials_surface_as_remote_error():
    client = ai.ChatClient()
    with pytest.raises(ai.RemoteCallError, match="OPENAI_API_KEY"):
        client.complete_prompt("Hi", temperature=0.1)
