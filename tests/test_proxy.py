import pytest
import requests
from fastapi.testclient import TestClient

from conftest import gemini_payload, make_response
from main import create_app
from support_chat.config import Settings
from support_chat.gemini import GeminiAssistant
from support_chat.prompts import ASSIGNMENT_PROMPT, FALLBACK_RESPONSE, GENERAL_PROMPT
from support_chat.store import ChatStore


@pytest.fixture
def settings():
    return Settings(gemini_api_key="test-key")


@pytest.fixture
def client(settings, metrics, http, store):
    assistant = GeminiAssistant(metrics=metrics, api_key=settings.gemini_api_key, http=http)
    return TestClient(create_app(settings, assistant=assistant, metrics=metrics, store=store))


def sent_contents(http):
    return http.post.call_args.kwargs["json"]["contents"]


def test_photosynthesis_scenario(client, http):
    http.post.return_value = make_response(200, gemini_payload("Photosynthesis is..."))

    res = client.post(
        "/gemini-chat",
        json={
            "message": "What is photosynthesis?",
            "supportType": "tutoring",
            "subject": "Biology",
            "sessionHistory": [],
        },
    )

    assert res.status_code == 200
    assert res.json() == {"response": "Photosynthesis is..."}
    contents = sent_contents(http)
    assert len(contents) == 3
    assert "Biology" in contents[0]["parts"][0]["text"]
    assert contents[-1]["parts"][0]["text"] == "What is photosynthesis?"


def test_options_returns_cors_headers(client):
    res = client.options("/gemini-chat")

    assert res.status_code == 200
    assert res.content == b""
    assert res.headers["access-control-allow-origin"] == "*"
    assert res.headers["access-control-allow-headers"] == "authorization, x-client-info, apikey, content-type"


def test_browser_preflight_is_allowed(client):
    res = client.options(
        "/gemini-chat",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization, content-type",
        },
    )

    assert res.status_code == 200
    assert res.headers["access-control-allow-origin"] == "*"


def test_post_response_carries_cors_headers(client):
    res = client.post("/gemini-chat", json={"message": "hi", "supportType": "general", "sessionHistory": []})
    assert res.headers["access-control-allow-origin"] == "*"


def test_unknown_support_type_uses_general_prompt(client, http):
    res = client.post("/gemini-chat", json={"message": "hi", "supportType": "astrology", "sessionHistory": []})

    assert res.status_code == 200
    assert sent_contents(http)[0]["parts"][0]["text"] == GENERAL_PROMPT


def test_known_support_type_selects_prompt(client, http):
    client.post("/gemini-chat", json={"message": "hi", "supportType": "assignment", "sessionHistory": []})
    assert sent_contents(http)[0]["parts"][0]["text"] == ASSIGNMENT_PROMPT


def test_history_is_trimmed_and_roles_mapped(client, http):
    history = [
        {"id": str(i), "role": "user" if i % 2 == 0 else "assistant", "content": f"m{i}", "created_at": "x"}
        for i in range(14)
    ]
    client.post("/gemini-chat", json={"message": "hi", "supportType": "general", "sessionHistory": history})

    contents = sent_contents(http)
    assert len(contents) == 13
    assert contents[2] == {"role": "user", "parts": [{"text": "m4"}]}
    assert contents[3] == {"role": "model", "parts": [{"text": "m5"}]}


def test_missing_candidate_returns_fallback(client, http):
    http.post.return_value = make_response(200, {"candidates": []})

    res = client.post("/gemini-chat", json={"message": "hi", "supportType": "general", "sessionHistory": []})

    assert res.status_code == 200
    assert res.json() == {"response": FALLBACK_RESPONSE}


@pytest.mark.parametrize("status", [400, 401, 404, 500, 503])
def test_upstream_error_becomes_500(client, http, status):
    http.post.return_value = make_response(status, {"error": {"code": status}})

    res = client.post("/gemini-chat", json={"message": "hi", "supportType": "general", "sessionHistory": []})

    assert res.status_code == 500
    body = res.json()
    assert body["error"]
    assert "response" not in body


def test_network_failure_becomes_500(client, http):
    http.post.side_effect = requests.exceptions.Timeout("slow")

    res = client.post("/gemini-chat", json={"message": "hi", "supportType": "general", "sessionHistory": []})

    assert res.status_code == 500
    assert res.json()["error"]


def test_non_json_request_body_becomes_500(client, http):
    res = client.post("/gemini-chat", content=b"not json", headers={"Content-Type": "application/json"})

    assert res.status_code == 500
    assert res.json()["error"]
    http.post.assert_not_called()


def test_missing_message_becomes_500(client, http):
    res = client.post("/gemini-chat", json={"supportType": "general"})

    assert res.status_code == 500
    http.post.assert_not_called()


def test_request_metrics(client, metrics):
    client.post("/gemini-chat", json={"message": "hi", "supportType": "general", "sessionHistory": []})

    metrics.incr.assert_any_call("gemini_chat")
    assert metrics.timing.call_args.args[0] == "gemini_chat.timed"


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_startup_creates_tables(settings, metrics, http, engine):
    fresh = ChatStore(engine)
    assistant = GeminiAssistant(metrics=metrics, api_key=settings.gemini_api_key, http=http)

    create_app(settings, assistant=assistant, metrics=metrics, store=fresh)

    assert fresh.get_profile("user-1") is None
    assert fresh.recent_sessions("user-1") == []


def test_request_timing_is_in_seconds(client, metrics):
    client.post("/gemini-chat", json={"message": "hi", "supportType": "general", "sessionHistory": []})

    elapsed = metrics.timing.call_args.args[1]
    assert 0 <= elapsed < 5
