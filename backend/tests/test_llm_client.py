import asyncio

import pytest

from openlearnhub.errors import UpstreamError
from openlearnhub.services.llm_client import FALLBACK_TEXT, extract_content


def test_complete_sends_chat_request(completion, completion_stub):
    completion_stub.reply_with("Try an intro to Python course.")
    text = asyncio.run(completion.complete("system", "I like coding", "some/model"))

    assert text == "Try an intro to Python course."
    request = completion_stub.requests[-1]
    assert request.url == "https://openrouter.ai/api/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer test-openrouter-key"
    assert request.headers["X-Title"] == "OpenLearnHub"
    assert completion_stub.last_body() == {
        "model": "some/model",
        "messages": [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "I like coding"},
        ],
    }


def test_complete_falls_back_on_transport_failure(completion, completion_stub):
    completion_stub.fail_transport()
    assert asyncio.run(completion.complete("s", "u", "m")) == FALLBACK_TEXT


def test_complete_falls_back_on_error_status(completion, completion_stub):
    completion_stub.reply_json({"error": {"message": "rate limited"}}, status_code=429)
    assert asyncio.run(completion.complete("s", "u", "m")) == FALLBACK_TEXT


def test_complete_falls_back_when_content_missing(completion, completion_stub):
    completion_stub.reply_json({"choices": []})
    assert asyncio.run(completion.complete("s", "u", "m")) == FALLBACK_TEXT


def test_complete_raw_raises_on_transport_failure(completion, completion_stub):
    completion_stub.fail_transport()
    with pytest.raises(UpstreamError):
        asyncio.run(completion.complete_raw("s", "u", "m"))


def test_complete_raw_returns_none_without_content(completion, completion_stub):
    completion_stub.reply_json({"id": "gen-1"})
    assert asyncio.run(completion.complete_raw("s", "u", "m")) is None


@pytest.mark.parametrize("payload", [
    None,
    [],
    {"choices": "nope"},
    {"choices": [{"message": {"content": ""}}]},
    {"choices": [{"message": {"content": None}}]},
    {"choices": [{}]},
])
def test_extract_content_rejects_unexpected_shapes(payload):
    assert extract_content(payload) is None


def test_recommend_courses_route(client, completion_stub):
    completion_stub.reply_with("Take CS50.")
    response = client.post("/recommend-courses", json={"userInput": "I want to learn programming"})
    assert response.status_code == 200
    assert response.json() == {"recommendation": "Take CS50."}
    assert completion_stub.last_body()["model"] == "mistralai/mistral-7b-instruct"


def test_recommend_courses_degrades_when_provider_down(client, completion_stub):
    completion_stub.fail_transport()
    response = client.post("/recommend-courses", json={"userInput": "anything"})
    assert response.status_code == 200
    assert response.json() == {"recommendation": FALLBACK_TEXT}


def test_recommend_courses_requires_input(client):
    response = client.post("/recommend-courses", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "User input is required."}
