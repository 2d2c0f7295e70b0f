import json
from types import SimpleNamespace

import pytest

from handlers import main, random_number


@pytest.fixture
def logged_events(monkeypatch):
    events = []
    monkeypatch.setattr(
        main.logger,
        "info",
        lambda message: events.append(json.loads(message)),
    )
    return events


def _event(path, method="GET", request_id=None):
    request_context = {"http": {"method": method, "path": path}}
    if request_id:
        request_context["requestId"] = request_id
    return {"rawPath": path, "requestContext": request_context}


def test_handler_delegates_to_random_number(monkeypatch, logged_events):
    monkeypatch.setattr(random_number.random, "randint", lambda low, high: 42)
    response = main.handler(_event("/"), None)
    assert response == {"statusCode": 200, "body": '"Random number: 42"'}


def test_any_path_returns_random_number(logged_events):
    for path in ("/", "/random", "/not/a/route"):
        response = main.handler(_event(path, method="POST"), None)
        assert response["statusCode"] == 200
        assert json.loads(response["body"]).startswith("Random number: ")


def test_logs_request_received(logged_events):
    main.handler(_event("/random", method="POST", request_id="req-1"), None)
    assert logged_events[0] == {
        "event": "RequestReceived",
        "path": "/random",
        "method": "POST",
        "requestId": "req-1",
    }


def test_request_id_falls_back_to_context(logged_events):
    context = SimpleNamespace(aws_request_id="ctx-123")
    main.handler({}, context)
    assert logged_events[0] == {
        "event": "RequestReceived",
        "path": "",
        "method": "UNKNOWN",
        "requestId": "ctx-123",
    }


def test_non_dict_event_is_accepted(logged_events):
    response = main.handler(None, None)
    assert set(response) == {"statusCode", "body"}
    assert logged_events[0]["requestId"] == "unknown"


@pytest.mark.parametrize(
    "event",
    [
        {"requestContext": "abc"},
        {"requestContext": {"http": "GET /"}},
        {"requestContext": ["req"], "rawPath": "/"},
        {"requestContext": {"http": None, "requestId": "req-2"}},
    ],
)
def test_malformed_request_context_still_returns_number(event, logged_events):
    response = main.handler(event, None)
    assert set(response) == {"statusCode", "body"}
    assert response["statusCode"] == 200
    assert logged_events[0]["method"] == "UNKNOWN"
