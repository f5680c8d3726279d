"""Client frames on the account WebSocket."""

import pytest

from fairchain.ws.router import reply_to_client


def test_ping():
    assert reply_to_client('{"action": "ping"}') == {"event": "pong"}


def test_invalid_json():
    assert reply_to_client("{nope") == {"event": "error", "message": "Invalid JSON"}


@pytest.mark.parametrize("raw", ["[]", "1", '"ping"', "null"])
def test_non_object_frames(raw):
    assert reply_to_client(raw) == {"event": "error", "message": "Expected a JSON object"}


def test_unknown_action():
    assert reply_to_client('{"action": "subscribe"}') == {"event": "error", "message": "Unknown action: subscribe"}
