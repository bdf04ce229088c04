"""Tests for inbound request parsing and defaulting."""

from __future__ import annotations

import json

import pytest
from conftest import make_config

from openai_proxy.core.types import DEFAULT_MODEL, ChatRequest
from openai_proxy.errors import InvalidRequestError
from openai_proxy.proxy.normalizer import normalize


def _normalize(body: object, **cfg_overrides) -> ChatRequest:
    raw = body if isinstance(body, bytes) else json.dumps(body).encode()
    return normalize(raw, make_config(**cfg_overrides))


class TestParsing:
    def test_invalid_json(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            _normalize(b"{not json")
        assert exc_info.value.status_code == 400
        assert exc_info.value.error_type == "invalid_request_error"

    def test_empty_body(self):
        with pytest.raises(InvalidRequestError):
            _normalize(b"")

    def test_non_object_body(self):
        with pytest.raises(InvalidRequestError, match="object"):
            _normalize([1, 2, 3])

    def test_unknown_keys_pass_through(self):
        req = _normalize({"messages": [{"role": "user", "content": "Hi"}], "temperature": 0.2})
        doc = req.to_dict()
        assert doc["messages"] == [{"role": "user", "content": "Hi"}]
        assert doc["temperature"] == 0.2


class TestDefaults:
    def test_user_and_max_tokens_filled_when_absent(self):
        req = _normalize({"messages": []}, default_user="svc", default_max_tokens=64)
        assert req["user"] == "svc"
        assert req["max_tokens"] == 64

    def test_existing_values_kept(self):
        req = _normalize({"user": "alice", "max_tokens": 10})
        assert req["user"] == "alice"
        assert req["max_tokens"] == 10

    def test_legacy_check_overwrites_max_tokens(self):
        req = _normalize({"max_tokens": 10}, legacy_max_token_check=True, default_max_tokens=2000)
        assert req["max_tokens"] == 2000

    def test_legacy_check_respects_max_token_alias(self):
        req = _normalize(
            {"max_tokens": 10, "max_token": 10},
            legacy_max_token_check=True,
            default_max_tokens=2000,
        )
        assert req["max_tokens"] == 10
        assert req["max_token"] == 10


class TestRoutingHints:
    def test_model_default(self):
        assert _normalize({}).model == DEFAULT_MODEL

    def test_model_coerced_to_text(self):
        assert _normalize({"model": "m"}).model == "m"
        assert _normalize({"model": 4}).model == "4"

    @pytest.mark.parametrize("value,expected", [
        (True, True),
        (False, False),
        ("true", True),
        ("1", True),
        ("no", False),
        (1, True),
        (None, False),
    ])
    def test_stream_coercion(self, value, expected):
        assert _normalize({"stream": value}).stream is expected

    def test_stream_default_false(self):
        assert _normalize({}).stream is False

    def test_hints_leave_document_unchanged(self):
        req = _normalize({"model": 4, "stream": "true"})
        assert req["model"] == 4
        assert req["stream"] == "true"
