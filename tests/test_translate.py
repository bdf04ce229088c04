"""Tests for single-shot backend reply translation."""

from __future__ import annotations

import json
import re

import pytest

from openai_proxy.errors import InternalError
from openai_proxy.proxy.helpers import coerce_bool, coerce_int, coerce_text
from openai_proxy.proxy.translate import translate_completion

_ID_RE = re.compile(r"^chatcmpl-[0-9a-f]{32}$")


def _translate(payload: object, model: str = "m") -> dict:
    return translate_completion(json.dumps(payload).encode(), model).model_dump()


class TestTranslateCompletion:
    def test_basic_reply(self):
        body = _translate({"content": "hi", "finish_reason": "stop"})
        assert body["object"] == "chat.completion"
        assert body["model"] == "m"
        assert _ID_RE.match(body["id"])
        [choice] = body["choices"]
        assert choice["message"] == {"role": "assistant", "content": "hi"}
        assert choice["finish_reason"] == "stop"
        assert choice["index"] == 0

    def test_usage_absent_is_zero(self):
        usage = _translate({"content": "hi", "finish_reason": "stop"})["usage"]
        assert usage == {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}

    @pytest.mark.parametrize("prompt,completion,expected", [
        (3, 4, (3, 4)),
        ("12", "8", (12, 8)),
        (5.0, None, (5, 0)),
        ("many", 2, (0, 2)),
    ])
    def test_usage_totals(self, prompt, completion, expected):
        payload = {"content": "x", "finish_reason": "length", "prompt_tokens": prompt}
        if completion is not None:
            payload["completion_tokens"] = completion
        usage = _translate(payload)["usage"]
        assert (usage["prompt_tokens"], usage["completion_tokens"]) == expected
        assert usage["total_tokens"] == usage["prompt_tokens"] + usage["completion_tokens"]

    def test_non_string_content_coerced(self):
        body = _translate({"content": 42, "finish_reason": None})
        assert body["choices"][0]["message"]["content"] == "42"
        assert body["choices"][0]["finish_reason"] == ""

    def test_fresh_id_per_call(self):
        assert _translate({"content": "a"})["id"] != _translate({"content": "a"})["id"]

    def test_invalid_json(self):
        with pytest.raises(InternalError):
            translate_completion(b"Service Unavailable", "m")

    def test_non_object_json(self):
        with pytest.raises(InternalError):
            translate_completion(b'"just a string"', "m")


class TestCoercion:
    @pytest.mark.parametrize("value,expected", [
        (None, ""),
        ("abc", "abc"),
        (True, "true"),
        (7, "7"),
        (2.0, "2"),
        (2.5, "2.5"),
        ({"a": 1}, '{"a":1}'),
        ([1, "b"], '[1,"b"]'),
    ])
    def test_coerce_text(self, value, expected):
        assert coerce_text(value) == expected

    @pytest.mark.parametrize("value,expected", [
        (None, 0),
        (True, 0),
        (7, 7),
        (7.0, 7),
        (7.5, 0),
        (" 12 ", 12),
        ("-3", -3),
        ("1e3", 0),
        ("abc", 0),
        ([1], 0),
    ])
    def test_coerce_int(self, value, expected):
        assert coerce_int(value) == expected

    @pytest.mark.parametrize("value,expected", [
        (True, True),
        ("T", True),
        ("False", False),
        ("yes", False),
        (0, False),
        (2, False),
        ({}, False),
    ])
    def test_coerce_bool(self, value, expected):
        assert coerce_bool(value) is expected
