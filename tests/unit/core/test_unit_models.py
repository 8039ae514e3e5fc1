# tests/unit/core/test_unit_models.py - v2
"""Tests for core/models.py and core/errors.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from occlaude.core.errors import (
    ApiStatusError,
    ClientError,
    ParseError,
    ReadError,
    ReadTimeout,
)
from occlaude.core.models import ChatRequest, ChatResult, Message


class TestMessage:
    def test_roles(self):
        assert Message(role="user", content="a").role == "user"
        assert Message(role="assistant", content="b").role == "assistant"

    def test_invalid_role(self):
        with pytest.raises(ValidationError):
            Message(role="system", content="x")


class TestChatRequest:
    def test_payload_with_system(self):
        request = ChatRequest(
            model="m", max_tokens=10,
            messages=[{"role": "user", "content": "hi"}],
            system="be nice",
        )
        assert request.to_payload() == {
            "model": "m",
            "max_tokens": 10,
            "messages": [{"role": "user", "content": "hi"}],
            "system": "be nice",
        }

    @pytest.mark.parametrize("system", [None, ""])
    def test_payload_without_system(self, system):
        request = ChatRequest(model="m", messages=[], system=system)
        payload = request.to_payload()
        assert "system" not in payload
        assert payload["max_tokens"] == 4096

    def test_max_tokens_positive(self):
        with pytest.raises(ValidationError):
            ChatRequest(model="m", max_tokens=0, messages=[])


class TestChatResult:
    def test_accessors(self):
        result = ChatResult(text="t", raw={"stop_reason": "end_turn", "usage": {"input_tokens": 3}})
        assert result.stop_reason == "end_turn"
        assert result.usage == {"input_tokens": 3}

    def test_defaults(self):
        result = ChatResult(text="t")
        assert result.stop_reason is None
        assert result.usage == {}


class TestErrors:
    def test_hierarchy(self):
        assert issubclass(ReadTimeout, ReadError)
        assert issubclass(ApiStatusError, ClientError)

    def test_parse_error_position(self):
        error = ParseError("Unexpected character", offset=4, snippet="x]")
        assert error.offset == 4
        assert str(error) == "Unexpected character at position 4: 'x]'"

    def test_parse_error_without_position(self):
        assert str(ParseError("no separator")) == "no separator"

    def test_api_status_error_message(self):
        assert str(ApiStatusError(404, "Not Found")) == "API error 404: Not Found"
        assert str(ApiStatusError(400, "Bad Request", "bad model")) == "API error 400: Bad Request - bad model"
