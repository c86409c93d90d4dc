"""Tests for trill.http: headers, content negotiation, and responses."""

import pytest

from trill.http.headers import Headers, wants_json
from trill.http.response import Response


class TestHeaders:
    def test_case_insensitive(self) -> None:
        headers = Headers(((b"Content-Type", b"text/html"),))
        assert headers["content-type"] == "text/html"
        assert "CONTENT-TYPE" in headers

    def test_from_mapping(self) -> None:
        headers = Headers.from_mapping({"Accept": "application/json"})
        assert headers.get("accept") == "application/json"
        assert headers.get("missing") is None

    def test_missing_key_raises(self) -> None:
        with pytest.raises(KeyError):
            Headers()["accept"]


class TestWantsJson:
    @pytest.mark.parametrize(
        ("accept", "expected"),
        [
            ("application/json", True),
            ("application/json, text/html;q=0.9", True),
            ("text/html, application/json;q=0.5", False),
            ("text/html,application/xhtml+xml,*/*;q=0.8", False),
            ("*/*", False),
            ("", False),
            ("application/json;q=0", False),
        ],
    )
    def test_negotiation(self, accept: str, expected: bool) -> None:
        assert wants_json({"accept": accept}) is expected

    def test_no_accept_header(self) -> None:
        assert wants_json({}) is False


class TestResponse:
    def test_chaining_is_immutable(self) -> None:
        base = Response("ok")
        changed = base.with_status(201).with_header("X-Build", "1-1")
        assert base.status == 200
        assert changed.status == 201
        assert changed.header("x-build") == "1-1"

    def test_body_conversions(self) -> None:
        assert Response("héllo").body_bytes == "héllo".encode()
        assert Response(b"abc").text == "abc"

    def test_content_type(self) -> None:
        assert Response().with_content_type("application/json").content_type == "application/json"
