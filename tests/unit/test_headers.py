"""
Unit tests for the Headers mapping.
"""

from types import MappingProxyType

import pytest

from httpwire.http.errors import MalformedHeader
from httpwire.http.headers import Headers


class TestHeaders:

    def test_case_insensitive_lookup(self):
        headers = Headers({"Content-Type": "text/plain"})

        assert headers["content-type"] == "text/plain"
        assert headers.get("CONTENT-TYPE") == "text/plain"
        assert "content-TYPE" in headers

    def test_missing_header(self):
        headers = Headers()

        assert headers.get("X-Missing") is None
        assert headers.get("X-Missing", "fallback") == "fallback"
        with pytest.raises(KeyError):
            headers["X-Missing"]

    def test_insertion_order(self):
        headers = Headers()
        headers["B"] = "1"
        headers["A"] = "2"
        headers["C"] = "3"

        assert list(headers) == ["B", "A", "C"]

    def test_reset_keeps_position_and_takes_new_spelling(self):
        headers = Headers()
        headers["x-first"] = "1"
        headers["X-Second"] = "2"
        headers["X-FIRST"] = "3"

        assert list(headers.items()) == [("X-FIRST", "3"), ("X-Second", "2")]

    def test_values_are_trimmed(self):
        headers = Headers()
        headers["X-A"] = "  spaced  "
        assert headers["X-A"] == "spaced"

    def test_non_string_values_are_converted(self):
        headers = Headers()
        headers["Content-Length"] = 42
        assert headers["Content-Length"] == "42"

    @pytest.mark.parametrize("name", ["", "Bad\r\nName", "Has:Colon", "New\nLine"])
    def test_invalid_names_rejected(self, name):
        with pytest.raises(MalformedHeader):
            Headers()[name] = "value"

    def test_value_with_newline_rejected(self):
        with pytest.raises(MalformedHeader):
            Headers()["X-Injected"] = "a\r\nSet-Cookie: evil"

    def test_delete_and_pop(self):
        headers = Headers({"A": "1", "B": "2"})

        del headers["a"]
        assert "A" not in headers
        assert headers.pop("b") == "2"
        assert headers.pop("b", "gone") == "gone"
        assert len(headers) == 0

    def test_setdefault_does_not_override(self):
        headers = Headers({"Content-Type": "text/html"})

        headers.setdefault("content-type", "text/plain")
        headers.setdefault("X-New", "yes")

        assert headers["Content-Type"] == "text/html"
        assert headers["X-New"] == "yes"

    def test_update_is_last_write_wins(self):
        headers = Headers({"A": "1"})
        headers.update({"a": "2", "B": "3"})
        headers.update(None)

        assert headers["A"] == "2"
        assert len(headers) == 2

    def test_copy_is_independent(self):
        original = Headers({"A": "1"})
        copy = original.copy()
        copy["A"] = "2"

        assert original["A"] == "1"

    def test_equality_ignores_name_case(self):
        assert Headers({"Content-Type": "x"}) == Headers({"content-type": "x"})
        assert Headers({"A": "1"}) == {"a": "1"}
        assert Headers({"A": "1"}) != Headers({"A": "2"})

    def test_accepts_read_only_mapping(self):
        frozen = MappingProxyType({"X-Server": "httpwire"})
        assert Headers(frozen)["x-server"] == "httpwire"
