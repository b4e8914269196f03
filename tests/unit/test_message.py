"""
Unit tests for message head parsing and serialization.
"""

import io

import pytest

from httpwire.http.errors import (
    ConnectionClosed,
    MalformedHeader,
    MalformedStartLine,
    TruncatedHeaders,
)
from httpwire.http.headers import Headers
from httpwire.http.message import (
    MAX_HEADERS,
    MAX_LINE_LENGTH,
    MessageHead,
    parse_head,
    write_head,
)


def parse(data: bytes) -> MessageHead:
    return parse_head(io.BytesIO(data))


class TestParseHead:
    """Tests for parse_head."""

    def test_request_head(self, sample_get_request):
        head = parse(sample_get_request)

        assert head.method == "GET"
        assert head.target == "/index.html"
        assert head.version == "HTTP/1.1"
        assert head.headers["host"] == "localhost:8080"
        assert head.headers["USER-AGENT"] == "pytest"
        assert not head.is_response

    def test_response_head(self):
        head = parse(b"HTTP/1.1 404 Not Found\r\nContent-Length: 0\r\n\r\n")

        assert head.is_response
        assert head.version == "HTTP/1.1"
        assert head.status == 404
        assert head.reason == "Not Found"

    def test_reason_phrase_keeps_spaces(self):
        head = parse(b"HTTP/1.1 505 HTTP Version Not Supported\r\n\r\n")
        assert head.reason == "HTTP Version Not Supported"

    def test_empty_reason_phrase(self):
        head = parse(b"HTTP/1.1 200 \r\n\r\n")
        assert head.status == 200
        assert head.reason == ""

    def test_tab_separates_fields(self):
        head = parse(b"GET\t/index.html \t HTTP/1.1\r\n\r\n")
        assert head.start_line == ("GET", "/index.html", "HTTP/1.1")

    @pytest.mark.parametrize("target", [b"/a\xa0b", b"/a\x1cb", b"/a\x0bb", b"/a\x85b"])
    def test_other_whitespace_stays_in_target(self, target):
        head = parse(b"GET " + target + b" HTTP/1.1\r\n\r\n")

        assert head.target == target.decode("iso-8859-1")
        assert head.version == "HTTP/1.1"

    def test_nbsp_in_reason_phrase(self):
        head = parse(b"HTTP/1.1 404 Not\xa0Found\r\n\r\n")
        assert head.reason == "Not\xa0Found"

    def test_bare_lf_is_tolerated(self):
        head = parse(b"GET / HTTP/1.1\nHost: x\n\n")
        assert head.target == "/"
        assert head.headers["Host"] == "x"

    def test_only_head_is_consumed(self, sample_post_request):
        stream = io.BytesIO(sample_post_request)
        head = parse_head(stream)

        assert head.headers["Content-Length"] == "9"
        assert stream.read() == b'{"k":"v"}'

    def test_header_values_are_trimmed(self):
        head = parse(b"GET / HTTP/1.1\r\nX-Padded:    value  \t\r\n\r\n")
        assert head.headers["X-Padded"] == "value"

    def test_header_value_may_contain_colons(self):
        head = parse(b"GET / HTTP/1.1\r\nHost: localhost:8080\r\n\r\n")
        assert head.headers["Host"] == "localhost:8080"

    def test_duplicate_header_last_write_wins(self):
        head = parse(b"GET / HTTP/1.1\r\nX-A: 1\r\nX-B: 2\r\nx-a: 3\r\n\r\n")

        assert head.headers["X-A"] == "3"
        assert [name.lower() for name in head.headers] == ["x-a", "x-b"]

    def test_non_ascii_header_bytes_survive(self):
        head = parse(b"GET / HTTP/1.1\r\nX-Name: caf\xe9\r\n\r\n")
        assert head.headers["X-Name"] == "café"
        assert b"X-Name: caf\xe9\r\n" in write_head(head)


class TestParseHeadErrors:
    """Malformed input must raise the matching error."""

    @pytest.mark.parametrize("line", [
        b"GET /\r\n",
        b"GET / \r\n",
        b"GET /a\xa0HTTP/1.1\r\n",
        b"GET\r\n",
        b"\r\n",
    ])
    def test_start_line_with_too_few_fields(self, line):
        with pytest.raises(MalformedStartLine):
            parse(line + b"\r\n")

    def test_header_without_colon(self):
        with pytest.raises(MalformedHeader):
            parse(b"GET / HTTP/1.1\r\nNoColonHere\r\n\r\n")

    def test_obsolete_line_folding_rejected(self):
        with pytest.raises(MalformedHeader):
            parse(b"GET / HTTP/1.1\r\nX-Long: part one\r\n  part two\r\n\r\n")

    def test_whitespace_before_colon_rejected(self):
        with pytest.raises(MalformedHeader):
            parse(b"GET / HTTP/1.1\r\nHost : x\r\n\r\n")

    def test_missing_blank_line(self):
        with pytest.raises(TruncatedHeaders):
            parse(b"GET / HTTP/1.1\r\nHost: x\r\n")

    def test_stream_ends_mid_line(self):
        with pytest.raises(TruncatedHeaders):
            parse(b"GET / HTTP/1.1\r\nHos")

    def test_empty_stream_is_connection_closed(self):
        with pytest.raises(ConnectionClosed):
            parse(b"")

    def test_connection_closed_is_truncated_headers(self):
        assert issubclass(ConnectionClosed, TruncatedHeaders)

    def test_overlong_header_line(self):
        data = b"GET / HTTP/1.1\r\nX-Big: " + b"a" * MAX_LINE_LENGTH + b"\r\n\r\n"
        with pytest.raises(MalformedHeader):
            parse(data)

    def test_overlong_start_line(self):
        data = b"GET /" + b"a" * MAX_LINE_LENGTH + b" HTTP/1.1\r\n\r\n"
        with pytest.raises(MalformedStartLine):
            parse(data)

    def test_too_many_headers(self):
        lines = b"".join(b"X-H%d: v\r\n" % i for i in range(MAX_HEADERS + 1))
        with pytest.raises(MalformedHeader):
            parse(b"GET / HTTP/1.1\r\n" + lines + b"\r\n")

    def test_non_numeric_status(self):
        head = parse(b"HTTP/1.1 OK fine\r\n\r\n")
        with pytest.raises(MalformedStartLine):
            head.status


class TestWriteHead:
    """Tests for serialization."""

    def test_request_wire_format(self):
        head = MessageHead.request("GET", "/a.txt", {"Host": "example.com", "Accept": "*/*"})

        assert write_head(head) == (
            b"GET /a.txt HTTP/1.1\r\n"
            b"Host: example.com\r\n"
            b"Accept: */*\r\n"
            b"\r\n"
        )

    def test_response_default_reason(self):
        head = MessageHead.response(204)
        assert head.to_bytes() == b"HTTP/1.1 204 No Content\r\n\r\n"

    def test_response_unknown_status_reason(self):
        assert MessageHead.response(299).reason == "Unknown"

    def test_unencodable_header_rejected(self):
        head = MessageHead.request("GET", "/", {"X-Emoji": "☃"})
        with pytest.raises(MalformedHeader):
            write_head(head)

    def test_round_trip(self):
        original = MessageHead.request(
            "POST",
            "/upload?x=1",
            Headers({"Content-Type": "text/plain", "content-length": "5", "X-Empty": ""}),
        )

        parsed = parse(write_head(original))

        assert parsed.start_line == original.start_line
        assert parsed.headers == original.headers
        assert list(parsed.headers.items()) == list(original.headers.items())

    def test_response_round_trip(self):
        original = MessageHead.response(404, headers={"Content-Type": "text/plain", "Content-Length": "10"})
        parsed = parse(original.to_bytes())

        assert parsed.status == 404
        assert parsed.reason == "Not Found"
        assert parsed.headers == original.headers
