"""
Unit tests for server-side request reading.
"""

import io

import pytest

from httpwire.http.errors import ConnectionClosed, InvalidTarget, MalformedHeader, MalformedStartLine
from httpwire.http.request import read_request


class TestReadRequest:

    def test_get(self, sample_get_request):
        request = read_request(io.BytesIO(sample_get_request))

        assert request.method == "GET"
        assert request.path == "/index.html"
        assert request.headers["Host"] == "localhost:8080"
        assert not request.framing.has_body
        assert request.content_length is None

    def test_method_is_upper_cased(self):
        request = read_request(io.BytesIO(b"options / HTTP/1.1\r\n\r\n"))
        assert request.method == "OPTIONS"

    def test_path_is_unquoted_and_query_split(self):
        request = read_request(io.BytesIO(b"GET /docs/a%20b.txt?v=2&x=y HTTP/1.1\r\n\r\n"))

        assert request.target == "/docs/a%20b.txt?v=2&x=y"
        assert request.path == "/docs/a b.txt"
        assert request.query == "v=2&x=y"

    def test_post_body(self, sample_post_request):
        request = read_request(io.BytesIO(sample_post_request))

        assert request.content_length == 9
        assert b"".join(request.body()) == b'{"k":"v"}'

    def test_body_consumed_once(self, sample_post_request):
        request = read_request(io.BytesIO(sample_post_request))
        list(request.body())

        with pytest.raises(RuntimeError):
            request.body()
        assert request.discard_body() == 0

    def test_discard_body(self, sample_post_request):
        request = read_request(io.BytesIO(sample_post_request))
        assert request.discard_body() == 9

    def test_chunked_body(self):
        data = (
            b"POST /upload HTTP/1.1\r\n"
            b"Transfer-Encoding: chunked\r\n"
            b"\r\n"
            b"4\r\nWiki\r\n5\r\npedia\r\n0\r\n\r\n"
        )
        request = read_request(io.BytesIO(data))

        assert request.framing.is_chunked
        assert b"".join(request.body()) == b"Wikipedia"

    @pytest.mark.parametrize("target", [b"index.html", b"http://example.com/", b"*"])
    def test_target_must_start_with_slash(self, target):
        with pytest.raises(InvalidTarget):
            read_request(io.BytesIO(b"GET " + target + b" HTTP/1.1\r\n\r\n"))

    def test_malformed_request_line(self):
        with pytest.raises(MalformedStartLine):
            read_request(io.BytesIO(b"GET\r\n\r\n"))

    def test_nbsp_is_part_of_the_path(self):
        request = read_request(io.BytesIO(b"GET /a\xa0b HTTP/1.1\r\n\r\n"))

        assert request.target == "/a\xa0b"
        assert request.path == "/a\xa0b"
        assert request.version == "HTTP/1.1"

    @pytest.mark.parametrize("line", [
        b"GET / HTTP/1.1 extra",
        b"GET / HTTP/11",
        b"GET / http/1.1",
        b"GET /a b HTTP/1.1",
    ])
    def test_invalid_version(self, line):
        with pytest.raises(MalformedStartLine):
            read_request(io.BytesIO(line + b"\r\n\r\n"))

    def test_bad_content_length(self):
        with pytest.raises(MalformedHeader):
            read_request(io.BytesIO(b"POST / HTTP/1.1\r\nContent-Length: nine\r\n\r\n"))

    def test_empty_connection(self):
        with pytest.raises(ConnectionClosed):
            read_request(io.BytesIO(b""))
