"""
Unit tests for client pieces that do not need a network.
"""

import io

import pytest

from httpwire.client import (
    DEFAULT_USER_AGENT,
    ClientResponse,
    HTTPClient,
    ProgressBar,
    default_output_path,
)
from httpwire.http.message import parse_head


class TestProgressBar:

    def test_render_half(self):
        bar = ProgressBar(io.StringIO(), width=10)
        assert bar.render(512, 1024) == "[=====>    ] 50.0% (512/1024 bytes)"

    def test_render_complete(self):
        bar = ProgressBar(io.StringIO(), width=10)
        assert bar.render(1024, 1024) == "[==========] 100.0% (1024/1024 bytes)"

    def test_render_unknown_total(self):
        assert ProgressBar(io.StringIO()).render(9, None) == "9 bytes"

    def test_render_empty_body(self):
        bar = ProgressBar(io.StringIO(), width=4)
        assert bar.render(0, 0) == "[====] 100.0% (0/0 bytes)"

    def test_redraws_in_place_and_ends_line(self):
        out = io.StringIO()
        bar = ProgressBar(out, width=4)

        bar(2, 4)
        bar(4, 4)
        bar(4, 4)

        text = out.getvalue()
        assert text.count("\r") == 2
        assert text.endswith("(4/4 bytes)\n")
        assert bar.finished

    def test_chunked_transfer_finishes_on_total(self):
        out = io.StringIO()
        bar = ProgressBar(out, width=4)

        bar(4, None)
        assert not bar.finished
        bar(9, 9)
        assert bar.finished


class TestDefaultOutputPath:

    @pytest.mark.parametrize("url,expected", [
        ("http://host/files/report.pdf", "report.pdf"),
        ("http://host/files/report.pdf?v=2", "report.pdf"),
        ("http://host/", "index.html"),
        ("http://host", "index.html"),
        ("http://host/dir/", "index.html"),
    ])
    def test_names(self, url, expected):
        assert default_output_path(url) == expected


class TestHTTPClient:

    def test_from_url(self):
        client, target = HTTPClient.from_url("http://example.com:8080/a/b.txt?x=1")

        assert client.host == "example.com"
        assert client.port == 8080
        assert target == "/a/b.txt?x=1"

    def test_from_url_defaults(self):
        client, target = HTTPClient.from_url("http://example.com")

        assert client.port == 80
        assert target == "/"
        assert client.host_header == "example.com"

    @pytest.mark.parametrize("url", ["https://example.com/", "ftp://example.com/", "http:///nohost"])
    def test_from_url_rejects(self, url):
        with pytest.raises(ValueError):
            HTTPClient.from_url(url)

    def test_request_head_order(self):
        client = HTTPClient("localhost", 8080, default_headers={"Accept": "*/*"})
        head = client.build_request_head(
            "post", "/upload", headers={"X-Trace": "abc"}, content_length=9,
        )

        assert head.start_line_text == "POST /upload HTTP/1.1"
        assert list(head.headers.items()) == [
            ("Host", "localhost:8080"),
            ("User-Agent", DEFAULT_USER_AGENT),
            ("Accept", "*/*"),
            ("X-Trace", "abc"),
            ("Content-Length", "9"),
        ]

    def test_caller_headers_replace_defaults(self):
        client = HTTPClient("localhost", 80)
        head = client.build_request_head("GET", "/", headers={"user-agent": "custom/1"})

        assert head.headers["User-Agent"] == "custom/1"
        assert list(head.headers)[1].lower() == "user-agent"
        assert "Content-Length" not in head.headers

    def test_body_sources(self, tmp_path):
        client = HTTPClient("localhost")
        path = tmp_path / "payload.bin"
        path.write_bytes(b"x" * 20000)

        length, blocks = client._body_source("héllo")
        assert (length, b"".join(blocks)) == (6, "héllo".encode())

        length, blocks = client._body_source(path)
        assert length == 20000
        assert b"".join(blocks) == b"x" * 20000

        assert client._body_source(None) == (None, [])
        assert client._body_source(b"") == (0, [])


class TestClientResponse:

    def test_describe_and_ok(self):
        head = parse_head(io.BytesIO(
            b"HTTP/1.1 404 Not Found\r\nContent-Type: text/plain\r\nContent-Length: 10\r\n\r\n"
        ))
        response = ClientResponse(head=head)

        assert not response.ok
        assert response.status == 404
        assert response.reason == "Not Found"
        assert response.describe() == (
            "HTTP/1.1 404 Not Found\nContent-Type: text/plain\nContent-Length: 10"
        )
