"""
Unit tests for request template parsing.
"""

import pytest

from httpwire.template import RequestTemplate, TemplateError


POST_TEMPLATE = """METHOD: POST
URL: http://localhost:8080/api/data
HEADERS:
Content-Type: application/json
X-Trace: abc

{"k": "v"}
"""


class TestRequestTemplate:

    def test_parse_full_template(self):
        template = RequestTemplate.parse(POST_TEMPLATE)

        assert template.method == "POST"
        assert template.url == "http://localhost:8080/api/data"
        assert template.path == "/api/data"
        assert template.host == "localhost"
        assert template.port == 8080
        assert list(template.headers.items()) == [
            ("Content-Type", "application/json"),
            ("X-Trace", "abc"),
        ]
        assert template.body == '{"k": "v"}'

    def test_method_defaults_to_get(self):
        template = RequestTemplate.parse("URL: http://example.com/file.txt\n")

        assert template.method == "GET"
        assert template.body is None

    def test_method_is_upper_cased(self):
        assert RequestTemplate.parse("METHOD: post\nURL: http://h/\n").method == "POST"

    def test_path_defaults_to_root(self):
        assert RequestTemplate.parse("URL: http://example.com\n").path == "/"

    def test_path_keeps_query(self):
        assert RequestTemplate.parse("URL: http://h/search?q=1\n").path == "/search?q=1"

    def test_crlf_line_endings(self):
        template = RequestTemplate.parse(POST_TEMPLATE.replace("\n", "\r\n"))

        assert template.method == "POST"
        assert template.body == '{"k": "v"}'

    def test_body_keeps_inner_blank_lines(self):
        template = RequestTemplate.parse("URL: http://h/\n\nline one\n\nline two\n")
        assert template.body == "line one\n\nline two"

    def test_missing_url(self):
        with pytest.raises(TemplateError):
            RequestTemplate.parse("METHOD: GET\nHEADERS:\nAccept: */*\n")

    def test_line_without_colon(self):
        with pytest.raises(TemplateError):
            RequestTemplate.parse("URL: http://h/\nnonsense\n")

    def test_from_file(self, tmp_path):
        path = tmp_path / "request.tmpl"
        path.write_text(POST_TEMPLATE, encoding="utf-8")

        assert RequestTemplate.from_file(path).method == "POST"
