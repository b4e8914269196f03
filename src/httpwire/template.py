"""
=============================================================================
REQUEST TEMPLATES
=============================================================================

A request template is a small text file describing one request, so it
can be replayed without retyping method, headers and body:

    METHOD: POST
    URL: http://localhost:8080/api/data
    HEADERS:
    Content-Type: application/json
                                            ← first blank line
    {"k": "v"}                              ← body (everything after)

Head section rules:

    METHOD: <verb>     request method            (default GET)
    URL: <url>         request URL               (required)
    HEADERS:           marker line, carries nothing
    Name: Value        any other line is a header

=============================================================================
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlsplit

from .http.headers import Headers


class TemplateError(ValueError):
    """The template file cannot be turned into a request."""


@dataclass
class RequestTemplate:
    method: str = "GET"
    url: str = ""
    headers: Headers = field(default_factory=Headers)
    body: Optional[str] = None

    @property
    def path(self) -> str:
        """Path and query of the URL; "/" when the URL has no path."""
        parts = urlsplit(self.url)
        path = parts.path or "/"
        if parts.query:
            path = f"{path}?{parts.query}"
        return path

    @property
    def host(self) -> Optional[str]:
        return urlsplit(self.url).hostname

    @property
    def port(self) -> Optional[int]:
        return urlsplit(self.url).port

    @classmethod
    def parse(cls, text: str) -> "RequestTemplate":
        head, _, body = text.replace("\r\n", "\n").partition("\n\n")

        template = cls()
        for line in head.split("\n"):
            line = line.strip()
            if not line:
                continue

            key, sep, value = line.partition(":")
            if not sep:
                raise TemplateError(f"Template line without ':': {line!r}")
            keyword = key.strip().upper()
            value = value.strip()

            if keyword == "METHOD":
                template.method = value.upper() or "GET"
            elif keyword == "URL":
                template.url = value
            elif keyword == "HEADERS":
                continue
            else:
                template.headers[key.strip()] = value

        if not template.url:
            raise TemplateError("Template has no URL line")

        body = body.strip()
        template.body = body or None
        return template

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "RequestTemplate":
        return cls.parse(Path(path).read_text(encoding="utf-8"))
