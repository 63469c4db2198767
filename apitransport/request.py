"""
Logical HTTP request: header bookkeeping, wire normalization and a plain-text
rendering for logs.
"""

from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Iterable, List, Optional, Tuple

import httpx

SECURE_SCHEME_PREFIX = "https"
CURRENT_TIME_SENTINEL = "current_time"
MAX_RENDERED_AUTHORIZATION = 30
BODY_ENCODING = "utf-8"


class InvalidHeaderValueError(ValueError):
    """A request header carries a value that cannot be sent as configured."""

    def __init__(self, header: str, value: str, reason: str):
        self.header = header
        self.value = value
        super().__init__(f"Invalid value for {header} header: {value!r} ({reason})")


def parse_http_date(value: str) -> datetime:
    """Parse an HTTP or ISO 8601 date into an aware UTC datetime.

    Naive values are taken to be local time.
    """
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        parsed = None

    if parsed is None:
        text = value.strip()
        # fromisoformat only understands a "Z" suffix from 3.11 on
        if text[-1:] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidHeaderValueError("If-Modified-Since", value, str(e)) from e

    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed.astimezone(timezone.utc)


def format_http_date(moment: datetime) -> str:
    """Render an aware datetime as an RFC 1123 GMT date."""
    return format_datetime(moment.astimezone(timezone.utc), usegmt=True)


class HttpRequest:
    """Caller-side description of a request before it is put on the wire."""

    def __init__(
        self,
        method: str = "GET",
        url: str = "",
        body: Optional[str] = None,
        headers=None,
    ):
        self.method = method
        self.url = url
        self.body = body
        self.headers = httpx.Headers()
        if headers:
            for name, value in dict(headers).items():
                self.headers[name] = value

    @property
    def accept(self) -> Optional[str]:
        return self.headers.get("Accept")

    @accept.setter
    def accept(self, value: str):
        self.headers["Accept"] = value

    @property
    def authorization(self) -> Optional[str]:
        return self.headers.get("Authorization")

    @authorization.setter
    def authorization(self, value: str):
        self.headers["Authorization"] = value

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")

    @content_type.setter
    def content_type(self, value: str):
        self.headers["Content-Type"] = value

    def is_matching_content_type(self, expected_content_type: str) -> bool:
        """Compare the media type (parameters ignored) against an expected one."""
        return media_type_matches(self.content_type, expected_content_type)

    def header_items(self) -> List[Tuple[str, str]]:
        """Headers as (name, value) pairs with the caller's name casing."""
        encoding = self.headers.encoding
        return [
            (name.decode(encoding), value.decode(encoding))
            for name, value in self.headers.raw
        ]

    def effective_url(self, base_url: Optional[str]) -> str:
        """Absolute secure URLs are used as-is; anything else is appended to base_url."""
        if self.url.lower().startswith(SECURE_SCHEME_PREFIX):
            return self.url
        return (base_url or "") + self.url

    def prepare(
        self,
        base_url: Optional[str],
        additional_headers: Iterable[Tuple[str, str]] = (),
    ) -> httpx.Request:
        """Build a fresh wire request for one attempt.

        Raises InvalidHeaderValueError when If-Modified-Since cannot be parsed.
        """
        wire_headers: List[Tuple[str, str]] = []

        for name, value in self.header_items():
            key = name.lower()
            if key == "accept":
                wire_headers.append(("Accept", value))
            elif key == "content-type":
                wire_headers.append(("Content-Type", value))
            elif key == "content-length":
                # httpx computes this from the body
                continue
            elif key == "if-modified-since":
                if value == CURRENT_TIME_SENTINEL:
                    moment = datetime.now(timezone.utc)
                else:
                    moment = parse_http_date(value)
                wire_headers.append(("If-Modified-Since", format_http_date(moment)))
            else:
                wire_headers.append((name, value))

        content = None
        if self.body is not None:
            content = self.body.encode(BODY_ENCODING)

        for name, value in additional_headers:
            wire_headers.append((name, value))

        return httpx.Request(
            self.method,
            self.effective_url(base_url),
            headers=wire_headers,
            content=content,
        )

    def full_http_text(self) -> str:
        """Render the request as HTTP/1.1 text, with long credentials cut short."""
        lines = [f"{self.method} {self.url} HTTP/1.1"]
        for name, value in self.header_items():
            if name.lower() == "authorization" and len(value) > MAX_RENDERED_AUTHORIZATION:
                value = value[:MAX_RENDERED_AUTHORIZATION] + "..."
            lines.append(f"{name}: {value}")
        lines.append("")
        lines.append(self.body or "")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"<HttpRequest {self.method} {self.url}>"


def media_type_matches(content_type: Optional[str], expected: str) -> bool:
    if not content_type:
        return False
    media_type = content_type.split(";")[0].strip()
    return media_type.lower() == expected.lower()
