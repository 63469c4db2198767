"""
Response returned to the caller, stamped with the number of retries it took.
"""

from typing import Optional

import httpx

from .request import media_type_matches


class HttpResponse:
    def __init__(
        self,
        status_code: int,
        headers=None,
        body: str = "",
        retry_count: int = 0,
        elapsed: float = 0.0,
        http_version: str = "HTTP/1.1",
        reason_phrase: str = "",
    ):
        """Initialize an HttpResponse with status, headers and decoded body."""
        self.status_code = status_code
        self.headers = httpx.Headers(headers or {})
        self.body = body
        self.retry_count = retry_count
        self.elapsed = elapsed
        self.http_version = http_version
        self.reason_phrase = reason_phrase

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> "HttpResponse":
        """Copy a fully read httpx response into an HttpResponse."""
        try:
            elapsed = response.elapsed.total_seconds()
        except RuntimeError:
            # elapsed is only set once the response has been closed
            elapsed = 0.0
        return cls(
            status_code=response.status_code,
            headers=response.headers,
            body=response.text,
            elapsed=elapsed,
            http_version=response.http_version,
            reason_phrase=response.reason_phrase,
        )

    @property
    def was_successful(self) -> bool:
        """Check if the status code is in the 2xx range."""
        return 200 <= self.status_code < 300

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")

    def is_matching_content_type(self, expected_content_type: str) -> bool:
        return media_type_matches(self.content_type, expected_content_type)

    def full_http_text(self) -> str:
        """Render the status line, headers and body as HTTP text."""
        status_line = f"{self.http_version} {self.status_code} {self.reason_phrase}".rstrip()
        lines = [status_line]
        encoding = self.headers.encoding
        for name, value in self.headers.raw:
            lines.append(f"{name.decode(encoding)}: {value.decode(encoding)}")
        lines.append("")
        lines.append(self.body or "")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"<HttpResponse {self.status_code} retries={self.retry_count}>"
