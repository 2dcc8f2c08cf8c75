"""
Unit tests for HTTP response encoding.
"""

from datetime import datetime, timezone

import pytest

from httprint.errors import ResponseSendError
from httprint.http.response import (
    HTTPResponse,
    empty_response,
    format_http_date,
    respond,
)
from httprint.http.status_codes import HTTPStatus


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        assert HTTPResponse(status=HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"

        response = HTTPResponse(status=HTTPStatus.HTTP_VERSION_NOT_SUPPORTED)
        assert response.status_line == "HTTP/1.1 505 HTTP Version Not Supported"

    def test_to_bytes_adds_default_headers(self):
        result = HTTPResponse().to_bytes("httprint-test")

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Content-Length: 0\r\n" in result
        assert b"Server: httprint-test\r\n" in result
        assert b"Date: " in result
        assert result.endswith(b"\r\n\r\n")

    def test_to_bytes_with_body(self):
        response = HTTPResponse(status=HTTPStatus.BAD_REQUEST, body=b"bad\n")
        result = response.to_bytes()

        assert b"Content-Length: 4\r\n" in result
        assert result.endswith(b"\r\n\r\nbad\n")

    def test_set_header_chaining(self):
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert response.headers == {"X-One": "1", "X-Two": "2"}

    def test_explicit_header_not_overridden(self):
        result = HTTPResponse().set_header("Server", "custom").to_bytes("ignored")

        assert b"Server: custom\r\n" in result
        assert b"ignored" not in result


class TestRespond:
    """Tests for the fixed empty response."""

    def test_empty_response_closes_connection(self):
        response = empty_response()

        assert response.status == HTTPStatus.OK
        assert response.body == b""
        assert response.headers["Connection"] == "close"

    def test_respond_sends_single_200(self, fake_connection):
        respond(fake_connection)

        assert len(fake_connection.sent) == 1
        sent = fake_connection.sent[0]
        assert sent.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Content-Length: 0\r\n" in sent
        assert b"Connection: close\r\n" in sent
        assert sent.endswith(b"\r\n\r\n")

    def test_respond_without_connection_is_noop(self):
        respond(None)

    def test_respond_failure_raises(self, failing_connection):
        with pytest.raises(ResponseSendError):
            respond(failing_connection)


class TestHTTPDate:
    """Tests for format_http_date."""

    def test_format(self):
        dt = datetime(2026, 10, 19, 8, 5, 3, tzinfo=timezone.utc)

        assert format_http_date(dt) == "Mon, 19 Oct 2026 08:05:03 GMT"
