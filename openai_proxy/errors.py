"""Error taxonomy surfaced to clients as ``{"error": {"message", "type"}}``."""

from __future__ import annotations


class ProxyError(Exception):
    """Base class for failures converted into the OpenAI-style error envelope."""

    error_type = "internal_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, dict[str, str]]:
        return {"error": {"message": self.message, "type": self.error_type}}


class TokenError(ProxyError):
    """Credential acquisition failed at any stage."""

    error_type = "token_error"
    status_code = 500


class InvalidRequestError(ProxyError):
    """The inbound body is malformed."""

    error_type = "invalid_request_error"
    status_code = 400


class InternalError(ProxyError):
    """Local serialization or parse failure."""

    error_type = "internal_error"
    status_code = 500


class DownstreamError(ProxyError):
    """Network failure reaching the backend."""

    error_type = "downstream_error"
    status_code = 502


class StreamError(ProxyError):
    """Failure while relaying an active backend stream."""

    error_type = "stream_error"
    status_code = 500
