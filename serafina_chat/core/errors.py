from __future__ import annotations


class ChatError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, detail: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(ChatError):
    status_code = 500
    code = "configuration_error"


class MessageValidationError(ChatError):
    status_code = 400
    code = "invalid_message"


class RateLimitError(ChatError):
    status_code = 429
    code = "rate_limited"


class UpstreamError(ChatError):
    status_code = 502
    code = "upstream_error"
