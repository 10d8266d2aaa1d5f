"""Exception hierarchy for the Telegram Bot API client."""

from typing import Any, Dict, Optional


class APIException(Exception):
    """Raised for non-2xx responses or ``"ok": false`` bodies from the Bot API.

    Attributes:
        status_code: HTTP status code returned by the API.
        response_body: Raw response body as a dict, when available.
    """

    def __init__(self, status_code: int, response_body: Optional[Dict[str, Any]] = None) -> None:
        self.status_code = status_code
        self.response_body = response_body or {}
        description = self.response_body.get("description", "Unknown error")
        super().__init__(f"API error {status_code}: {description}")

    @property
    def retry_after(self) -> Optional[int]:
        """Seconds to wait before retrying, when Telegram asks for it (HTTP 429)."""
        parameters = self.response_body.get("parameters") or {}
        return parameters.get("retry_after")
