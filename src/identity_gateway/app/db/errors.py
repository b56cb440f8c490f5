"""Errors raised by the PostgREST lookup client.

They carry only the status, PostgREST's error ``code``/``message``/``details``
and never the request headers, so the service key cannot end up in a
traceback or log line. Repositories translate them into gateway errors.
"""

from __future__ import annotations

import httpx


class PostgrestError(Exception):
    """A PostgREST lookup failed. ``status_code`` is 0 when no response arrived."""

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        code: str | None = None,
        details: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.code = code
        self.details = details
        super().__init__(status_code, message)

    def __str__(self) -> str:
        text = f"PostgREST {self.status_code or 'no response'}: {self.message}"
        if self.code:
            text += f" [{self.code}]"
        if self.details:
            text += f" ({self.details})"
        return text

    @classmethod
    def from_response(cls, resp: httpx.Response) -> PostgrestError:
        """Build the most specific error for a failed response."""
        message, code, details = resp.text or resp.reason_phrase, None, None
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or message
            code = body.get("code")
            details = body.get("details")

        if resp.status_code in (401, 403):
            err_cls: type[PostgrestError] = PostgrestAuthError
        elif resp.status_code == 404:
            err_cls = PostgrestNotFoundError
        else:
            err_cls = PostgrestError
        return err_cls(resp.status_code, message, code=code, details=details)


class PostgrestAuthError(PostgrestError):
    """Service key rejected or row-level security denied the read."""


class PostgrestNotFoundError(PostgrestError):
    """The table, view or schema is not exposed."""


class PostgrestTimeoutError(PostgrestError):
    """No response within the configured timeout."""

    def __init__(self, message: str = "request timed out") -> None:
        super().__init__(0, message)
