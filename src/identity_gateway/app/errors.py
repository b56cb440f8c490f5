"""Gateway error hierarchy.

Every caller-visible failure is one of four kinds:

  - ``UnauthorizedError``: credential missing, invalid, expired or mismatched.
    Detected locally; never reaches the upstream broker.
  - ``BadRequestError``: caller input malformed or a required field missing.
    Detected locally; never reaches the upstream broker.
  - ``NotFoundError``: the upstream broker reports no matching tenant/credential.
  - ``UpstreamFault``: any other failure from the broker or the credential
    store. Opaque, never retried by this layer.

The messages carried here are safe to return to callers. They never include
secrets, and unauthorized messages never reveal whether a tenant or client
exists.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for errors mapped to an HTTP response."""

    status_code: int = 500
    code: str = "gateway_error"

    def __init__(self, detail: str = "", *, code: str | None = None) -> None:
        self.detail = detail
        if code is not None:
            self.code = code
        super().__init__(f"{self.code}: {detail}" if detail else self.code)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "detail": self.detail}


class UnauthorizedError(GatewayError):
    status_code = 401
    code = "unauthorized"

    def __init__(self, detail: str = "Request is not authorized", **kwargs) -> None:
        super().__init__(detail, **kwargs)


class BadRequestError(GatewayError):
    """Caller input is missing or malformed. ``field`` names the offending input."""

    status_code = 400
    code = "bad_request"

    def __init__(self, field: str, detail: str = "", **kwargs) -> None:
        self.field = field
        super().__init__(detail or f"Missing or invalid {field}", **kwargs)


class InvalidRequestError(BadRequestError):
    """Request fields failed type validation. Only field names are reported."""

    code = "invalid_request"

    def __init__(self, fields) -> None:
        self.fields = tuple(fields) or ("body",)
        names = ", ".join(self.fields)
        super().__init__(names, f"Invalid request fields: {names}")


class NotFoundError(GatewayError):
    status_code = 404
    code = "not_found"


class UpstreamFault(GatewayError):
    """Opaque failure reported by (or while talking to) an upstream service.

    ``upstream_status`` is the HTTP status the upstream returned, or 0 when
    no response was received. Client-class statuses (4xx) are passed through
    to the caller unchanged; everything else surfaces as 500.
    """

    code = "upstream_fault"

    def __init__(
        self,
        detail: str = "Upstream identity service failed",
        *,
        upstream_status: int = 0,
        **kwargs,
    ) -> None:
        self.upstream_status = upstream_status
        if 400 <= upstream_status < 500:
            self.status_code = upstream_status
        super().__init__(detail, **kwargs)


class UpstreamTimeoutError(UpstreamFault):
    def __init__(self, detail: str = "Upstream identity service timed out") -> None:
        super().__init__(detail)
