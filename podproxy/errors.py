"""Failures the proxy reports to its callers.

Each error knows the HTTP status and JSON body it is rendered as; the app
registers a single exception handler for ``ProxyError``.
"""


class ProxyError(Exception):
    status_code = 500

    def to_dict(self) -> dict:
        return {"error": str(self)}


class MissingCredential(ProxyError):
    """The vendor token is not configured. Expected during setup, not logged as an error."""

    status_code = 400

    def __init__(self, token_env: str):
        super().__init__(f"Missing {token_env}")
        self.token_env = token_env


class TransportFailure(ProxyError):
    """The upstream call failed before a response could be read."""

    status_code = 500

    def __init__(self, vendor: str, message: str):
        super().__init__(message)
        self.vendor = vendor
        self.message = message

    @property
    def code(self) -> str:
        return f"proxy_{self.vendor}_failed"

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class RateLimited(ProxyError):
    status_code = 429

    def __init__(self, retry_after: int):
        super().__init__("Too many requests, please try again later.")
        self.retry_after = retry_after

    def to_dict(self) -> dict:
        return {"error": "rate_limited", "message": str(self)}


class InvalidJSONBody(ProxyError):
    status_code = 400

    def __init__(self):
        super().__init__("invalid_json")


class PayloadTooLarge(ProxyError):
    status_code = 413

    def __init__(self):
        super().__init__("payload_too_large")
