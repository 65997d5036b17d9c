#  SPDX-License-Identifier: Apache-2.0
"""Exceptions used for the Tesla vehicle command proxy."""

import logging

_LOGGER = logging.getLogger(__name__)

_STATUS_MESSAGES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    408: "VEHICLE_UNAVAILABLE",
    412: "PRECONDITION_FAILED",
    421: "INCORRECT_REGION",
    429: "TOO_MANY_REQUESTS",
    500: "SERVER_ERROR",
    503: "SERVICE_UNAVAILABLE",
    504: "UPSTREAM_TIMEOUT",
    540: "DEVICE_UNEXPECTED_RESPONSE",
}


def status_message(code: int) -> str:
    """Return the symbolic name of an HTTP status code returned by the API."""
    if code in _STATUS_MESSAGES:
        return _STATUS_MESSAGES[code]
    if code > 299:
        return f"UNKNOWN_ERROR_{code}"
    return ""


class TeslaExceptionError(Exception):
    """Class of Tesla proxy exceptions."""

    def __init__(self, code=None, *args, **kwargs) -> None:
        """Initialize exceptions for the Tesla proxy.

        ``code`` is either an HTTP status code or a plain message.
        """
        self.message = ""
        self.code = code
        super().__init__(*args, **kwargs)
        if code is None:
            return
        if isinstance(code, str):
            self.message = code
        else:
            self.message = status_message(code)

    def __str__(self) -> str:
        """Return the message, falling back to the exception arguments."""
        return self.message or super().__str__()


class TeslaTransportError(TeslaExceptionError):
    """Request could not be completed or its answer could not be understood."""

    def __init__(self, code=None, detail: str | None = None) -> None:
        """Initialize with a status code or message and optional detail text."""
        super().__init__(code)
        self.detail = detail
        if detail:
            self.message = f"{self.message}: {detail}" if self.message else detail


class TeslaAuthorizationError(TeslaExceptionError):
    """OAuth authorization or token exchange failed."""


class TeslaConfigError(TeslaExceptionError):
    """Configuration is missing or invalid."""


class TeslaDeliveryAbortedError(TeslaExceptionError):
    """Delivery was cancelled or would run past its deadline."""
