"""Error taxonomy for everything that talks to ERPNext."""

import json
from typing import Optional


class ERPError(Exception):
    """Base class for ERP-facing failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(ERPError):
    """Required ERP settings are missing or only partially set."""


class ValidationError(ERPError):
    """Caller payload rejected before any remote call."""


class TransportError(ERPError):
    """The remote store could not be reached (refused, timed out, DNS...)."""


class DecodeError(ERPError):
    """The remote answered 2xx but the body is not the expected shape."""


class RemoteError(ERPError):
    """The remote store answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int, raw_body: str = ""):
        self.status_code = status_code
        self.raw_body = raw_body
        super().__init__(message)


class NotFoundError(RemoteError):
    def __init__(self, message: str, raw_body: str = ""):
        super().__init__(message, 404, raw_body)


def extract_remote_message(raw_body: str, default: Optional[str] = None) -> str:
    """
    Pull the human readable message out of an ERPNext error body.
    Frappe nests it as a JSON string list under `_server_messages`.
    """
    fallback = default or (raw_body[:200] if raw_body else "Unknown ERPNext error")
    try:
        body = json.loads(raw_body)
    except (TypeError, ValueError):
        return fallback
    if not isinstance(body, dict):
        return fallback

    server_messages = body.get("_server_messages")
    if server_messages:
        try:
            messages = json.loads(server_messages)
            if isinstance(messages, list) and messages:
                first = json.loads(messages[0])
                if isinstance(first, dict) and first.get("message"):
                    return str(first["message"])
        except (TypeError, ValueError):
            return str(server_messages)
    if body.get("message"):
        return str(body["message"])
    if body.get("exc_type"):
        return f"{body['exc_type']}: check the ERPNext configuration"
    return fallback
