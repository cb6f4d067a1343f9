"""
ERPNext resource gateway.

Thin async wrapper over the Frappe REST API (`/api/resource/<Doctype>[/<name>]`
and `/api/method/<dotted.path>`). Every public call returns a GatewayResult
instead of raising, so callers decide between surfacing the failure and
falling back to the local store.
"""

import asyncio
import json
from typing import Any, List, Optional, Sequence
from urllib.parse import quote

import httpx

from erp.errors import (
    ConfigurationError,
    DecodeError,
    ERPError,
    NotFoundError,
    RemoteError,
    TransportError,
    ValidationError,
    extract_remote_message,
)
from logging_config import get_logger

logger = get_logger("erp.gateway")


class GatewayResult:
    """`{ok: true, data}` or `{ok: false, error, statusCode}`."""

    __slots__ = ("ok", "data", "error")

    def __init__(self, ok: bool, data: Any = None, error: Optional[ERPError] = None):
        self.ok = ok
        self.data = data
        self.error = error

    @classmethod
    def success(cls, data: Any = None) -> "GatewayResult":
        return cls(True, data=data)

    @classmethod
    def failure(cls, error: ERPError) -> "GatewayResult":
        return cls(False, error=error)

    @property
    def status_code(self) -> Optional[int]:
        if isinstance(self.error, RemoteError):
            return self.error.status_code
        return None

    @property
    def not_found(self) -> bool:
        return isinstance(self.error, NotFoundError)

    def unwrap(self) -> Any:
        if not self.ok:
            raise self.error
        return self.data

    def to_dict(self) -> dict:
        if self.ok:
            return {"ok": True, "data": self.data}
        return {"ok": False, "error": self.error.message, "statusCode": self.status_code}

    def __repr__(self) -> str:
        if self.ok:
            return "GatewayResult(ok=True)"
        return f"GatewayResult(ok=False, error={self.error!r})"


def build_list_params(
    filters: Optional[Sequence[Sequence[Any]]] = None,
    fields: Optional[Sequence[str]] = None,
    order_by: Optional[str] = None,
    limit: Optional[int] = None,
) -> dict:
    """Query parameters for a resource listing. Filters are ANDed by ERPNext."""
    params = {}
    if filters:
        for f in filters:
            if not isinstance(f, (list, tuple)) or len(f) not in (3, 4):
                raise ValidationError(f"Filter must be [field, operator, value]: {f!r}")
        params["filters"] = json.dumps([list(f) for f in filters])
    if fields:
        params["fields"] = json.dumps(list(fields))
    if order_by:
        params["order_by"] = order_by
    if limit is not None:
        params["limit_page_length"] = str(limit)
    return params


class ERPNextGateway:
    """
    Usage:
        gateway = ERPNextGateway.from_config(config)
        result = await gateway.list("Task", filters=[["customer", "=", "ACME"]], fields=["name"])
        if result.ok:
            ...
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        api_secret: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        # Static token pair, valid until rotated in ERPNext
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"token {api_key}:{api_secret}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            transport=transport,
        )

    @classmethod
    def from_config(cls, cfg, transport: Optional[httpx.AsyncBaseTransport] = None) -> Optional["ERPNextGateway"]:
        """
        Returns None when ERPNext is not configured at all.
        Raises ConfigurationError for a partial configuration.
        """
        settings = cfg.erp_settings()
        missing = [key for key, value in settings.items() if not value]
        if len(missing) == len(settings):
            logger.warning("ERPNext not configured, running with local store only")
            return None
        if missing:
            raise ConfigurationError(f"ERPNext is partially configured, missing: {', '.join(missing)}")
        return cls(
            settings["ERPNEXT_URL"],
            settings["ERPNEXT_API_KEY"],
            settings["ERPNEXT_API_SECRET"],
            transport=transport,
        )

    async def aclose(self):
        await self._client.aclose()

    @staticmethod
    def resource_path(doctype: str, name: Optional[str] = None) -> str:
        path = f"/api/resource/{quote(doctype)}"
        if name is not None:
            path += f"/{quote(str(name), safe='')}"
        return path

    # --- Transport ---

    async def _send(self, method: str, path: str, params: Optional[dict] = None, json_body: Optional[dict] = None) -> httpx.Response:
        try:
            response = await self._client.request(method, path, params=params, json=json_body)
        except httpx.RequestError as e:
            logger.warning(
                f"ERPNext unreachable: {method} {path}",
                extra={"data": {"error": repr(e)}}
            )
            raise TransportError(f"ERPNext unreachable: {e.__class__.__name__}") from e

        if response.is_success:
            return response

        raw_body = response.text
        message = extract_remote_message(raw_body, default=f"ERPNext error ({response.status_code})")
        logger.warning(
            f"ERPNext answered {response.status_code}: {method} {path}",
            extra={"data": {"status": response.status_code, "body": raw_body[:200]}}
        )
        if response.status_code == 404:
            raise NotFoundError(message, raw_body)
        raise RemoteError(message, response.status_code, raw_body)

    @staticmethod
    def _decode(response: httpx.Response, expected: type, key: str = "data") -> Any:
        try:
            body = response.json()
        except ValueError as e:
            raise DecodeError(f"ERPNext returned a non-JSON body: {response.text[:200]}") from e
        if not isinstance(body, dict) or not isinstance(body.get(key), expected):
            raise DecodeError(f"ERPNext body has no '{key}' {expected.__name__}")
        return body[key]

    # --- Resource CRUD ---

    async def list(
        self,
        doctype: str,
        filters: Optional[Sequence[Sequence[Any]]] = None,
        fields: Optional[Sequence[str]] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> GatewayResult:
        try:
            params = build_list_params(filters, fields, order_by, limit)
            response = await self._send("GET", self.resource_path(doctype), params=params)
            rows = self._decode(response, list)
        except ERPError as e:
            return GatewayResult.failure(e)
        return GatewayResult.success(rows)

    async def get(self, doctype: str, name: str) -> GatewayResult:
        try:
            response = await self._send("GET", self.resource_path(doctype, name))
            doc = self._decode(response, dict)
        except ERPError as e:
            return GatewayResult.failure(e)
        return GatewayResult.success(doc)

    async def create(self, doctype: str, fields: dict) -> GatewayResult:
        try:
            response = await self._send("POST", self.resource_path(doctype), json_body=fields)
            doc = self._decode(response, dict)
            if not doc.get("name"):
                raise DecodeError(f"ERPNext created a {doctype} without returning its name")
        except ERPError as e:
            return GatewayResult.failure(e)
        logger.info(f"{doctype} created in ERPNext", extra={"data": {"name": doc["name"]}})
        return GatewayResult.success(doc)

    async def update(self, doctype: str, name: str, fields: dict) -> GatewayResult:
        try:
            response = await self._send("PUT", self.resource_path(doctype, name), json_body=fields)
            doc = self._decode(response, dict)
        except ERPError as e:
            return GatewayResult.failure(e)
        return GatewayResult.success(doc)

    async def delete(self, doctype: str, name: str) -> GatewayResult:
        try:
            await self._send("DELETE", self.resource_path(doctype, name))
        except ERPError as e:
            return GatewayResult.failure(e)
        logger.info(f"{doctype} deleted in ERPNext", extra={"data": {"name": name}})
        return GatewayResult.success(None)

    # --- Whitelisted methods ---

    async def call_method(self, method: str, params: Optional[dict] = None) -> GatewayResult:
        """GET /api/method/<method>; data is the `message` value."""
        try:
            response = await self._send("GET", f"/api/method/{method}", params=params)
            try:
                body = response.json()
            except ValueError as e:
                raise DecodeError(f"ERPNext method {method} returned a non-JSON body") from e
            if not isinstance(body, dict) or "message" not in body:
                raise DecodeError(f"ERPNext method {method} returned no message")
        except ERPError as e:
            return GatewayResult.failure(e)
        return GatewayResult.success(body["message"])

    async def download(self, method: str, params: Optional[dict] = None) -> GatewayResult:
        """Raw bytes from a download method (print formats)."""
        try:
            response = await self._send("GET", f"/api/method/{method}", params=params)
        except ERPError as e:
            return GatewayResult.failure(e)
        return GatewayResult.success(response.content)


async def list_many(gateway: ERPNextGateway, requests: List[dict]) -> List[GatewayResult]:
    """Issue independent listings concurrently; results come back in request order."""
    return list(await asyncio.gather(*(gateway.list(**r) for r in requests)))
