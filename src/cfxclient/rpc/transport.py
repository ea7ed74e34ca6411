"""
JSON-RPC 2.0 transport over HTTP.

Uses one shared httpx client per transport. Requests and id allocation are
serialised with a lock, so a transport can be shared between threads.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

import httpx

from ..errors import RpcResponseError, TransportError

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass
class BatchElem:
    """One request of a batch; ``result`` or ``error`` is filled in place."""

    method: str
    args: Sequence[Any] = ()
    result: Any = None
    error: Optional[Exception] = None


class Transport(Protocol):
    def call(self, method: str, *args: Any) -> Any:
        ...

    def batch_call(self, elems: list[BatchElem]) -> None:
        ...

    def close(self) -> None:
        ...


def _error_from(obj: Any) -> RpcResponseError:
    if not isinstance(obj, dict):
        return RpcResponseError(-32603, f"malformed error object {obj!r}")
    return RpcResponseError(obj.get("code", -32000), obj.get("message", "unknown error"), obj.get("data"))


class HttpTransport:
    """Direct transport: one HTTP POST per call or per batch."""

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.url = url
        self._client: Optional[httpx.Client] = client or httpx.Client(timeout=timeout)
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def _post(self, payload: Any) -> Any:
        with self._lock:
            if self._client is None:
                raise TransportError(f"transport to {self.url} is closed")
            try:
                response = self._client.post(self.url, json=payload)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise TransportError(f"HTTP request to {self.url} failed: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"node returned non-JSON response: {response.text[:256]!r}") from exc

    def _next_id(self) -> int:
        with self._lock:
            return next(self._ids)

    def call(self, method: str, *args: Any) -> Any:
        payload = {"jsonrpc": "2.0", "id": self._next_id(), "method": method, "params": list(args)}
        log.debug("rpc -> %s %s", method, payload["params"])
        data = self._post(payload)
        if not isinstance(data, dict):
            raise TransportError(f"unexpected RPC response for {method}: {data!r}")
        if data.get("error") is not None:
            raise _error_from(data["error"])
        log.debug("rpc <- %s %r", method, data.get("result"))
        return data.get("result")

    def batch_call(self, elems: list[BatchElem]) -> None:
        if not elems:
            return
        by_id: dict[int, BatchElem] = {}
        payload = []
        for elem in elems:
            request_id = self._next_id()
            by_id[request_id] = elem
            payload.append(
                {"jsonrpc": "2.0", "id": request_id, "method": elem.method, "params": list(elem.args)}
            )
        log.debug("rpc batch -> %d requests", len(payload))

        data = self._post(payload)
        if not isinstance(data, list):
            # Some nodes answer a whole batch with a single error object.
            if isinstance(data, dict) and data.get("error") is not None:
                raise _error_from(data["error"])
            raise TransportError(f"unexpected batch response: {data!r}")

        for item in data:
            elem = by_id.pop(item.get("id"), None) if isinstance(item, dict) else None
            if elem is None:
                continue
            if item.get("error") is not None:
                elem.error = _error_from(item["error"])
            else:
                elem.result = item.get("result")

        for elem in by_id.values():
            elem.error = TransportError(f"no response for batch element {elem.method}")

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None
