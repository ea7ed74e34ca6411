"""Shared fixtures: an in-memory transport that answers from a handler table."""

from __future__ import annotations

from typing import Any, Callable, Union

import pytest

from cfxclient.client import Client
from cfxclient.config import ClientConfig
from cfxclient.errors import TransportError
from cfxclient.rpc import BatchElem

Handler = Union[Callable[..., Any], Any]

ADDR_A = "0x1a2b3c4d5e6f708192a3b4c5d6e7f8091a2b3c4d"
ADDR_B = "0x8a2b3c4d5e6f708192a3b4c5d6e7f8091a2b3c4e"
HASH_1 = "0x" + "11" * 32
HASH_2 = "0x" + "22" * 32
HASH_3 = "0x" + "33" * 32


class FakeTransport:
    """
    Transport double.

    ``handlers`` maps a method name to either a plain value or a callable
    taking the call arguments. Raising handlers behave like a failing node.
    Every call is recorded in ``calls`` and every batch in ``batches``.
    """

    def __init__(self, handlers: dict[str, Handler] | None = None) -> None:
        self.handlers: dict[str, Handler] = dict(handlers or {})
        self.calls: list[tuple[str, tuple]] = []
        self.batches: list[list[BatchElem]] = []
        self.closed = False

    def _answer(self, method: str, args: tuple) -> Any:
        if method not in self.handlers:
            raise TransportError(f"unexpected call {method}")
        handler = self.handlers[method]
        return handler(*args) if callable(handler) else handler

    def call(self, method: str, *args: Any) -> Any:
        self.calls.append((method, args))
        return self._answer(method, args)

    def batch_call(self, elems: list[BatchElem]) -> None:
        self.batches.append(list(elems))
        for elem in elems:
            try:
                elem.result = self._answer(elem.method, tuple(elem.args))
            except TransportError as exc:
                elem.error = exc

    def close(self) -> None:
        self.closed = True

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]


def block_summary(block_hash: str, epoch_number: str | None = "0x10") -> dict[str, Any]:
    return {
        "hash": block_hash,
        "parentHash": "0x" + "00" * 32,
        "height": "0x10",
        "miner": ADDR_A,
        "epochNumber": epoch_number,
        "timestamp": "0x5f5e100",
        "transactions": [],
    }


def transaction(tx_hash: str = HASH_1, status: str | None = "0x0", created: str | None = None) -> dict[str, Any]:
    return {
        "hash": tx_hash,
        "nonce": "0x1",
        "from": ADDR_A,
        "to": None,
        "value": "0x0",
        "gasPrice": "0x1",
        "gas": "0x5208",
        "data": "0x",
        "status": status,
        "contractCreated": created,
    }


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def client(transport: FakeTransport) -> Client:
    return Client(transport, config=ClientConfig(chain_id=1029))
