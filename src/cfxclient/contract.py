"""
Contract handle - ABI-bound access to a deployed contract.

Uses eth-abi for argument encoding. Method selectors are the first four
bytes of the Keccak-256 of the canonical signature.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Optional, Union

from eth_abi import decode, encode
from eth_utils import keccak

from .errors import DecodeError, ValidationError
from .types import CallRequest, ContractMethodCallOption, Log, UnsignedTransaction, hex_to_bytes

if TYPE_CHECKING:
    from .client import Client

AbiInput = Union[str, bytes, list]


def parse_abi(abi: AbiInput) -> list[dict[str, Any]]:
    """Accept an ABI as JSON text/bytes or an already-parsed list."""
    if isinstance(abi, (str, bytes)):
        try:
            abi = json.loads(abi)
        except ValueError as exc:
            raise ValidationError(f"unmarshal json to ABI error: {exc}") from exc
    if isinstance(abi, dict) and "abi" in abi:
        abi = abi["abi"]
    if not isinstance(abi, list):
        raise ValidationError("ABI must be a JSON array")
    return abi


def _abi_type(param: dict[str, Any]) -> str:
    kind = param["type"]
    if kind.startswith("tuple"):
        inner = ",".join(_abi_type(c) for c in param.get("components", []))
        return f"({inner}){kind[len('tuple'):]}"
    return kind


def _find_function(abi: list[dict[str, Any]], name: str) -> dict[str, Any]:
    for entry in abi:
        if entry.get("type") == "function" and entry.get("name") == name:
            return entry
    raise ValidationError(f"Function {name} not found in ABI")


def encode_function_call(abi: list[dict[str, Any]], name: str, args: list) -> bytes:
    func = _find_function(abi, name)
    input_types = [_abi_type(inp) for inp in func.get("inputs", [])]
    selector = keccak(text=f"{name}({','.join(input_types)})")[:4]
    return selector + (encode(input_types, args) if input_types else b"")


def decode_function_result(abi: list[dict[str, Any]], name: str, data: str) -> Any:
    func = _find_function(abi, name)
    output_types = [_abi_type(out) for out in func.get("outputs", [])]
    if not output_types:
        return None
    try:
        decoded = decode(output_types, hex_to_bytes(data))
    except Exception as exc:  # eth-abi raises several unrelated types
        raise DecodeError(f"cannot decode output of {name}", data) from exc
    if len(decoded) == 1:
        return decoded[0]
    return decoded


def encode_constructor(abi: list[dict[str, Any]], args: list) -> bytes:
    """ABI-encode constructor arguments, to be appended to the bytecode."""
    if not args:
        return b""
    constructor = next((e for e in abi if e.get("type") == "constructor"), None)
    if constructor is None:
        raise ValidationError("Constructor not found in ABI, but constructor args were provided.")
    input_types = [_abi_type(inp) for inp in constructor.get("inputs", [])]
    try:
        return encode(input_types, args)
    except Exception as exc:
        raise ValidationError(f"encode constructor with args {args!r} error: {exc}") from exc


def _is_hashed_topic(kind: str) -> bool:
    # Indexed dynamic values are stored as the keccak of their encoding.
    return kind in ("string", "bytes") or kind.endswith("]") or kind.startswith("(")


def decode_event_log(abi: list[dict[str, Any]], name: str, log: Log) -> dict[str, Any]:
    """
    Decode ``log`` as an emission of event ``name``.

    Indexed inputs come from ``topics[1:]`` and the rest from ``data``.
    Indexed strings, bytes, arrays and tuples are only recoverable as their
    32-byte hash, which is returned as is.

    Raises:
        ValidationError: no such event in the ABI
        DecodeError: the log was not emitted by this event or is malformed
    """
    event = next((e for e in abi if e.get("type") == "event" and e.get("name") == name), None)
    if event is None:
        raise ValidationError(f"Event {name} not found in ABI")
    inputs = event.get("inputs", [])
    types = [_abi_type(inp) for inp in inputs]

    topics = list(log.topics)
    if not event.get("anonymous"):
        topic0 = "0x" + keccak(text=f"{name}({','.join(types)})").hex()
        if not topics or topics[0].lower() != topic0:
            raise DecodeError(f"log is not a {name} event", topics[0] if topics else None)
        topics = topics[1:]

    indexed = [(inp, kind) for inp, kind in zip(inputs, types) if inp.get("indexed")]
    plain = [(inp, kind) for inp, kind in zip(inputs, types) if not inp.get("indexed")]
    if len(topics) != len(indexed):
        raise DecodeError(f"{name} expects {len(indexed)} indexed topics, log has {len(topics)}", log.topics)

    values: dict[str, Any] = {}
    try:
        for (inp, kind), topic in zip(indexed, topics):
            raw = hex_to_bytes(topic)
            values[inp.get("name", "")] = raw if _is_hashed_topic(kind) else decode([kind], raw)[0]
        decoded = decode([kind for _, kind in plain], hex_to_bytes(log.data))
    except Exception as exc:  # eth-abi raises several unrelated types
        raise DecodeError(f"cannot decode {name} event", log.data) from exc
    for (inp, _), value in zip(plain, decoded):
        values[inp.get("name", "")] = value
    return values


class Contract:
    def __init__(self, abi: AbiInput, client: "Client", address: Optional[str]) -> None:
        self.abi = parse_abi(abi)
        self.client = client
        self.address = address

    def __repr__(self) -> str:
        return f"Contract(address={self.address!r})"

    def get_data(self, method: str, *args: Any) -> bytes:
        """Calldata for ``method(*args)``."""
        return encode_function_call(self.abi, method, list(args))

    def call(self, method: str, *args: Any, option: Optional[ContractMethodCallOption] = None) -> Any:
        """Execute a read-only call and decode its outputs."""
        request = CallRequest.from_call_option(option, to=self.address, data=self.get_data(method, *args))
        result = self.client.call(request, option.epoch if option else None)
        return decode_function_result(self.abi, method, result)

    def send_transaction(self, method: str, *args: Any, option: Optional[UnsignedTransaction] = None) -> str:
        """Sign and send a transaction invoking ``method``; returns its hash."""
        tx = option.copy() if option else UnsignedTransaction()
        tx.to = self.address
        tx.data = self.get_data(method, *args)
        return self.client.send_transaction(tx)

    def decode_event(self, name: str, log: Log) -> dict[str, Any]:
        """Decode an event log emitted by this contract into a name -> value dict."""
        return decode_event_log(self.abi, name, log)
