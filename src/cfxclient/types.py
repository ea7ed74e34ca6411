"""
Data model for the Conflux client.

Wire values follow the node's JSON-RPC conventions: quantities are
0x-prefixed hex strings, field names are camelCase. Records are decoded
from the raw JSON result with ``from_rpc`` and requests are encoded with
``to_rpc``.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar, Union

from eth_utils import is_hex_address, to_checksum_address

from .errors import DecodeError, ValidationError

MAX_UINT256 = 2**256 - 1

# The node often reports 0 as the mean gas price, but transactions need at least 1.
MIN_GAS_PRICE = 1

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------


def hex_to_int(value: Any) -> int:
    """Decode a 0x-prefixed hex quantity into an int."""
    if not isinstance(value, str) or not value.startswith("0x"):
        raise ValueError(f"not a hex quantity: {value!r}")
    return int(value, 16)


def int_to_hex(value: int) -> str:
    if value < 0:
        raise ValidationError(f"quantity must be non-negative: {value}")
    return hex(value)


def bytes_to_hex(data: bytes) -> str:
    return "0x" + bytes(data).hex()


def hex_to_bytes(value: str) -> bytes:
    try:
        return bytes.fromhex(value[2:] if value.startswith("0x") else value)
    except ValueError as exc:
        raise ValidationError(f"malformed hex data: {value!r}") from exc


def to_address(value: str) -> str:
    """Normalise an address to its checksum-cased form."""
    if not isinstance(value, str) or not is_hex_address(value):
        raise ValidationError(f"malformed address: {value!r}")
    return to_checksum_address(value)


def _opt_int(payload: dict[str, Any], key: str) -> Optional[int]:
    value = payload.get(key)
    return None if value is None else hex_to_int(value)


def _opt_address(payload: dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    return None if value is None else to_checksum_address(value)


def decode_result(raw: Any, decoder: Callable[[Any], T], what: str) -> T:
    """Decode a raw RPC result, turning shape errors into DecodeError."""
    try:
        return decoder(raw)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise DecodeError(f"cannot decode {what}", raw) from exc


# ---------------------------------------------------------------------------
# Epoch
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Epoch:
    tag: Optional[str] = None
    number: Optional[int] = None

    def __post_init__(self) -> None:
        if (self.tag is None) == (self.number is None):
            raise ValidationError("epoch needs exactly one of tag or number")
        if self.number is not None and self.number < 0:
            raise ValidationError(f"epoch number must be non-negative: {self.number}")

    @classmethod
    def at(cls, number: int) -> "Epoch":
        return cls(number=number)

    def to_rpc(self) -> str:
        if self.tag is not None:
            return self.tag
        return hex(self.number)

    def __str__(self) -> str:
        return self.to_rpc()


EPOCH_EARLIEST = Epoch(tag="earliest")
EPOCH_LATEST_CHECKPOINT = Epoch(tag="latest_checkpoint")
EPOCH_LATEST_MINED = Epoch(tag="latest_mined")
EPOCH_LATEST_STATE = Epoch(tag="latest_state")


# ---------------------------------------------------------------------------
# Transactions and requests
# ---------------------------------------------------------------------------


@dataclass
class UnsignedTransaction:
    from_: Optional[str] = None
    to: Optional[str] = None
    value: Optional[int] = None
    gas_price: Optional[int] = None
    gas: Optional[int] = None
    storage_limit: Optional[int] = None
    nonce: Optional[int] = None
    epoch_height: Optional[int] = None
    data: Optional[bytes] = None
    chain_id: Optional[int] = None

    def apply_default(self, chain_id: int = 0) -> None:
        """Fill the fields that need no node round-trip."""
        if self.value is None:
            self.value = 0
        if self.data is None:
            self.data = b""
        if self.chain_id is None:
            self.chain_id = chain_id

    def copy(self) -> "UnsignedTransaction":
        return dataclasses.replace(self)


@dataclass(frozen=True)
class ContractMethodCallOption:
    from_: Optional[str] = None
    nonce: Optional[int] = None
    gas_price: Optional[int] = None
    gas: Optional[int] = None
    value: Optional[int] = None
    storage_limit: Optional[int] = None
    chain_id: Optional[int] = None
    epoch: Optional[Epoch] = None


@dataclass(frozen=True)
class ContractDeployOption:
    from_: Optional[str] = None
    nonce: Optional[int] = None
    gas_price: Optional[int] = None
    gas: Optional[int] = None
    value: Optional[int] = None
    storage_limit: Optional[int] = None
    epoch_height: Optional[int] = None
    chain_id: Optional[int] = None
    # Seconds; None or 0 falls back to the client's configured default.
    timeout: Optional[float] = None
    poll_interval: Optional[float] = None

    def to_unsigned_transaction(self) -> UnsignedTransaction:
        return UnsignedTransaction(
            from_=self.from_,
            value=self.value,
            gas_price=self.gas_price,
            gas=self.gas,
            storage_limit=self.storage_limit,
            nonce=self.nonce,
            epoch_height=self.epoch_height,
            chain_id=self.chain_id,
        )


@dataclass(frozen=True)
class CallRequest:
    from_: Optional[str] = None
    to: Optional[str] = None
    gas_price: Optional[int] = None
    gas: Optional[int] = None
    value: Optional[int] = None
    data: Optional[str] = None
    nonce: Optional[int] = None
    storage_limit: Optional[int] = None

    @classmethod
    def from_unsigned_tx(cls, tx: UnsignedTransaction) -> "CallRequest":
        return cls(
            from_=tx.from_,
            to=tx.to,
            gas_price=tx.gas_price,
            gas=tx.gas,
            value=tx.value,
            data=bytes_to_hex(tx.data or b""),
            nonce=tx.nonce,
            storage_limit=tx.storage_limit,
        )

    @classmethod
    def from_call_option(
        cls,
        option: Optional[ContractMethodCallOption],
        to: Optional[str] = None,
        data: Optional[bytes] = None,
    ) -> "CallRequest":
        option = option or ContractMethodCallOption()
        return cls(
            from_=option.from_,
            to=to,
            gas_price=option.gas_price,
            gas=option.gas,
            value=option.value,
            data=None if data is None else bytes_to_hex(data),
            nonce=option.nonce,
            storage_limit=option.storage_limit,
        )

    def to_rpc(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.from_ is not None:
            out["from"] = self.from_
        if self.to is not None:
            out["to"] = self.to
        for key, value in (
            ("gasPrice", self.gas_price),
            ("gas", self.gas),
            ("value", self.value),
            ("nonce", self.nonce),
            ("storageLimit", self.storage_limit),
        ):
            if value is not None:
                out[key] = int_to_hex(value)
        if self.data is not None:
            out["data"] = self.data
        return out


# ---------------------------------------------------------------------------
# Chain records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Estimate:
    gas_used: int
    storage_collateralized: int

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "Estimate":
        return cls(
            gas_used=hex_to_int(payload["gasUsed"]),
            storage_collateralized=hex_to_int(payload["storageCollateralized"]),
        )


@dataclass(frozen=True)
class Transaction:
    hash: str
    nonce: int
    from_: str
    to: Optional[str]
    value: int
    gas_price: int
    gas: int
    data: str
    storage_limit: Optional[int] = None
    epoch_height: Optional[int] = None
    chain_id: Optional[int] = None
    block_hash: Optional[str] = None
    transaction_index: Optional[int] = None
    contract_created: Optional[str] = None
    # None until the transaction is executed; 0 success, 1 failure, 2 skipped.
    status: Optional[int] = None
    v: Optional[int] = None
    r: Optional[int] = None
    s: Optional[int] = None

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "Transaction":
        return cls(
            hash=payload["hash"],
            nonce=hex_to_int(payload["nonce"]),
            from_=to_checksum_address(payload["from"]),
            to=_opt_address(payload, "to"),
            value=hex_to_int(payload["value"]),
            gas_price=hex_to_int(payload["gasPrice"]),
            gas=hex_to_int(payload["gas"]),
            data=payload.get("data") or "0x",
            storage_limit=_opt_int(payload, "storageLimit"),
            epoch_height=_opt_int(payload, "epochHeight"),
            chain_id=_opt_int(payload, "chainId"),
            block_hash=payload.get("blockHash"),
            transaction_index=_opt_int(payload, "transactionIndex"),
            contract_created=_opt_address(payload, "contractCreated"),
            status=_opt_int(payload, "status"),
            v=_opt_int(payload, "v"),
            r=_opt_int(payload, "r"),
            s=_opt_int(payload, "s"),
        )


@dataclass(frozen=True)
class BlockSummary:
    hash: str
    parent_hash: str
    height: int
    miner: str
    # None when the block is not (yet) on the pivot chain.
    epoch_number: Optional[int]
    timestamp: int
    gas_limit: Optional[int] = None
    difficulty: Optional[int] = None
    size: Optional[int] = None
    referee_hashes: tuple[str, ...] = ()
    transactions: tuple[str, ...] = ()

    @staticmethod
    def _header(payload: dict[str, Any]) -> dict[str, Any]:
        return {
            "hash": payload["hash"],
            "parent_hash": payload["parentHash"],
            "height": hex_to_int(payload["height"]),
            "miner": payload["miner"],
            "epoch_number": _opt_int(payload, "epochNumber"),
            "timestamp": hex_to_int(payload["timestamp"]),
            "gas_limit": _opt_int(payload, "gasLimit"),
            "difficulty": _opt_int(payload, "difficulty"),
            "size": _opt_int(payload, "size"),
            "referee_hashes": tuple(payload.get("refereeHashes") or ()),
        }

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "BlockSummary":
        txs = payload.get("transactions") or ()
        if any(not isinstance(tx, str) for tx in txs):
            raise TypeError("block summary transactions must be hashes")
        return cls(**cls._header(payload), transactions=tuple(txs))


@dataclass(frozen=True)
class Block:
    hash: str
    parent_hash: str
    height: int
    miner: str
    epoch_number: Optional[int]
    timestamp: int
    gas_limit: Optional[int] = None
    difficulty: Optional[int] = None
    size: Optional[int] = None
    referee_hashes: tuple[str, ...] = ()
    transactions: tuple[Transaction, ...] = ()

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "Block":
        txs = tuple(Transaction.from_rpc(tx) for tx in payload.get("transactions") or ())
        return cls(**BlockSummary._header(payload), transactions=txs)


@dataclass(frozen=True)
class Log:
    address: str
    topics: tuple[str, ...]
    data: str
    block_hash: Optional[str] = None
    epoch_number: Optional[int] = None
    transaction_hash: Optional[str] = None
    transaction_index: Optional[int] = None
    log_index: Optional[int] = None
    transaction_log_index: Optional[int] = None

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "Log":
        return cls(
            address=to_checksum_address(payload["address"]),
            topics=tuple(payload.get("topics") or ()),
            data=payload.get("data") or "0x",
            block_hash=payload.get("blockHash"),
            epoch_number=_opt_int(payload, "epochNumber"),
            transaction_hash=payload.get("transactionHash"),
            transaction_index=_opt_int(payload, "transactionIndex"),
            log_index=_opt_int(payload, "logIndex"),
            transaction_log_index=_opt_int(payload, "transactionLogIndex"),
        )


@dataclass(frozen=True)
class TransactionReceipt:
    transaction_hash: str
    index: int
    block_hash: str
    epoch_number: Optional[int]
    from_: str
    to: Optional[str]
    gas_used: int
    outcome_status: int
    contract_created: Optional[str] = None
    state_root: Optional[str] = None
    logs_bloom: Optional[str] = None
    logs: tuple[Log, ...] = ()

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "TransactionReceipt":
        return cls(
            transaction_hash=payload["transactionHash"],
            index=hex_to_int(payload["index"]),
            block_hash=payload["blockHash"],
            epoch_number=_opt_int(payload, "epochNumber"),
            from_=to_checksum_address(payload["from"]),
            to=_opt_address(payload, "to"),
            gas_used=hex_to_int(payload["gasUsed"]),
            outcome_status=hex_to_int(payload["outcomeStatus"]),
            contract_created=_opt_address(payload, "contractCreated"),
            state_root=payload.get("stateRoot"),
            logs_bloom=payload.get("logsBloom"),
            logs=tuple(Log.from_rpc(item) for item in payload.get("logs") or ()),
        )


@dataclass(frozen=True)
class LogFilter:
    from_epoch: Optional[Epoch] = None
    to_epoch: Optional[Epoch] = None
    block_hashes: tuple[str, ...] = ()
    address: Union[str, tuple[str, ...], None] = None
    topics: tuple[Any, ...] = ()
    limit: Optional[int] = None

    def to_rpc(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.from_epoch is not None:
            out["fromEpoch"] = self.from_epoch.to_rpc()
        if self.to_epoch is not None:
            out["toEpoch"] = self.to_epoch.to_rpc()
        if self.block_hashes:
            out["blockHashes"] = list(self.block_hashes)
        if self.address is not None:
            out["address"] = self.address if isinstance(self.address, str) else list(self.address)
        if self.topics:
            out["topics"] = list(self.topics)
        if self.limit is not None:
            out["limit"] = int_to_hex(self.limit)
        return out


__all__ = [
    "MAX_UINT256",
    "MIN_GAS_PRICE",
    "Block",
    "BlockSummary",
    "CallRequest",
    "ContractDeployOption",
    "ContractMethodCallOption",
    "EPOCH_EARLIEST",
    "EPOCH_LATEST_CHECKPOINT",
    "EPOCH_LATEST_MINED",
    "EPOCH_LATEST_STATE",
    "Epoch",
    "Estimate",
    "Log",
    "LogFilter",
    "Transaction",
    "TransactionReceipt",
    "UnsignedTransaction",
    "bytes_to_hex",
    "decode_result",
    "hex_to_bytes",
    "hex_to_int",
    "int_to_hex",
    "to_address",
]
