"""
Account management and transaction signing.

Keys are private-key hex strings, read from PRIVATE_KEY (or the
comma-separated PRIVATE_KEYS) in the environment or ~/.cfxclient/.env.
Conflux user addresses are the Ethereum-style address of the key with the
leading nibble forced to 0x1.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Optional, Protocol, Union

import rlp
from dotenv import load_dotenv
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import ValidationError as KeyValidationError, big_endian_to_int, keccak, to_checksum_address

from .config import CFXCLIENT_ENV
from .errors import ValidationError
from .types import UnsignedTransaction, hex_to_bytes, to_address


class AccountManager(Protocol):
    def get_default(self) -> Optional[str]:
        ...

    def sign_transaction(self, tx: UnsignedTransaction) -> bytes:
        ...


def conflux_address(eth_address: str) -> str:
    """Map an Ethereum-style address to a Conflux user address."""
    return to_checksum_address("0x1" + eth_address.lower()[3:])


def _unsigned_fields(tx: UnsignedTransaction) -> list:
    required = {
        "nonce": tx.nonce,
        "gas_price": tx.gas_price,
        "gas": tx.gas,
        "value": tx.value,
        "storage_limit": tx.storage_limit,
        "epoch_height": tx.epoch_height,
        "chain_id": tx.chain_id,
    }
    missing = [name for name, value in required.items() if value is None]
    if missing:
        raise ValidationError(f"cannot sign transaction, unset fields: {', '.join(missing)}")

    return [
        tx.nonce,
        tx.gas_price,
        tx.gas,
        hex_to_bytes(tx.to) if tx.to else b"",
        tx.value,
        tx.storage_limit,
        tx.epoch_height,
        tx.chain_id,
        tx.data or b"",
    ]


def encode_with_signature(encoded: bytes, v: int, r: Union[int, bytes], s: Union[int, bytes]) -> bytes:
    """
    Attach an external signature to an RLP-encoded unsigned transaction.

    ``v`` is the recovery id (0 or 1, or the legacy 27 or 28); ``r`` and
    ``s`` may be ints or big-endian bytes.
    """
    try:
        unsigned = rlp.decode(encoded)
    except rlp.DecodingError as exc:
        raise ValidationError("malformed encoded transaction") from exc
    if not isinstance(unsigned, list) or len(unsigned) != 9:
        raise ValidationError("encoded transaction must be a list of 9 fields")
    if v in (27, 28):
        v -= 27
    if v not in (0, 1):
        raise ValidationError(f"signature v must be 0 or 1, got {v}")
    if isinstance(r, bytes):
        r = big_endian_to_int(r)
    if isinstance(s, bytes):
        s = big_endian_to_int(s)
    return rlp.encode([unsigned, v, r, s])


class LocalAccountManager:
    """In-memory accounts backed by eth-account LocalAccount keys."""

    def __init__(self, private_keys: Iterable[str] = ()) -> None:
        self._accounts: dict[str, LocalAccount] = {}
        for key in private_keys:
            self.add(key)

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "LocalAccountManager":
        env_path = env_path or CFXCLIENT_ENV
        if env_path.exists():
            load_dotenv(env_path, override=False)

        keys = [k.strip() for k in os.environ.get("PRIVATE_KEYS", "").split(",") if k.strip()]
        single = os.environ.get("PRIVATE_KEY")
        if single:
            keys.insert(0, single)
        return cls(keys)

    def add(self, private_key: str) -> str:
        """Register a key and return its Conflux address."""
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key
        try:
            account = Account.from_key(private_key)
        except (ValueError, KeyValidationError) as exc:
            raise ValidationError("malformed private key") from exc
        address = conflux_address(account.address)
        self._accounts[address] = account
        return address

    def accounts(self) -> list[str]:
        return list(self._accounts)

    def get_default(self) -> Optional[str]:
        return next(iter(self._accounts), None)

    def sign_transaction(self, tx: UnsignedTransaction) -> bytes:
        """RLP-encode and sign ``tx`` with the key of ``tx.from_``."""
        if tx.from_ is None:
            raise ValidationError("cannot sign transaction without a sender")
        account = self._accounts.get(to_address(tx.from_))
        if account is None:
            raise ValidationError(f"no key for account {tx.from_}")

        unsigned = _unsigned_fields(tx)
        digest = keccak(rlp.encode(unsigned))
        signed = account.unsafe_sign_hash(digest)
        return rlp.encode([unsigned, signed.v - 27, signed.r, signed.s])
