"""
Conflux JSON-RPC client.

Typed wrappers over a Transport: one method per remote procedure, hex
quantities decoded to int, structured results decoded to dataclasses.
By-hash lookups return None when the node reports the object as absent
and raise on transport or decode failure.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence, Union

from .accounts import AccountManager, encode_with_signature
from .config import ClientConfig
from .contract import AbiInput, Contract
from .defaults import apply_defaults
from .deploy import ContractDeployment, ContractDeployResult
from .errors import ClientError, MissingSignerError, RpcCallError, TransportError
from .risk import batch_revert_rates, fallback_risk, revert_rate
from .rpc import BatchElem, Transport, dial
from .types import (
    Block,
    BlockSummary,
    CallRequest,
    ContractDeployOption,
    Epoch,
    Estimate,
    Log,
    LogFilter,
    Transaction,
    TransactionReceipt,
    UnsignedTransaction,
    bytes_to_hex,
    decode_result,
    hex_to_int,
)

log = logging.getLogger(__name__)


def _as_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    return value


def _as_hash_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        raise TypeError("expected a list of hashes")
    return [_as_str(item) for item in value]


def _as_log_list(value: Any) -> list[Log]:
    if not isinstance(value, list):
        raise TypeError("expected a list of logs")
    return [Log.from_rpc(item) for item in value]


def _epoch_args(epoch: Optional[Epoch]) -> list[Any]:
    # An omitted epoch must not be sent as null: the node treats the two differently.
    return [] if epoch is None else [epoch.to_rpc()]


class Client:
    """
    Client for a Conflux full node.

    Args:
        transport: Transport used for every request
        account_manager: Signing collaborator, needed for send_transaction
        config: Policy values (chain id, deployment timeout and poll interval)
    """

    def __init__(
        self,
        transport: Transport,
        account_manager: Optional[AccountManager] = None,
        config: Optional[ClientConfig] = None,
    ) -> None:
        self.transport = transport
        self.account_manager = account_manager
        self.config = config or ClientConfig()

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        account_manager: Optional[AccountManager] = None,
    ) -> "Client":
        transport = dial(
            config.node_url,
            retry_count=config.retry_count,
            retry_interval=config.retry_interval,
            timeout=config.request_timeout,
        )
        return cls(transport, account_manager=account_manager, config=config)

    @classmethod
    def from_url(
        cls,
        node_url: str,
        retry_count: int = 0,
        retry_interval: Optional[float] = None,
        account_manager: Optional[AccountManager] = None,
    ) -> "Client":
        config = ClientConfig(node_url=node_url, retry_count=retry_count, retry_interval=retry_interval)
        return cls.from_config(config, account_manager=account_manager)

    @classmethod
    def with_transport(cls, transport: Transport, config: Optional[ClientConfig] = None) -> "Client":
        """Client over an existing transport (shared connection, test double)."""
        return cls(transport, config=config)

    @property
    def node_url(self) -> str:
        return self.config.node_url

    def set_account_manager(self, account_manager: AccountManager) -> None:
        self.account_manager = account_manager

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------- raw access ----------

    def call_rpc(self, method: str, *args: Any) -> Any:
        """Perform a raw call; transport errors are wrapped with method and args."""
        try:
            return self.transport.call(method, *args)
        except TransportError as exc:
            raise RpcCallError(method, args) from exc

    def batch_call_rpc(self, elems: list[BatchElem]) -> None:
        """Perform a raw batch; per-element errors are left on the elements."""
        try:
            self.transport.batch_call(elems)
        except TransportError as exc:
            methods = ", ".join(elem.method for elem in elems)
            raise ClientError(f"batch call [{methods}] failed") from exc

    def debug(self, method: str, *args: Any) -> Any:
        """Passthrough for debug and diagnostic RPCs."""
        return self.call_rpc(method, *args)

    def _quantity(self, method: str, *args: Any) -> int:
        return decode_result(self.call_rpc(method, *args), hex_to_int, f"{method} result")

    # ---------- accounts and state ----------

    def get_gas_price(self) -> int:
        return self._quantity("cfx_gasPrice")

    def get_next_nonce(self, address: str, epoch: Optional[Epoch] = None) -> int:
        return self._quantity("cfx_getNextNonce", address, *_epoch_args(epoch))

    def get_epoch_number(self, epoch: Optional[Epoch] = None) -> int:
        return self._quantity("cfx_epochNumber", *_epoch_args(epoch))

    def get_balance(self, address: str, epoch: Optional[Epoch] = None) -> int:
        return self._quantity("cfx_getBalance", address, *_epoch_args(epoch))

    def get_code(self, address: str, epoch: Optional[Epoch] = None) -> str:
        raw = self.call_rpc("cfx_getCode", address, *_epoch_args(epoch))
        return decode_result(raw, _as_str, "cfx_getCode result")

    # ---------- blocks ----------

    def get_block_summary_by_hash(self, block_hash: str) -> Optional[BlockSummary]:
        raw = self.call_rpc("cfx_getBlockByHash", block_hash, False)
        if raw is None:
            return None
        return decode_result(raw, BlockSummary.from_rpc, "block summary")

    def get_block_by_hash(self, block_hash: str) -> Optional[Block]:
        raw = self.call_rpc("cfx_getBlockByHash", block_hash, True)
        if raw is None:
            return None
        return decode_result(raw, Block.from_rpc, "block")

    def get_block_summary_by_epoch(self, epoch: Epoch) -> BlockSummary:
        raw = self.call_rpc("cfx_getBlockByEpochNumber", epoch.to_rpc(), False)
        return decode_result(raw, BlockSummary.from_rpc, "block summary")

    def get_block_by_epoch(self, epoch: Epoch) -> Block:
        raw = self.call_rpc("cfx_getBlockByEpochNumber", epoch.to_rpc(), True)
        return decode_result(raw, Block.from_rpc, "block")

    def get_best_block_hash(self) -> str:
        return decode_result(self.call_rpc("cfx_getBestBlockHash"), _as_str, "best block hash")

    def get_blocks_by_epoch(self, epoch: Epoch) -> list[str]:
        raw = self.call_rpc("cfx_getBlocksByEpoch", epoch.to_rpc())
        return decode_result(raw, _as_hash_list, "block hashes")

    def get_block_confirm_risk_by_hash(self, block_hash: str) -> int:
        """
        Confirmation risk of the pivot block of the epoch containing ``block_hash``.

        When the node has no risk data, a block already on the pivot chain
        counts as safe (0) and anything else as MAX_UINT256.
        """
        raw = self.call_rpc("cfx_getConfirmationRiskByHash", block_hash)
        if raw is not None:
            return decode_result(raw, hex_to_int, "confirmation risk")
        return fallback_risk(self.get_block_summary_by_hash(block_hash))

    def get_block_revert_rate_by_hash(self, block_hash: str) -> float:
        return revert_rate(self.get_block_confirm_risk_by_hash(block_hash))

    def batch_get_block_revert_rates(self, block_hashes: Sequence[Optional[str]]) -> list[float]:
        return batch_revert_rates(self.transport, block_hashes)

    # ---------- transactions ----------

    def get_transaction_by_hash(self, tx_hash: str) -> Optional[Transaction]:
        raw = self.call_rpc("cfx_getTransactionByHash", tx_hash)
        if raw is None:
            return None
        return decode_result(raw, Transaction.from_rpc, "transaction")

    def get_transaction_receipt(self, tx_hash: str) -> Optional[TransactionReceipt]:
        raw = self.call_rpc("cfx_getTransactionReceipt", tx_hash)
        if raw is None:
            return None
        return decode_result(raw, TransactionReceipt.from_rpc, "transaction receipt")

    def batch_get_transactions_by_hashes(self, tx_hashes: Sequence[str]) -> list[Optional[Transaction]]:
        elems = [BatchElem("cfx_getTransactionByHash", [h]) for h in tx_hashes]
        try:
            self.transport.batch_call(elems)
        except TransportError as exc:
            raise ClientError(f"batch call cfx_getTransactionByHash for {list(tx_hashes)} failed") from exc

        results: list[Optional[Transaction]] = []
        for elem in elems:
            if elem.error is not None:
                raise ClientError(f"cfx_getTransactionByHash {elem.args[0]} failed") from elem.error
            if elem.result is None:
                results.append(None)
            else:
                results.append(decode_result(elem.result, Transaction.from_rpc, "transaction"))
        return results

    def send_raw_transaction(self, raw: bytes) -> str:
        result = self.call_rpc("cfx_sendRawTransaction", bytes_to_hex(raw))
        return decode_result(result, _as_str, "transaction hash")

    def call(self, request: CallRequest, epoch: Optional[Epoch] = None) -> str:
        """Execute ``request`` in the node's VM without mining it; returns hex output."""
        raw = self.call_rpc("cfx_call", request.to_rpc(), *_epoch_args(epoch))
        return decode_result(raw, _as_str, "cfx_call result")

    def estimate_gas_and_collateral(self, request: CallRequest) -> Estimate:
        raw = self.call_rpc("cfx_estimateGasAndCollateral", request.to_rpc())
        return decode_result(raw, Estimate.from_rpc, "estimate")

    def get_logs(self, log_filter: LogFilter) -> list[Log]:
        raw = self.call_rpc("cfx_getLogs", log_filter.to_rpc())
        return decode_result(raw, _as_log_list, "logs")

    def apply_unsigned_transaction_default(self, tx: UnsignedTransaction) -> None:
        apply_defaults(self, tx)

    def create_unsigned_transaction(
        self,
        from_: str,
        to: Optional[str],
        value: int = 0,
        data: bytes = b"",
    ) -> UnsignedTransaction:
        tx = UnsignedTransaction(from_=from_, to=to, value=value, data=data)
        self.apply_unsigned_transaction_default(tx)
        return tx

    def send_transaction(self, tx: UnsignedTransaction) -> str:
        """Fill defaults, sign with the account manager and send; returns the hash."""
        if self.account_manager is None:
            raise MissingSignerError(
                "sign transaction needs an account manager, call set_account_manager first"
            )
        self.apply_unsigned_transaction_default(tx)

        try:
            raw = self.account_manager.sign_transaction(tx)
        except ClientError:
            raise
        except Exception as exc:
            raise ClientError(f"sign transaction {tx!r} error") from exc

        try:
            tx_hash = self.send_raw_transaction(raw)
        except ClientError as exc:
            raise ClientError(f"send raw transaction {bytes_to_hex(raw)} error") from exc
        log.info("sent transaction %s from %s nonce %s", tx_hash, tx.from_, tx.nonce)
        return tx_hash

    def sign_encoded_transaction_and_send(
        self,
        encoded: bytes,
        v: int,
        r: Union[int, bytes],
        s: Union[int, bytes],
    ) -> Optional[Transaction]:
        """
        Send an RLP-encoded unsigned transaction signed elsewhere.

        Returns the transaction as the node reports it right after
        submission, or None if the node does not know it yet.
        """
        raw = encode_with_signature(encoded, v, r, s)
        try:
            tx_hash = self.send_raw_transaction(raw)
        except ClientError as exc:
            raise ClientError(f"send raw transaction {bytes_to_hex(raw)} error") from exc
        try:
            return self.get_transaction_by_hash(tx_hash)
        except ClientError as exc:
            raise ClientError(f"get transaction by hash {tx_hash} error") from exc

    # ---------- contracts ----------

    def get_contract(self, abi: AbiInput, deployed_at: Optional[str]) -> Contract:
        return Contract(abi, self, deployed_at)

    def deploy_contract(
        self,
        option: Optional[ContractDeployOption],
        abi: AbiInput,
        bytecode: bytes,
        *constructor_args: Any,
    ) -> ContractDeployResult:
        """Start deploying a contract; returns a ContractDeployResult immediately."""
        return ContractDeployment(self, option, abi, bytecode, constructor_args).start()
