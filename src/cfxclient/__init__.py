"""
cfxclient - Python client for Conflux full nodes.

Typed JSON-RPC queries, transaction default resolution, batched block
revert rates and asynchronous contract deployment.
"""
__all__ = [
    # Client
    "Client",
    "ClientConfig",
    # Transport
    "BatchElem",
    "HttpTransport",
    "RetryingTransport",
    "Transport",
    "dial",
    # Accounts
    "AccountManager",
    "LocalAccountManager",
    # Contracts and deployment
    "Contract",
    "ContractDeployResult",
    "DeployOutcome",
    "DeployState",
    # Types
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
    "MAX_UINT256",
    "MIN_GAS_PRICE",
    "Transaction",
    "TransactionReceipt",
    "UnsignedTransaction",
    # Errors
    "ClientError",
    "DecodeError",
    "DefaultResolutionError",
    "DeploymentCancelledError",
    "DeploymentError",
    "DeploymentTimeoutError",
    "MissingSignerError",
    "NoDefaultAccountError",
    "RetryExhaustedError",
    "RevertRateError",
    "RpcCallError",
    "RpcResponseError",
    "TransactionRevertedError",
    "TransportError",
    "ValidationError",
]

__version__ = "0.3.0"

from .accounts import AccountManager, LocalAccountManager
from .client import Client
from .config import ClientConfig
from .contract import Contract
from .deploy import ContractDeployResult, DeployOutcome, DeployState
from .errors import (
    ClientError,
    DecodeError,
    DefaultResolutionError,
    DeploymentCancelledError,
    DeploymentError,
    DeploymentTimeoutError,
    MissingSignerError,
    NoDefaultAccountError,
    RetryExhaustedError,
    RevertRateError,
    RpcCallError,
    RpcResponseError,
    TransactionRevertedError,
    TransportError,
    ValidationError,
)
from .rpc import BatchElem, HttpTransport, RetryingTransport, Transport, dial
from .types import (
    EPOCH_EARLIEST,
    EPOCH_LATEST_CHECKPOINT,
    EPOCH_LATEST_MINED,
    EPOCH_LATEST_STATE,
    MAX_UINT256,
    MIN_GAS_PRICE,
    Block,
    BlockSummary,
    CallRequest,
    ContractDeployOption,
    ContractMethodCallOption,
    Epoch,
    Estimate,
    Log,
    LogFilter,
    Transaction,
    TransactionReceipt,
    UnsignedTransaction,
)
