"""
Error taxonomy for the Conflux client.

Every error raised by this package derives from ClientError. Errors are
chained with ``raise ... from exc`` as they cross layers so the original
cause stays inspectable through ``__cause__``.
"""

from __future__ import annotations

from typing import Any, Optional


class ClientError(RuntimeError):
    pass


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class TransportError(ClientError):
    """Connection, HTTP or protocol-level failure talking to the node."""


class RpcResponseError(TransportError):
    """JSON-RPC error object returned by the node."""

    def __init__(self, code: int, message: str, data: Any | None = None) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


class RetryExhaustedError(TransportError):
    """All retry attempts failed; ``__cause__`` holds the last error."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class RpcCallError(TransportError):
    """A facade call failed; names the method and arguments."""

    def __init__(self, method: str, args: tuple | list) -> None:
        super().__init__(f"rpc {method} with args {list(args)!r} failed")
        self.method = method
        self.call_args = list(args)


# ---------------------------------------------------------------------------
# Decoding and validation
# ---------------------------------------------------------------------------


class DecodeError(ClientError):
    """The node answered, but the result had an unexpected shape."""

    def __init__(self, message: str, payload: Any = None) -> None:
        super().__init__(f"{message}: {payload!r}")
        self.payload = payload


class ValidationError(ClientError, ValueError):
    pass


class NoDefaultAccountError(ValidationError):
    pass


class MissingSignerError(ValidationError):
    pass


# ---------------------------------------------------------------------------
# Higher-level operations
# ---------------------------------------------------------------------------


class DefaultResolutionError(ClientError):
    """Filling a transaction field from the node failed."""

    def __init__(self, field: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"failed to resolve default for field '{field}'")
        self.field = field


class RevertRateError(ClientError):
    pass


class DeploymentError(ClientError):
    def __init__(self, message: str, tx_hash: Optional[str] = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash


class TransactionRevertedError(DeploymentError):
    pass


class DeploymentTimeoutError(DeploymentError):
    def __init__(self, elapsed: float, tx_hash: Optional[str] = None) -> None:
        super().__init__(
            f"deploy contract timed out after {elapsed:.1f}s, txhash is {tx_hash}",
            tx_hash=tx_hash,
        )
        self.elapsed = elapsed


class DeploymentCancelledError(DeploymentError):
    pass
