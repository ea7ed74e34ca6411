"""
Contract deployment workflow.

A deployment runs on its own daemon thread:

    SUBMITTING -> SENT -> POLLING -> CONFIRMED | REVERTED | TIMED_OUT | FAILED

The caller gets a ContractDeployResult straight away and waits on it. The
result is completed exactly once, from a ``finally`` block, whichever exit
path the worker takes.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence

from .contract import AbiInput, Contract, encode_constructor, parse_abi
from .errors import (
    ClientError,
    DeploymentCancelledError,
    DeploymentError,
    DeploymentTimeoutError,
    TransactionRevertedError,
)
from .types import ContractDeployOption

if TYPE_CHECKING:
    from .client import Client

log = logging.getLogger(__name__)


class DeployState(str, enum.Enum):
    SUBMITTING = "submitting"
    SENT = "sent"
    POLLING = "polling"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    TIMED_OUT = "timed_out"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (DeployState.CONFIRMED, DeployState.REVERTED, DeployState.TIMED_OUT, DeployState.FAILED)


@dataclass(frozen=True)
class DeployOutcome:
    state: DeployState
    transaction_hash: Optional[str] = None
    contract: Optional[Contract] = None
    error: Optional[BaseException] = None


class ContractDeployResult:
    """Write-once handle on a running deployment."""

    def __init__(self) -> None:
        self._future: "Future[DeployOutcome]" = Future()
        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self.state = DeployState.SUBMITTING
        self.transaction_hash: Optional[str] = None

    def done(self) -> bool:
        return self._future.done()

    def wait(self, timeout: Optional[float] = None) -> DeployOutcome:
        """Block until the deployment reaches a terminal state."""
        return self._future.result(timeout)

    def add_done_callback(self, fn: Callable[[DeployOutcome], Any]) -> None:
        self._future.add_done_callback(lambda fut: fn(fut.result()))

    def cancel(self) -> None:
        """Ask the worker to stop polling; the outcome becomes FAILED."""
        self._cancel.set()

    @property
    def error(self) -> Optional[BaseException]:
        return self.wait().error if self.done() else None

    @property
    def deployed_contract(self) -> Optional[Contract]:
        return self.wait().contract if self.done() else None

    def _deliver(self, outcome: DeployOutcome) -> bool:
        with self._lock:
            if self._future.done():
                return False
            self.state = outcome.state
            self._future.set_result(outcome)
            return True


class ContractDeployment:
    """
    Deploy ``bytecode`` (with ABI-encoded constructor args) and poll for the result.

    Args:
        client: Client used to send and poll
        option: Transaction fields, timeout and poll interval; unset values use
            the client's configured defaults
        abi: Contract ABI (JSON text or parsed list)
        bytecode: Contract creation bytecode
        constructor_args: Constructor arguments, appended ABI-encoded to the bytecode
        clock: Monotonic clock, replaceable in tests
    """

    def __init__(
        self,
        client: "Client",
        option: Optional[ContractDeployOption],
        abi: AbiInput,
        bytecode: bytes,
        constructor_args: Sequence[Any] = (),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.option = option or ContractDeployOption()
        self.abi = abi
        self.bytecode = bytes(bytecode)
        self.constructor_args = list(constructor_args)
        self.timeout = self.option.timeout or client.config.deploy_timeout
        self.poll_interval = self.option.poll_interval or client.config.deploy_poll_interval
        self.clock = clock
        self.result = ContractDeployResult()

    def start(self) -> ContractDeployResult:
        worker = threading.Thread(target=self._run, name="cfx-deploy", daemon=True)
        worker.start()
        return self.result

    def _transition(self, state: DeployState) -> None:
        log.info("deployment %s -> %s", self.result.state.value, state.value)
        self.result.state = state

    def _run(self) -> None:
        outcome: Optional[DeployOutcome] = None
        try:
            outcome = self._deploy()
        except Exception as exc:
            log.exception("deployment worker crashed")
            outcome = DeployOutcome(DeployState.FAILED, self.result.transaction_hash, error=exc)
        finally:
            if outcome is None:
                outcome = DeployOutcome(
                    DeployState.FAILED,
                    self.result.transaction_hash,
                    error=DeploymentError("deployment aborted", self.result.transaction_hash),
                )
            if outcome.error is not None:
                log.warning("deployment %s: %s", outcome.state.value, outcome.error)
            self.result._deliver(outcome)

    def _deploy(self) -> DeployOutcome:
        started = self.clock()
        try:
            abi = parse_abi(self.abi)
            tx = self.option.to_unsigned_transaction()
            tx.data = self.bytecode + encode_constructor(abi, self.constructor_args)
            tx_hash = self.client.send_transaction(tx)
        except ClientError as exc:
            return DeployOutcome(DeployState.FAILED, error=exc)

        self.result.transaction_hash = tx_hash
        self._transition(DeployState.SENT)
        self._transition(DeployState.POLLING)
        return self._poll(abi, tx_hash, started)

    def _poll(self, abi: list, tx_hash: str, started: float) -> DeployOutcome:
        deadline = started + self.timeout
        while True:
            remaining = deadline - self.clock()
            if remaining <= 0:
                break
            if self.result._cancel.wait(min(self.poll_interval, remaining)):
                return DeployOutcome(
                    DeployState.FAILED,
                    tx_hash,
                    error=DeploymentCancelledError(f"deployment of {tx_hash} cancelled", tx_hash),
                )
            if self.clock() >= deadline:
                break

            try:
                transaction = self.client.get_transaction_by_hash(tx_hash)
            except ClientError as exc:
                error = DeploymentError(f"get transaction {tx_hash} error", tx_hash)
                error.__cause__ = exc
                return DeployOutcome(DeployState.FAILED, tx_hash, error=error)

            if transaction is None or transaction.status is None:
                continue
            if transaction.status != 0:
                return DeployOutcome(
                    DeployState.REVERTED,
                    tx_hash,
                    error=TransactionRevertedError(
                        f"transaction is packed but it is failed, the txhash is {tx_hash}", tx_hash
                    ),
                )
            contract = Contract(abi, self.client, transaction.contract_created)
            log.info("contract deployed at %s by %s", transaction.contract_created, tx_hash)
            return DeployOutcome(DeployState.CONFIRMED, tx_hash, contract=contract)

        return DeployOutcome(
            DeployState.TIMED_OUT,
            tx_hash,
            error=DeploymentTimeoutError(self.clock() - started, tx_hash),
        )
