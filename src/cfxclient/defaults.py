"""
Transaction default resolution.

Fills the unset fields of an UnsignedTransaction from the node, in a fixed
order: sender, nonce, gas price, epoch height, then gas and storage limit.
Gas and storage are estimated last because the estimate simulates the
transaction with every other field already decided.

Resolution is all-or-nothing: steps run on a copy and the result is only
written back to the caller's transaction once every step has succeeded.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from .errors import ClientError, DefaultResolutionError, NoDefaultAccountError
from .types import EPOCH_LATEST_STATE, MIN_GAS_PRICE, CallRequest, UnsignedTransaction

if TYPE_CHECKING:
    from .client import Client

log = logging.getLogger(__name__)

T = TypeVar("T")


def _fetch(field: str, func: Callable[..., T], *args: Any) -> T:
    try:
        return func(*args)
    except ClientError as exc:
        raise DefaultResolutionError(field, f"get {field} for transaction error: {exc}") from exc


def _default_sender(client: "Client") -> str:
    manager = client.account_manager
    if manager is None:
        raise NoDefaultAccountError("no sender given and no account manager configured")
    try:
        sender = manager.get_default()
    except Exception as exc:
        raise DefaultResolutionError("from", "get default account error") from exc
    if sender is None:
        raise NoDefaultAccountError("no sender given and the account manager holds no account")
    return sender


def apply_defaults(client: "Client", tx: UnsignedTransaction) -> None:
    """
    Fill missing fields of ``tx`` in place.

    Args:
        client: Client used for the chain queries
        tx: Transaction draft; fields that are already set are never touched

    Raises:
        NoDefaultAccountError: If no sender is set and none can be found
        DefaultResolutionError: If a chain query fails; ``field`` names the step
    """
    draft = tx.copy()

    if draft.from_ is None:
        draft.from_ = _default_sender(client)

    if draft.nonce is None:
        draft.nonce = _fetch("nonce", client.get_next_nonce, draft.from_)

    if draft.gas_price is None:
        gas_price = _fetch("gas_price", client.get_gas_price)
        if gas_price <= MIN_GAS_PRICE:
            gas_price = MIN_GAS_PRICE
        draft.gas_price = gas_price

    if draft.epoch_height is None:
        draft.epoch_height = _fetch("epoch_height", client.get_epoch_number, EPOCH_LATEST_STATE)

    if draft.gas is None or draft.storage_limit is None:
        request = CallRequest.from_unsigned_tx(draft)
        estimate = _fetch("gas/storage_limit", client.estimate_gas_and_collateral, request)
        if draft.gas is None:
            draft.gas = estimate.gas_used
        if draft.storage_limit is None:
            draft.storage_limit = estimate.storage_collateralized

    draft.apply_default(client.config.chain_id)

    for f in dataclasses.fields(tx):
        setattr(tx, f.name, getattr(draft, f.name))
    log.debug("resolved transaction defaults: %r", tx)
