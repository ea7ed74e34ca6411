"""
Block revert-rate calculation.

The node reports a confirmation risk in [0, 2^256-1] for the pivot block of
the epoch containing a block; the revert rate is that risk divided by
2^256-1. When the node has no risk data for a block (too old or too new),
the block summary decides: a block already on the pivot chain is safe,
anything else is treated as maximum risk.
"""

from __future__ import annotations

import logging
from fractions import Fraction
from typing import Optional, Sequence

from .errors import DecodeError, RevertRateError, TransportError
from .rpc import BatchElem, Transport
from .types import MAX_UINT256, BlockSummary, decode_result, hex_to_int

log = logging.getLogger(__name__)

RISK_METHOD = "cfx_getConfirmationRiskByHash"
BLOCK_METHOD = "cfx_getBlockByHash"


def revert_rate(risk: int) -> float:
    """Convert a confirmation risk to a rate in [0, 1]."""
    if not 0 <= risk <= MAX_UINT256:
        raise ValueError(f"confirmation risk out of range: {risk}")
    return float(Fraction(risk, MAX_UINT256))


def fallback_risk(summary: Optional[BlockSummary]) -> int:
    if summary is not None and summary.epoch_number is not None:
        return 0
    return MAX_UINT256


def _run_batch(transport: Transport, elems: list[BatchElem], method: str) -> None:
    try:
        transport.batch_call(elems)
    except TransportError as exc:
        raise RevertRateError(f"batch call {method} with {len(elems)} items error") from exc
    for elem in elems:
        if elem.error is not None:
            raise RevertRateError(f"batch call {method} failed for {elem.args[0]}") from elem.error


def batch_revert_rates(transport: Transport, block_hashes: Sequence[Optional[str]]) -> list[float]:
    """
    Revert rates for many blocks using at most two batched requests.

    Args:
        transport: Transport used for the batches
        block_hashes: Block hashes; may repeat, and None marks a position with no block

    Returns:
        One rate per input position, in input order. None positions get 1.0.

    Raises:
        RevertRateError: If either batch fails
    """
    if not block_hashes:
        return []

    risks: list[Optional[int]] = [None] * len(block_hashes)
    elems: list[BatchElem] = []
    positions: list[int] = []
    for i, block_hash in enumerate(block_hashes):
        if block_hash is None:
            risks[i] = MAX_UINT256
            continue
        elems.append(BatchElem(RISK_METHOD, [block_hash]))
        positions.append(i)

    if elems:
        _run_batch(transport, elems, RISK_METHOD)

    # The same hash may appear at several positions; fetch each summary once.
    pending: dict[str, list[int]] = {}
    for i, elem in zip(positions, elems):
        if elem.result is None:
            pending.setdefault(block_hashes[i], []).append(i)
        else:
            try:
                risks[i] = decode_result(elem.result, hex_to_int, "confirmation risk")
            except DecodeError as exc:
                raise RevertRateError(f"malformed risk for {block_hashes[i]}") from exc

    if pending:
        log.debug("no confirmation risk for %d blocks, falling back to block summaries", len(pending))
        summary_elems = [BatchElem(BLOCK_METHOD, [block_hash, False]) for block_hash in pending]
        _run_batch(transport, summary_elems, BLOCK_METHOD)
        for elem in summary_elems:
            summary = None
            if elem.result is not None:
                try:
                    summary = decode_result(elem.result, BlockSummary.from_rpc, "block summary")
                except DecodeError as exc:
                    raise RevertRateError(f"malformed block summary for {elem.args[0]}") from exc
            risk = fallback_risk(summary)
            for i in pending[elem.args[0]]:
                risks[i] = risk

    rates = []
    for block_hash, risk in zip(block_hashes, risks):
        try:
            rates.append(revert_rate(risk))
        except ValueError as exc:
            raise RevertRateError(f"node reported an invalid risk for {block_hash}") from exc
    return rates
