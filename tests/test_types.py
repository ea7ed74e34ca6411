"""Data model tests: epochs, request encoding, record decoding."""

from __future__ import annotations

import pytest

from conftest import ADDR_A, HASH_1, block_summary
from cfxclient.errors import DecodeError, ValidationError
from cfxclient.types import (
    EPOCH_LATEST_STATE,
    BlockSummary,
    CallRequest,
    Epoch,
    TransactionReceipt,
    UnsignedTransaction,
    decode_result,
    hex_to_bytes,
    hex_to_int,
    int_to_hex,
)


class TestEpoch:
    def test_wire_form(self) -> None:
        assert EPOCH_LATEST_STATE.to_rpc() == "latest_state"
        assert Epoch.at(0).to_rpc() == "0x0"
        assert str(Epoch.at(4096)) == "0x1000"

    @pytest.mark.parametrize("kwargs", [{}, {"tag": "earliest", "number": 1}, {"number": -1}])
    def test_invalid(self, kwargs: dict) -> None:
        with pytest.raises(ValidationError):
            Epoch(**kwargs)


class TestScalars:
    def test_hex_quantities(self) -> None:
        assert hex_to_int("0x0") == 0
        assert hex_to_int("0xff") == 255
        assert int_to_hex(255) == "0xff"
        with pytest.raises(ValueError):
            hex_to_int("ff")
        with pytest.raises(ValidationError):
            int_to_hex(-1)

    def test_hex_bytes(self) -> None:
        assert hex_to_bytes("0x0102") == b"\x01\x02"
        assert hex_to_bytes("0102") == b"\x01\x02"
        with pytest.raises(ValidationError):
            hex_to_bytes("0xzz")

    def test_decode_result_wraps_shape_errors(self) -> None:
        with pytest.raises(DecodeError) as exc_info:
            decode_result(12, hex_to_int, "gas price")
        assert exc_info.value.payload == 12
        assert isinstance(exc_info.value.__cause__, ValueError)


class TestUnsignedTransaction:
    def test_apply_default_fills_local_fields_only(self) -> None:
        tx = UnsignedTransaction(value=5)
        tx.apply_default(chain_id=1029)
        assert (tx.value, tx.data, tx.chain_id) == (5, b"", 1029)
        assert tx.nonce is None
        assert tx.gas is None

    def test_copy_is_independent(self) -> None:
        tx = UnsignedTransaction(nonce=1)
        other = tx.copy()
        other.nonce = 2
        assert tx.nonce == 1


class TestCallRequest:
    def test_from_unsigned_tx(self) -> None:
        tx = UnsignedTransaction(from_=ADDR_A, nonce=3, gas_price=10)
        assert CallRequest.from_unsigned_tx(tx).to_rpc() == {
            "from": ADDR_A,
            "gasPrice": "0xa",
            "nonce": "0x3",
            "data": "0x",
        }


class TestRecords:
    def test_block_summary_rejects_full_transactions(self) -> None:
        payload = block_summary(HASH_1)
        payload["transactions"] = [{"hash": HASH_1}]
        with pytest.raises(TypeError):
            BlockSummary.from_rpc(payload)

    def test_receipt(self) -> None:
        receipt = TransactionReceipt.from_rpc(
            {
                "transactionHash": HASH_1,
                "index": "0x0",
                "blockHash": HASH_1,
                "epochNumber": "0x5",
                "from": ADDR_A,
                "to": None,
                "gasUsed": "0x5208",
                "outcomeStatus": "0x1",
                "logs": [{"address": ADDR_A, "topics": [], "data": "0x"}],
            }
        )
        assert receipt.outcome_status == 1
        assert receipt.gas_used == 21000
        assert len(receipt.logs) == 1
