"""Client facade tests against the in-memory FakeTransport."""

from __future__ import annotations

from unittest.mock import patch

import pytest
import rlp

from conftest import ADDR_A, HASH_1, HASH_2, FakeTransport, block_summary, transaction
from cfxclient.client import Client
from cfxclient.errors import (
    ClientError,
    DecodeError,
    MissingSignerError,
    RpcCallError,
    TransportError,
    ValidationError,
)
from cfxclient.rpc import BatchElem
from cfxclient.types import (
    EPOCH_LATEST_MINED,
    MAX_UINT256,
    CallRequest,
    Epoch,
    LogFilter,
    UnsignedTransaction,
)


class TestQuantities:
    def test_epoch_omitted_sends_no_epoch_argument(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_epochNumber"] = "0x64"
        assert client.get_epoch_number() == 100
        assert transport.calls == [("cfx_epochNumber", ())]

    def test_epoch_tag_and_number(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_getBalance"] = "0xde0b6b3a7640000"
        assert client.get_balance(ADDR_A, EPOCH_LATEST_MINED) == 10**18
        assert client.get_balance(ADDR_A, Epoch.at(255)) == 10**18
        assert transport.calls == [
            ("cfx_getBalance", (ADDR_A, "latest_mined")),
            ("cfx_getBalance", (ADDR_A, "0xff")),
        ]

    def test_next_nonce_and_gas_price(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers.update({"cfx_getNextNonce": "0x7", "cfx_gasPrice": "0x3b9aca00"})
        assert client.get_next_nonce(ADDR_A) == 7
        assert client.get_gas_price() == 1_000_000_000

    def test_malformed_quantity_is_decode_error(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_gasPrice"] = "not-hex"
        with pytest.raises(DecodeError) as exc_info:
            client.get_gas_price()
        assert exc_info.value.payload == "not-hex"

    def test_code(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_getCode"] = "0x6080"
        assert client.get_code(ADDR_A) == "0x6080"


class TestErrors:
    def test_transport_failure_names_method_and_args(self, client: Client, transport: FakeTransport) -> None:
        def fail(*args):
            raise TransportError("connection reset")

        transport.handlers["cfx_getBalance"] = fail
        with pytest.raises(RpcCallError) as exc_info:
            client.get_balance(ADDR_A)

        assert exc_info.value.method == "cfx_getBalance"
        assert exc_info.value.call_args == [ADDR_A]
        assert isinstance(exc_info.value.__cause__, TransportError)
        assert "connection reset" in str(exc_info.value.__cause__)

    def test_debug_passthrough(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["debug_getStatus"] = {"ok": True}
        assert client.debug("debug_getStatus", 1) == {"ok": True}
        assert transport.calls == [("debug_getStatus", (1,))]

    def test_batch_transport_failure_names_methods(self, client: Client, transport: FakeTransport) -> None:
        elems = [BatchElem("cfx_gasPrice"), BatchElem("cfx_epochNumber", ["latest_state"])]
        with patch.object(transport, "batch_call", side_effect=TransportError("connection reset")):
            with pytest.raises(ClientError) as exc_info:
                client.batch_call_rpc(elems)

        assert "cfx_gasPrice, cfx_epochNumber" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, TransportError)

    def test_batch_element_errors_stay_on_elements(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_gasPrice"] = "0x1"
        elems = [BatchElem("cfx_gasPrice"), BatchElem("cfx_unknown")]
        client.batch_call_rpc(elems)
        assert elems[0].result == "0x1"
        assert isinstance(elems[1].error, TransportError)


class TestByHashLookups:
    def test_block_summary_present(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_getBlockByHash"] = lambda h, full: block_summary(h)
        summary = client.get_block_summary_by_hash(HASH_1)
        assert summary is not None
        assert summary.hash == HASH_1
        assert summary.epoch_number == 16
        assert transport.calls == [("cfx_getBlockByHash", (HASH_1, False))]

    def test_block_summary_absent(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_getBlockByHash"] = None
        assert client.get_block_summary_by_hash(HASH_1) is None

    def test_block_summary_malformed(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_getBlockByHash"] = {"hash": HASH_1}
        with pytest.raises(DecodeError):
            client.get_block_summary_by_hash(HASH_1)

    def test_full_block_decodes_transactions(self, client: Client, transport: FakeTransport) -> None:
        payload = block_summary(HASH_1)
        payload["transactions"] = [transaction(HASH_2)]
        transport.handlers["cfx_getBlockByHash"] = payload
        block = client.get_block_by_hash(HASH_1)
        assert block is not None
        assert block.transactions[0].hash == HASH_2
        assert transport.calls == [("cfx_getBlockByHash", (HASH_1, True))]

    def test_transaction_states(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_getTransactionByHash"] = lambda h: None if h == HASH_2 else transaction(h)
        tx = client.get_transaction_by_hash(HASH_1)
        assert tx is not None
        assert tx.status == 0
        assert tx.gas == 21000
        assert client.get_transaction_by_hash(HASH_2) is None

    def test_receipt_absent(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_getTransactionReceipt"] = None
        assert client.get_transaction_receipt(HASH_1) is None

    def test_batch_transactions_keep_order(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_getTransactionByHash"] = lambda h: None if h == HASH_2 else transaction(h)
        txs = client.batch_get_transactions_by_hashes([HASH_1, HASH_2])
        assert txs[0] is not None and txs[0].hash == HASH_1
        assert txs[1] is None
        assert len(transport.batches) == 1


class TestConfirmRisk:
    def test_risk_reported_by_node(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_getConfirmationRiskByHash"] = hex(MAX_UINT256 // 2)
        assert client.get_block_confirm_risk_by_hash(HASH_1) == MAX_UINT256 // 2
        assert client.get_block_revert_rate_by_hash(HASH_1) == pytest.approx(0.5)

    def test_no_risk_pivot_block_is_safe(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_getConfirmationRiskByHash"] = None
        transport.handlers["cfx_getBlockByHash"] = lambda h, full: block_summary(h)
        assert client.get_block_confirm_risk_by_hash(HASH_1) == 0
        assert client.get_block_revert_rate_by_hash(HASH_1) == 0.0

    def test_no_risk_unknown_block_is_max_risk(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_getConfirmationRiskByHash"] = None
        transport.handlers["cfx_getBlockByHash"] = None
        assert client.get_block_confirm_risk_by_hash(HASH_1) == MAX_UINT256
        assert client.get_block_revert_rate_by_hash(HASH_1) == 1.0

    def test_no_risk_off_pivot_block_is_max_risk(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_getConfirmationRiskByHash"] = None
        transport.handlers["cfx_getBlockByHash"] = lambda h, full: block_summary(h, epoch_number=None)
        assert client.get_block_confirm_risk_by_hash(HASH_1) == MAX_UINT256


class TestCallsAndLogs:
    def test_call_sends_request_object(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_call"] = "0x01"
        request = CallRequest(to=ADDR_A, data="0xabcdef01", gas=100000)
        assert client.call(request) == "0x01"
        assert transport.calls == [("cfx_call", ({"to": ADDR_A, "gas": "0x186a0", "data": "0xabcdef01"},))]

    def test_estimate(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_estimateGasAndCollateral"] = {"gasUsed": "0x5208", "storageCollateralized": "0x40"}
        estimate = client.estimate_gas_and_collateral(CallRequest(to=ADDR_A))
        assert estimate.gas_used == 21000
        assert estimate.storage_collateralized == 64

    def test_get_logs(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_getLogs"] = [
            {"address": ADDR_A, "topics": ["0x" + "aa" * 32], "data": "0x", "epochNumber": "0x3"}
        ]
        logs = client.get_logs(LogFilter(from_epoch=Epoch.at(1), to_epoch=EPOCH_LATEST_MINED, limit=10))
        assert logs[0].epoch_number == 3
        assert transport.calls[0][1] == ({"fromEpoch": "0x1", "toEpoch": "latest_mined", "limit": "0xa"},)

    def test_blocks_by_epoch(self, client: Client, transport: FakeTransport) -> None:
        transport.handlers["cfx_getBlocksByEpoch"] = [HASH_1, HASH_2]
        assert client.get_blocks_by_epoch(Epoch.at(5)) == [HASH_1, HASH_2]
        assert transport.calls == [("cfx_getBlocksByEpoch", ("0x5",))]


class TestSendTransaction:
    def test_without_account_manager(self, client: Client, transport: FakeTransport) -> None:
        with pytest.raises(MissingSignerError):
            client.send_transaction(UnsignedTransaction(to=ADDR_A))
        assert transport.calls == []

    def test_send_failure_is_wrapped(self, client: Client, transport: FakeTransport) -> None:
        class Signer:
            def get_default(self):
                return ADDR_A

            def sign_transaction(self, tx):
                return b"\x01\x02"

        def reject(raw):
            raise TransportError("rejected")

        client.set_account_manager(Signer())
        transport.handlers["cfx_sendRawTransaction"] = reject
        tx = UnsignedTransaction(
            from_=ADDR_A, to=ADDR_A, nonce=1, gas_price=1, gas=21000, storage_limit=0, epoch_height=5
        )
        with pytest.raises(ClientError) as exc_info:
            client.send_transaction(tx)
        assert "0x0102" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RpcCallError)

    def test_close_closes_transport(self, transport: FakeTransport) -> None:
        with Client.with_transport(transport) as client:
            assert client.account_manager is None
        assert transport.closed


def _encoded_unsigned() -> bytes:
    return rlp.encode([1, 1, 21000, bytes.fromhex(ADDR_A[2:]), 0, 0, 5, 1029, b""])


class TestSignEncodedTransaction:
    def test_attaches_signature_sends_and_fetches(self, client: Client, transport: FakeTransport) -> None:
        sent: list[str] = []

        def accept(raw: str) -> str:
            sent.append(raw)
            return HASH_1

        transport.handlers["cfx_sendRawTransaction"] = accept
        transport.handlers["cfx_getTransactionByHash"] = lambda h: transaction(h)
        r = b"\x00" + b"\x22" * 31

        tx = client.sign_encoded_transaction_and_send(_encoded_unsigned(), 1, r, 0x33)

        assert tx is not None and tx.hash == HASH_1
        assert transport.methods() == ["cfx_sendRawTransaction", "cfx_getTransactionByHash"]
        unsigned, v, r_out, s_out = rlp.decode(bytes.fromhex(sent[0][2:]))
        assert unsigned == rlp.decode(_encoded_unsigned())
        assert (v, r_out, s_out) == (b"\x01", b"\x22" * 31, b"\x33")

    def test_legacy_v_is_normalised(self, client: Client, transport: FakeTransport) -> None:
        sent: list[str] = []
        transport.handlers["cfx_sendRawTransaction"] = lambda raw: sent.append(raw) or HASH_1
        transport.handlers["cfx_getTransactionByHash"] = None

        assert client.sign_encoded_transaction_and_send(_encoded_unsigned(), 27, 1, 2) is None
        assert rlp.decode(bytes.fromhex(sent[0][2:]))[1] == b""

    @pytest.mark.parametrize("encoded", [b"\x83ab", rlp.encode([1, 2, 3])])
    def test_malformed_encoding_is_rejected_before_sending(
        self, client: Client, transport: FakeTransport, encoded: bytes
    ) -> None:
        with pytest.raises(ValidationError):
            client.sign_encoded_transaction_and_send(encoded, 0, 1, 2)
        assert transport.calls == []

    def test_send_failure_is_wrapped(self, client: Client, transport: FakeTransport) -> None:
        def reject(raw):
            raise TransportError("rejected")

        transport.handlers["cfx_sendRawTransaction"] = reject
        with pytest.raises(ClientError) as exc_info:
            client.sign_encoded_transaction_and_send(_encoded_unsigned(), 0, 1, 2)
        assert "send raw transaction" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RpcCallError)
