"""Tests for the explorer probes and the price oracle against a mocked requests session."""
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests

from core.adapters.chain_adapter import EvmChainProbe, EvmTxStatus, UtxoChainProbe, UtxoTxStatus, status_to_dict
from core.adapters.price_adapter import PriceOracle
from core.errors import TransientProbeError


def response(status=200, payload=None, json_error=False):
    r = MagicMock()
    r.status_code = status
    if status >= 400:
        r.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    if json_error:
        r.json.side_effect = ValueError("not json")
    else:
        r.json.return_value = payload
    return r


def session_returning(*responses):
    session = MagicMock()
    session.get.side_effect = list(responses)
    return session


class TestUtxoChainProbe:

    def make(self, *responses):
        return UtxoChainProbe(base_url="https://mempool.test/api/", timeout=3, session=session_returning(*responses))

    def test_confirmed_transaction(self):
        probe = self.make(response(payload={"txid": "ab", "status": {"confirmed": True, "block_height": 10, "block_time": 99}}))

        result = probe.probe("ab")

        assert result == UtxoTxStatus(confirmed=True, block_height=10, block_time=99)
        assert UtxoChainProbe.is_confirmed(result)
        probe.session.get.assert_called_once_with("https://mempool.test/api/tx/ab", timeout=3)

    def test_mempool_transaction_is_not_confirmed(self):
        result = self.make(response(payload={"status": {"confirmed": False}})).probe("ab")

        assert result == UtxoTxStatus(confirmed=False)
        assert not UtxoChainProbe.is_confirmed(result)

    def test_unknown_transaction(self):
        result = self.make(response(status=404)).probe("ab")

        assert result is None
        assert not UtxoChainProbe.is_confirmed(None)

    @pytest.mark.parametrize("reply", [
        response(status=502),
        response(json_error=True),
        response(payload={"txid": "ab"}),
        response(payload=["unexpected"]),
    ])
    def test_bad_replies_are_transient(self, reply):
        with pytest.raises(TransientProbeError):
            self.make(reply).probe("ab")

    def test_network_error_is_transient(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("refused")

        with pytest.raises(TransientProbeError, match="refused"):
            UtxoChainProbe(base_url="https://mempool.test/api", session=session).probe("ab")


class TestEvmChainProbe:

    def make(self, *responses, api_key="k"):
        return EvmChainProbe(base_url="https://etherscan.test/api", api_key=api_key, timeout=3, session=session_returning(*responses))

    def test_successful_mined_transaction(self):
        probe = self.make(
            response(payload={"jsonrpc": "2.0", "result": {"hash": "0xab", "blockNumber": "0x1f"}}),
            response(payload={"jsonrpc": "2.0", "result": {"status": "0x1", "blockNumber": "0x1f"}}),
            response(payload={"jsonrpc": "2.0", "result": {"number": "0x1f", "timestamp": "0x6956f2c0"}}),
        )

        result = probe.probe("0xab")

        assert result == EvmTxStatus(block_number="0x1f", is_error="0", timestamp=0x6956f2c0)
        assert EvmChainProbe.is_confirmed(result)
        first_call = probe.session.get.call_args_list[0]
        assert first_call.kwargs["params"] == {
            "module": "proxy", "action": "eth_getTransactionByHash", "txhash": "0xab", "apikey": "k",
        }
        block_call = probe.session.get.call_args_list[2]
        assert block_call.kwargs["params"] == {
            "module": "proxy", "action": "eth_getBlockByNumber", "tag": "0x1f", "boolean": "false", "apikey": "k",
        }

    def test_reverted_transaction(self):
        probe = self.make(
            response(payload={"result": {"blockNumber": "0x1f"}}),
            response(payload={"result": {"status": "0x0", "blockNumber": "0x1f"}}),
            response(payload={"result": {"timestamp": "0x10"}}),
        )

        result = probe.probe("0xab")

        assert result.is_error == "1"
        assert not EvmChainProbe.is_confirmed(result)

    def test_block_without_timestamp(self):
        probe = self.make(
            response(payload={"result": {"blockNumber": "0x1f"}}),
            response(payload={"result": {"status": "0x1"}}),
            response(payload={"result": None}),
        )

        result = probe.probe("0xab")

        assert result == EvmTxStatus(block_number="0x1f", is_error="0", timestamp=None)
        assert EvmChainProbe.is_confirmed(result)

    def test_malformed_block_timestamp_is_transient(self):
        probe = self.make(
            response(payload={"result": {"blockNumber": "0x1f"}}),
            response(payload={"result": {"status": "0x1"}}),
            response(payload={"result": {"timestamp": "soon"}}),
        )

        with pytest.raises(TransientProbeError, match="timestamp"):
            probe.probe("0xab")

    def test_unknown_transaction_skips_receipt(self):
        probe = self.make(response(payload={"jsonrpc": "2.0", "result": None}))

        assert probe.probe("0xab") is None
        assert probe.session.get.call_count == 1

    def test_pending_transaction_has_no_receipt(self):
        probe = self.make(
            response(payload={"result": {"blockNumber": None}}),
            response(payload={"result": None}),
        )

        assert probe.probe("0xab") is None

    def test_unmined_status_is_not_confirmed(self):
        assert not EvmChainProbe.is_confirmed(EvmTxStatus(block_number=None, is_error="0"))

    def test_rate_limit_message_is_transient(self):
        probe = self.make(response(payload={"status": "0", "message": "NOTOK", "result": "Max rate limit reached"}))

        with pytest.raises(TransientProbeError, match="rate limit"):
            probe.probe("0xab")

    def test_http_error_is_transient(self):
        with pytest.raises(TransientProbeError):
            self.make(response(status=503)).probe("0xab")

    def test_missing_api_key(self):
        probe = self.make(api_key="")

        with pytest.raises(TransientProbeError, match="ETHERSCAN_API_KEY"):
            probe.probe("0xab")
        probe.session.get.assert_not_called()


def test_status_to_dict():
    assert status_to_dict(EvmTxStatus(block_number="0x1", is_error="0", timestamp=16)) == {
        "block_number": "0x1", "is_error": "0", "timestamp": 16,
    }


class TestPriceOracle:

    def make(self, *responses):
        return PriceOracle(api_url="https://prices.test/simple/price", timeout=2, session=session_returning(*responses))

    def test_current_price(self):
        oracle = self.make(response(payload={"bitcoin": {"usd": 64123.45}}))

        assert oracle.current_price() == Decimal("64123.45")
        oracle.session.get.assert_called_once_with(
            "https://prices.test/simple/price", params={"ids": "bitcoin", "vs_currencies": "usd"}, timeout=2,
        )

    @pytest.mark.parametrize("reply", [
        response(status=429),
        response(json_error=True),
        response(payload={"ethereum": {"usd": 1}}),
        response(payload={"bitcoin": {"usd": "n/a"}}),
        response(payload={"bitcoin": {"usd": -5}}),
        response(payload=None),
    ])
    def test_failures_report_zero(self, reply):
        assert self.make(reply).current_price() == Decimal("0")

    def test_network_error_reports_zero(self):
        session = MagicMock()
        session.get.side_effect = requests.Timeout("timed out")

        assert PriceOracle(api_url="https://prices.test", session=session).current_price() == Decimal("0")
