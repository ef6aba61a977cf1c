"""Shared fixtures: admin settings, a stake factory and scriptable chain probes."""
import itertools
import threading
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest

from core.access import AccessPolicy
from core.adapters.chain_adapter import EvmChainProbe, UtxoChainProbe
from core.constants import TBTC
from core.store import TransactionStore

ADMIN = "0x39D2770ABCC456F6C6BE820705ED966592E0AD96"
T0 = datetime(2026, 1, 1, 12, 0, tzinfo=dt_timezone.utc)


class FakeProbe:
    """Chain probe answering from a dict of tx id -> status (or exception to raise)."""

    def __init__(self, kind, results):
        self.results = results
        self.calls = []
        self._lock = threading.Lock()
        self.is_confirmed = kind.is_confirmed

    def probe(self, tx_id):
        with self._lock:
            self.calls.append(tx_id)
        result = self.results.get(tx_id)
        if isinstance(result, Exception):
            raise result
        return result


class FakeOracle:
    def __init__(self, price):
        self.price = Decimal(str(price))
        self.calls = 0

    def current_price(self):
        self.calls += 1
        return self.price


@pytest.fixture(autouse=True)
def vault_settings(settings):
    settings.ADMIN_ADDRESSES = [ADMIN.lower()]
    settings.ETHERSCAN_API_KEY = "test-key"
    settings.RECONCILE_MAX_WORKERS = 4
    return settings


@pytest.fixture
def admin():
    return ADMIN


@pytest.fixture
def policy():
    return AccessPolicy([ADMIN])


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def store():
    return TransactionStore()


@pytest.fixture
def make_stake(db, store):
    counter = itertools.count(1)

    def _make(asset=TBTC, amount="10", lock_duration_days=30, price="60000.00", confirmed=False,
              stake_id=None, timestamp=None, tx_id=None):
        n = next(counter)
        user = store.resolve_user(f"tb1qstaker{n}", f"0x{n:040x}")
        ref = store.insert(
            user=user,
            asset=asset,
            tx_id=tx_id or f"tx-{n}",
            amount=Decimal(amount),
            lock_duration_days=lock_duration_days,
            btc_price_at_tx=Decimal(price),
            stake_id=stake_id,
            timestamp=timestamp or T0,
        )
        if confirmed:
            store.mark_confirmed(ref)
        return store.get_by_id(ref)

    return _make


@pytest.fixture
def utxo_probe():
    def _make(results):
        return FakeProbe(UtxoChainProbe, results)
    return _make


@pytest.fixture
def evm_probe():
    def _make(results):
        return FakeProbe(EvmChainProbe, results)
    return _make


@pytest.fixture
def oracle():
    def _make(price):
        return FakeOracle(price)
    return _make
