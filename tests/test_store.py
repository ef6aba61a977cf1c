"""Tests for the stake store: ids, conditional writes, user resolution."""
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.core.exceptions import ValidationError
from django.db import IntegrityError, OperationalError, transaction

from core.constants import TBTC, WBTC
from core.errors import StoreUnavailable
from core.models import Stake, User
from core.store import parse_stake_ref


@pytest.mark.parametrize("ref, expected", [
    ("btc-1", (TBTC, 1)),
    ("wbtc-42", (WBTC, 42)),
    ("eth-1", None),
    ("btc-", None),
    ("btc-01", None),
    ("btc--1", None),
    ("btc", None),
    ("btc-1.5", None),
    (12, None),
    (None, None),
])
def test_parse_stake_ref(ref, expected):
    assert parse_stake_ref(ref) == expected


@pytest.mark.django_db
def test_sequences_are_per_asset(make_stake):
    ids = [make_stake(asset=a).public_id for a in (TBTC, TBTC, WBTC, TBTC, WBTC)]

    assert ids == ["btc-1", "btc-2", "wbtc-1", "btc-3", "wbtc-2"]


@pytest.mark.django_db
def test_public_id_round_trips(make_stake, store):
    stake = make_stake(asset=WBTC, amount="0.25", stake_id=9)
    loaded = store.get_by_id(stake.public_id)

    assert loaded.public_id == stake.public_id == "wbtc-1"
    assert loaded.asset == WBTC
    assert loaded.network == "EVM Testnet"
    assert loaded.amount == Decimal("0.25000000")
    assert loaded.stake_id == 9
    assert not loaded.confirmed and not loaded.claimed


@pytest.mark.django_db
def test_unknown_or_malformed_ids_return_none(make_stake, store):
    make_stake()

    assert store.get_by_id("btc-2") is None
    assert store.get_by_id("wbtc-1") is None
    assert store.get_by_id("garbage") is None


@pytest.mark.django_db
def test_list_unconfirmed(make_stake, store):
    a = make_stake()
    make_stake(confirmed=True)
    c = make_stake(asset=WBTC)

    assert [s.public_id for s in store.list_unconfirmed()] == [a.public_id, c.public_id]


@pytest.mark.django_db
def test_list_all_filters_by_either_address(make_stake, store):
    first = make_stake()
    make_stake()

    by_btc = store.list_all(address=first.user_address)
    by_evm = store.list_all(address=first.user_evm_address.upper().replace("0X", "0x"))

    assert [s.public_id for s in by_btc] == [first.public_id]
    assert [s.public_id for s in by_evm] == [first.public_id]
    assert len(store.list_all()) == 2


@pytest.mark.django_db
def test_mark_confirmed_is_idempotent(make_stake, store):
    stake = make_stake()

    assert store.mark_confirmed(stake.public_id) is True
    before = Stake.objects.values().get(pk=stake.pk)
    assert store.mark_confirmed(stake.public_id) is False
    assert Stake.objects.values().get(pk=stake.pk) == before


@pytest.mark.django_db
def test_mark_claimed_requires_confirmed_and_unclaimed(make_stake, store, t0):
    pending = make_stake()
    confirmed = make_stake(confirmed=True)

    assert store.mark_claimed(pending.public_id, t0) is False
    assert store.mark_claimed(confirmed.public_id, t0) is True
    assert store.mark_claimed(confirmed.public_id, t0) is False

    claimed = store.get_by_id(confirmed.public_id)
    assert claimed.claimed and claimed.claimed_at == t0
    assert not store.get_by_id(pending.public_id).claimed


@pytest.mark.django_db
def test_claimed_without_confirmed_is_rejected_by_the_database(make_stake, store):
    stake = make_stake()

    with pytest.raises(IntegrityError), transaction.atomic():
        store.update(stake.public_id, claimed=True)


@pytest.mark.django_db
def test_stake_reference_is_rejected_on_tbtc_by_the_database(make_stake, store):
    stake = make_stake(asset=TBTC)

    with pytest.raises(IntegrityError), transaction.atomic():
        store.update(stake.public_id, stake_id=3)


@pytest.mark.django_db
def test_backfill_price_only_replaces_zero(make_stake, store):
    unknown = make_stake(price="0")
    known = make_stake(price="41000.00")

    assert store.zero_priced_refs() == [unknown.public_id]
    assert store.backfill_price(unknown.public_id, Decimal("65000.00")) is True
    assert store.backfill_price(known.public_id, Decimal("65000.00")) is False
    assert store.backfill_price(unknown.public_id, Decimal("70000.00")) is False

    assert store.get_by_id(unknown.public_id).btc_price_at_tx == Decimal("65000.00")
    assert store.get_by_id(known.public_id).btc_price_at_tx == Decimal("41000.00")


@pytest.mark.django_db
def test_attach_stake_id_is_write_once(make_stake, store):
    stake = make_stake(asset=WBTC)

    assert store.attach_stake_id(stake.public_id, 5) is True
    assert store.attach_stake_id(stake.public_id, 6) is False
    assert store.get_by_id(stake.public_id).stake_id == 5


@pytest.mark.django_db
def test_update_rejects_fields_outside_the_contract(make_stake, store):
    stake = make_stake()

    with pytest.raises(ValueError, match="amount"):
        store.update(stake.public_id, amount=Decimal("1"))
    with pytest.raises(ValueError):
        store.update(stake.public_id, confirmed=False)


@pytest.mark.django_db
def test_update_returns_fresh_row(make_stake, store):
    stake = make_stake()

    updated = store.update(stake.public_id, confirmed=True)

    assert updated.confirmed
    assert store.update("btc-999", confirmed=True) is None


@pytest.mark.django_db
def test_database_errors_surface_as_store_unavailable(store):
    with patch.object(Stake.objects, "select_related", side_effect=OperationalError("database is locked")):
        with pytest.raises(StoreUnavailable, match="locked"):
            store.list_unconfirmed()


class TestResolveUser:

    @pytest.mark.django_db
    def test_creates_user_with_both_addresses(self, store):
        user = store.resolve_user("tb1qalice", "0xABCDEF")

        assert (user.btc_address, user.evm_address) == ("tb1qalice", "0xabcdef")
        assert User.objects.count() == 1

    @pytest.mark.django_db
    def test_reuses_user_matching_both(self, store):
        first = store.resolve_user("tb1qalice", "0xabc")

        assert store.resolve_user("tb1qalice", "0xABC").pk == first.pk
        assert User.objects.count() == 1

    @pytest.mark.django_db
    def test_fills_in_missing_address(self, store):
        user = User.objects.create(btc_address="tb1qalice", evm_address=None)

        resolved = store.resolve_user("tb1qalice", "0xabc")

        assert resolved.pk == user.pk
        user.refresh_from_db()
        assert user.evm_address == "0xabc"

    @pytest.mark.django_db
    def test_refuses_to_overwrite_a_linked_address(self, store):
        store.resolve_user("tb1qalice", "0xabc")

        with pytest.raises(ValidationError) as exc:
            store.resolve_user("tb1qalice", "0xdef")
        assert exc.value.code == "address_conflict"
        assert User.objects.get(btc_address="tb1qalice").evm_address == "0xabc"

    @pytest.mark.django_db
    def test_refuses_to_merge_two_users(self, store):
        store.resolve_user("tb1qalice", "0xaaa")
        store.resolve_user("tb1qbob", "0xbbb")

        with pytest.raises(ValidationError) as exc:
            store.resolve_user("tb1qalice", "0xbbb")
        assert exc.value.code == "address_conflict"
        assert User.objects.count() == 2
