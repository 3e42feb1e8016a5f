"""Tests for the ledger module."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from ledger import (
    InsufficientFundsError,
    InvalidAmountError,
    InvalidTierError,
    SelfPurchaseError,
    SUBSCRIPTION_TIERS
)

USER = "alice"

@pytest.mark.asyncio
async def test_credit_and_debit(ledger):
    """Test crediting and debiting a balance."""
    assert await ledger.credit(USER, 100) == 100
    assert await ledger.debit(USER, 30) == 70
    assert await ledger.balance(USER) == 70

@pytest.mark.asyncio
async def test_debit_overdraft_changes_nothing(ledger):
    """Test a failing debit leaves the balance untouched."""
    await ledger.credit(USER, 50)

    with pytest.raises(InsufficientFundsError) as exc:
        await ledger.debit(USER, 51)

    assert exc.value.requested == 51
    assert await ledger.balance(USER) == 50

@pytest.mark.asyncio
async def test_concurrent_debits_never_overdraw(ledger):
    """Test concurrent debits exhaust the balance exactly."""
    await ledger.credit(USER, 100)

    results = await asyncio.gather(
        *(ledger.debit(USER, 30) for _ in range(5)),
        return_exceptions=True
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, InsufficientFundsError)]
    assert len(successes) == 3
    assert len(failures) == 2
    assert await ledger.balance(USER) == 10

@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -5, 1.5, True])
async def test_rejects_invalid_amounts(ledger, amount):
    """Test amounts must be positive integers."""
    with pytest.raises(InvalidAmountError):
        await ledger.credit(USER, amount)

@pytest.mark.asyncio
async def test_purchase_tier(ledger, store):
    """Test buying a tier debits its cost and records expiry."""
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    await ledger.credit(USER, 1000)

    subscription = await ledger.purchase_tier(USER, 'monthly', now=now)

    assert subscription['tier'] == 'monthly'
    assert subscription['expires_at'] == now + timedelta(days=30)
    assert await ledger.balance(USER) == 1000 - SUBSCRIPTION_TIERS['monthly']['cost']

@pytest.mark.asyncio
async def test_purchase_tier_insufficient_funds_writes_nothing(ledger, store):
    """Test a failed tier purchase leaves no subscription row."""
    await ledger.credit(USER, 100)

    with pytest.raises(InsufficientFundsError):
        await ledger.purchase_tier(USER, 'yearly')

    assert store.subscriptions == []
    assert await ledger.balance(USER) == 100
    assert await ledger.active_tier(USER) is None

@pytest.mark.asyncio
async def test_purchase_unknown_tier(ledger):
    """Test an unknown tier is rejected."""
    await ledger.credit(USER, 10000)
    with pytest.raises(InvalidTierError):
        await ledger.purchase_tier(USER, 'lifetime')

@pytest.mark.asyncio
async def test_active_tier_expires(ledger):
    """Test a tier is only active until its expiry."""
    bought = datetime(2026, 1, 1, tzinfo=timezone.utc)
    await ledger.credit(USER, 500)
    await ledger.purchase_tier(USER, 'monthly', now=bought)

    assert (await ledger.active_tier(USER, now=bought + timedelta(days=29)))['tier'] == 'monthly'
    assert await ledger.active_tier(USER, now=bought + timedelta(days=31)) is None

@pytest.mark.asyncio
async def test_latest_subscription_is_authoritative(ledger):
    """Test only the newest subscription row counts."""
    start = datetime.now(timezone.utc)
    await ledger.credit(USER, 5000)
    await ledger.purchase_tier(USER, 'yearly', now=start)
    await ledger.purchase_tier(USER, 'monthly', now=start - timedelta(days=60))

    assert await ledger.active_tier(USER) is None

@pytest.mark.asyncio
async def test_summary_defaults_to_free(ledger):
    """Test a user without subscriptions is on the free tier."""
    summary = await ledger.summary(USER)
    assert summary == {'tier': 'free', 'expires_at': None, 'coins': 0, 'total_earnings': 0}

@pytest.mark.asyncio
async def test_purchase_item_pays_creator(ledger, store, item):
    """Test buying a paid item moves coins to its creator once."""
    item['price'] = 40
    await ledger.credit("bob", 100)

    purchase = await ledger.purchase_item("bob", item)
    repeat = await ledger.purchase_item("bob", item)

    assert purchase['price'] == 40
    assert repeat is None
    assert await ledger.balance("bob") == 60
    creator = await store.get_account(item['owner_id'])
    assert creator['coins'] == 40
    assert creator['total_earnings'] == 40

@pytest.mark.asyncio
async def test_purchase_item_rules(ledger, item):
    """Test free items cost nothing and creators cannot buy their own."""
    assert await ledger.purchase_item("bob", item) is None

    with pytest.raises(SelfPurchaseError):
        await ledger.purchase_item(item['owner_id'], item)

    item['price'] = 10
    with pytest.raises(InsufficientFundsError):
        await ledger.purchase_item("bob", item)
