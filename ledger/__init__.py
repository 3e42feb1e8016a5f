"""Ledger module for coin balances and subscription tiers.

This module provides:
- Atomic credit and debit of coin balances
- Subscription tier purchases paid in coins
- Active tier lookup for premium-gated features
- Paid item purchases moving coins from buyer to creator
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from database import BaseStore, blank_account
from database.exceptions import NegativeBalanceError

logger = logging.getLogger(__name__)

# Tier -> (days valid, coin cost)
SUBSCRIPTION_TIERS = {
    'monthly': {'days': 30, 'cost': 500},
    'quarterly': {'days': 90, 'cost': 1200},
    'yearly': {'days': 365, 'cost': 4000}
}

FREE_TIER = 'free'

class LedgerError(Exception):
    """Base class for ledger errors."""
    pass

class InsufficientFundsError(LedgerError):
    """Raised when a debit exceeds the account balance."""
    def __init__(self, user_id: str, requested: int):
        self.user_id = user_id
        self.requested = requested
        super().__init__(f"Insufficient funds: {requested} coins requested")

class InvalidTierError(LedgerError):
    """Raised when an unknown subscription tier is requested."""
    pass

class InvalidAmountError(LedgerError):
    """Raised when an amount is not a positive integer."""
    pass

class SelfPurchaseError(LedgerError):
    """Raised when a creator tries to buy their own item."""
    pass

def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(f"Amount must be a positive integer, got {amount!r}")

class Ledger:
    """Coin balances and subscription bookkeeping."""

    def __init__(self, store: BaseStore):
        """Initialize the ledger.

        Args:
            store: Storage backend holding accounts and subscriptions
        """
        self.store = store

    async def balance(self, user_id: str) -> int:
        account = await self.store.get_account(user_id) or blank_account(user_id)
        return account['coins']

    async def credit(self, user_id: str, amount: int) -> int:
        """Add coins to a user's balance.

        Returns:
            The new balance
        """
        _check_amount(amount)
        balance = await self.store.add_coins(user_id, amount)
        logger.info(f"Credited {amount} coins to {user_id}")
        return balance

    async def debit(self, user_id: str, amount: int) -> int:
        """Remove coins from a user's balance.

        The decrement is a single guarded statement, so concurrent debits can
        never drive the balance below zero. A failed debit changes nothing.

        Returns:
            The new balance

        Raises:
            InsufficientFundsError: If amount exceeds the balance
        """
        _check_amount(amount)
        try:
            balance = await self.store.subtract_coins(user_id, amount)
        except NegativeBalanceError:
            raise InsufficientFundsError(user_id, amount)
        logger.info(f"Debited {amount} coins from {user_id}")
        return balance

    async def purchase_tier(self, user_id: str, tier: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Buy a subscription tier with coins.

        Args:
            user_id: Buyer
            tier: One of SUBSCRIPTION_TIERS
            now: Purchase time, defaults to the current UTC time

        Returns:
            The new subscription row

        Raises:
            InvalidTierError: If tier is unknown
            InsufficientFundsError: If the user cannot afford the tier; no
                subscription row is written in that case
        """
        plan = SUBSCRIPTION_TIERS.get(tier)
        if not plan:
            raise InvalidTierError(f"Invalid tier: {tier}")

        now = now or datetime.now(timezone.utc)
        expires_at = now + timedelta(days=plan['days'])

        try:
            subscription = await self.store.purchase_subscription(
                user_id, tier, plan['cost'], expires_at
            )
        except NegativeBalanceError:
            raise InsufficientFundsError(user_id, plan['cost'])

        logger.info(f"User {user_id} purchased {tier} tier until {expires_at.isoformat()}")
        return subscription

    async def active_tier(self, user_id: str, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        """Return the user's subscription if the most recent one is still running."""
        now = now or datetime.now(timezone.utc)
        subscription = await self.store.latest_subscription(user_id)
        if subscription and subscription['expires_at'] > now:
            return subscription
        return None

    async def summary(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Balance and tier details for the subscription status view."""
        account = await self.store.get_account(user_id) or blank_account(user_id)
        active = await self.active_tier(user_id, now)
        return {
            'tier': active['tier'] if active else FREE_TIER,
            'expires_at': active['expires_at'] if active else None,
            'coins': account['coins'],
            'total_earnings': account['total_earnings']
        }

    async def purchase_item(self, buyer_id: str, item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Pay for an item, crediting its creator.

        Returns:
            The purchase row, or None when nothing was charged (free item or
            already owned)

        Raises:
            SelfPurchaseError: If the buyer owns the item
            InsufficientFundsError: If the buyer cannot afford it
        """
        if item['owner_id'] == buyer_id:
            raise SelfPurchaseError("You cannot purchase your own item")
        if item['price'] <= 0:
            return None

        try:
            purchase = await self.store.purchase_item(
                item['id'], buyer_id, item['owner_id'], item['price']
            )
        except NegativeBalanceError:
            raise InsufficientFundsError(buyer_id, item['price'])

        if purchase is None:
            logger.debug(f"{buyer_id} already owns item {item['id']}")
        else:
            logger.info(f"{buyer_id} purchased item {item['id']} for {item['price']} coins")
        return purchase

# Export public interface
__all__ = [
    'Ledger',
    'SUBSCRIPTION_TIERS',
    'FREE_TIER',
    'LedgerError',
    'InsufficientFundsError',
    'InvalidTierError',
    'InvalidAmountError',
    'SelfPurchaseError'
]
