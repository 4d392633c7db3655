"""
Budget ledger math for spend accounts

Pure functions over a SpendAccount row, no I/O. Callers hold the account row
lock (SELECT ... FOR UPDATE) while calling reserve/commit/release.

Amounts are micro-USDC ints. Each account tracks two windows:
- period window: budget_per_period over period_duration seconds
- daily window: effective daily limit over 24h
Reserved amounts belong to in-flight requests and survive window rollovers.
"""
import logging
from datetime import datetime, timedelta

from spendos.database.models.spend_account import SpendAccount
from spendos.services.errors import (
    InvalidAmountError,
    AccountNotActiveError,
    PerTxLimitExceededError,
    PeriodBudgetExceededError,
    DailyLimitExceededError,
)

logger = logging.getLogger(__name__)

DAY = timedelta(days=1)


def effective_daily_limit(account: SpendAccount) -> int:
    """daily_limit, or per_tx_limit when daily_limit is 0"""
    return account.daily_limit or account.per_tx_limit


def roll_windows(account: SpendAccount, now: datetime):
    """Advance expired period/daily windows to the one containing `now`"""
    if account.period_start is None:
        account.period_start = now
    elif account.period_duration > 0:
        period = timedelta(seconds=account.period_duration)
        if now >= account.period_start + period:
            elapsed = (now - account.period_start) // period
            account.period_start = account.period_start + period * elapsed
            account.period_spent = 0
            logger.info(f"🔄 Account {account.account_id}: new budget period from {account.period_start}")

    if account.daily_reset_at is None:
        account.daily_reset_at = now + DAY
    elif now >= account.daily_reset_at:
        days = (now - account.daily_reset_at) // DAY + 1
        account.daily_reset_at = account.daily_reset_at + DAY * days
        account.daily_spent = 0


def period_available(account: SpendAccount) -> int:
    used = account.period_spent + account.period_reserved
    return max(account.budget_per_period - used, 0)


def daily_available(account: SpendAccount) -> int:
    used = account.daily_spent + account.daily_reserved
    return max(effective_daily_limit(account) - used, 0)


def utilization(account: SpendAccount) -> float:
    """Share of the period budget spent or reserved"""
    if not account.budget_per_period:
        return 0.0
    return (account.period_spent + account.period_reserved) / account.budget_per_period


def reserve(account: SpendAccount, amount: int, now: datetime):
    """
    Hold `amount` against both windows

    Raises:
        InvalidAmountError: amount <= 0
        AccountNotActiveError: account frozen or closed
        PerTxLimitExceededError / PeriodBudgetExceededError / DailyLimitExceededError
    """
    if amount <= 0:
        raise InvalidAmountError(f"Amount must be positive, got {amount}")
    if account.closed:
        raise AccountNotActiveError(f"Spend account {account.account_id} is closed")
    if account.frozen:
        raise AccountNotActiveError(f"Spend account {account.account_id} is frozen")

    roll_windows(account, now)

    if amount > account.per_tx_limit:
        raise PerTxLimitExceededError(
            f"Amount {amount} exceeds per-transaction limit {account.per_tx_limit}"
        )
    remaining = period_available(account)
    if amount > remaining:
        raise PeriodBudgetExceededError(
            f"Amount {amount} exceeds remaining period budget {remaining}"
        )
    remaining = daily_available(account)
    if amount > remaining:
        raise DailyLimitExceededError(
            f"Amount {amount} exceeds remaining daily limit {remaining}"
        )

    account.period_reserved += amount
    account.daily_reserved += amount


def commit(account: SpendAccount, amount: int, now: datetime):
    """Turn a reservation into actual spend"""
    roll_windows(account, now)
    account.period_reserved = _debit(account, "period_reserved", amount)
    account.daily_reserved = _debit(account, "daily_reserved", amount)
    account.period_spent += amount
    account.daily_spent += amount


def release(account: SpendAccount, amount: int):
    """Give a reservation back (rejection or failure)"""
    account.period_reserved = _debit(account, "period_reserved", amount)
    account.daily_reserved = _debit(account, "daily_reserved", amount)


def _debit(account: SpendAccount, field: str, amount: int) -> int:
    current = getattr(account, field)
    if amount > current:
        logger.warning(
            f"⚠️ Ledger drift on account {account.account_id}: "
            f"{field}={current} < {amount}, clamping to 0"
        )
        return 0
    return current - amount
