"""
SQLAlchemy model for the spend account mirror
On-chain account state plus the local budget ledger counters
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean

from spendos.database.postgres_client import Base, utcnow
from spendos.database.models.types import MicroUsdc, ChainIdList


class SpendAccount(Base):
    """Spend account (one per team/department budget)"""
    __tablename__ = "spend_accounts"

    # Mirrors the on-chain account id, not autoincremented
    account_id = Column(Integer, primary_key=True, autoincrement=False)

    owner_address = Column(String(42), nullable=False, index=True)
    approver_address = Column(String(42), nullable=False, index=True)
    label = Column(String(64), nullable=False)

    # Limits (micro-USDC)
    budget_per_period = Column(MicroUsdc, nullable=False)
    period_duration = Column(Integer, nullable=False)  # seconds
    per_tx_limit = Column(MicroUsdc, nullable=False)
    daily_limit = Column(MicroUsdc, nullable=False, default=0)  # 0 = use per_tx_limit
    approval_threshold = Column(MicroUsdc, nullable=False, default=0)

    # Ledger counters
    period_spent = Column(MicroUsdc, nullable=False, default=0)
    period_reserved = Column(MicroUsdc, nullable=False, default=0)
    daily_spent = Column(MicroUsdc, nullable=False, default=0)
    daily_reserved = Column(MicroUsdc, nullable=False, default=0)
    period_start = Column(DateTime, nullable=True)
    daily_reset_at = Column(DateTime, nullable=True)

    frozen = Column(Boolean, nullable=False, default=False)
    closed = Column(Boolean, nullable=False, default=False)
    allowed_chains = Column(ChainIdList, nullable=False, default=list)

    auto_topup_min_balance = Column(MicroUsdc, nullable=True)
    auto_topup_target_balance = Column(MicroUsdc, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_active(self) -> bool:
        return not (self.frozen or self.closed)

    def __repr__(self):
        return f"<SpendAccount {self.account_id} {self.label!r}>"
