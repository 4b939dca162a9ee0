"""
Per-user state read by the transaction analyzer.
"""

from sqlalchemy import Column, DateTime, Float, Integer, JSON, String, UniqueConstraint, func
from upishield.database import Base


class BehaviorProfile(Base):
    """Learned spending pattern, upserted after every analyzed transaction."""
    __tablename__ = "user_behavior_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, unique=True, index=True)

    avg_transaction_amount = Column(Float, nullable=False, default=0.0)
    max_transaction_amount = Column(Float, nullable=False, default=0.0)
    std_dev_amount = Column(Float, nullable=False, default=0.0)
    transaction_count = Column(Integer, nullable=False, default=0)
    typical_transaction_hours = Column(JSON, nullable=False, default=list)  # last distinct hours
    trusted_device_ids = Column(JSON, nullable=False, default=list)

    last_transaction_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class TrustedContactRecord(Base):
    __tablename__ = "trusted_contacts"
    __table_args__ = (UniqueConstraint("user_id", "upi_id", name="uq_contact_user_upi"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    upi_id = Column(String, nullable=False)
    contact_name = Column(String, nullable=True)
    status = Column(String, nullable=False, default="new")  # trusted | new | flagged
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class TransactionLog(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    receiver_upi_id = Column(String, nullable=False)
    transaction_hour = Column(Integer, nullable=True)
    risk_score = Column(Float, nullable=True)
    fraud_category = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
