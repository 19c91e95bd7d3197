from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from datetime import datetime

from prepx.core.database import Base
from prepx.core.types import GUID, generate_uuid


class AuditLog(Base):
    """Audit trail for billing-affecting actions (cancellations, referral rewards)"""
    __tablename__ = "audit_logs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    # Acting user; NULL for service-initiated actions
    actor_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    action = Column(String(100), nullable=False)  # e.g. 'subscription_canceled', 'referral_rewarded'
    target_type = Column(String(50), nullable=False)  # e.g. 'subscription', 'referral'
    target_id = Column(GUID, nullable=True)
    details = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action} by {self.actor_id}>"
