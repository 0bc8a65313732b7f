"""
提现申请数据库模型
"""

from sqlalchemy import Column, String, Numeric, Text, DateTime, JSON
from datetime import datetime
from app.core.database import Base


class PayoutRequestDB(Base):
    """老师提现申请表"""

    __tablename__ = "payout_requests"

    payout_id = Column(String(50), primary_key=True, comment="提现ID")
    teacher_id = Column(String(50), nullable=False, index=True, comment="老师ID")
    amount = Column(Numeric(12, 2), nullable=False, comment="提现金额")
    currency = Column(String(3), nullable=False, default="USD", comment="币种")
    status = Column(String(20), nullable=False, default="PENDING", index=True, comment="审核状态")

    method = Column(String(50), nullable=False, default="bank_transfer", comment="打款方式")
    details = Column(JSON, comment="打款信息")

    # 审核信息
    decided_by = Column(String(50), comment="审核管理员ID")
    decided_at = Column(DateTime, comment="审核时间")
    external_transaction_id = Column(String(100), comment="打款交易号")
    reason = Column(Text, comment="驳回原因")

    requested_at = Column(DateTime, default=datetime.now, index=True, comment="申请时间")

    __table_args__ = (
        {'comment': '提现申请表'}
    )
