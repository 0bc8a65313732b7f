"""
支付相关数据库模型
"""

from sqlalchemy import Column, String, Numeric, Boolean, DateTime, Index, text
from datetime import datetime
from app.core.database import Base


class PaymentDB(Base):
    """支付记录表"""

    __tablename__ = "payments"

    # 主键和付款人
    payment_id = Column(String(50), primary_key=True, comment="支付ID")
    payer_id = Column(String(50), nullable=False, index=True, comment="付款用户ID")

    # 购买目标
    target_type = Column(String(20), nullable=False, comment="目标类型")
    target_id = Column(String(50), nullable=False, comment="目标ID")

    # 金额信息
    original_amount = Column(Numeric(12, 2), nullable=False, comment="原始金额")
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0, comment="优惠金额")
    amount = Column(Numeric(12, 2), nullable=False, comment="实付金额")
    currency = Column(String(3), nullable=False, default="USD", comment="币种")
    coupon_code = Column(String(50), comment="使用的优惠券代码")
    is_exclusive = Column(Boolean, nullable=False, default=False, comment="是否只能购买一次")

    # 状态与渠道
    status = Column(String(20), nullable=False, default="PENDING", index=True, comment="支付状态")
    provider = Column(String(50), nullable=False, comment="支付渠道")
    external_transaction_id = Column(String(100), comment="渠道交易号")

    # 时间戳
    due_at = Column(DateTime, comment="支付截止时间")
    paid_at = Column(DateTime, comment="支付完成时间")
    cancelled_at = Column(DateTime, comment="取消时间")
    created_at = Column(DateTime, default=datetime.now, index=True, comment="创建时间")
    updated_at = Column(DateTime, default=datetime.now, comment="更新时间")

    __table_args__ = (
        Index("ix_payments_payer_target", "payer_id", "target_type", "target_id"),
        # 付费内容和预约, 同一付款人最多一笔已完成支付
        Index(
            "uq_payments_completed_exclusive",
            "payer_id",
            "target_type",
            "target_id",
            unique=True,
            postgresql_where=text("status = 'COMPLETED' AND is_exclusive"),
            sqlite_where=text("status = 'COMPLETED' AND is_exclusive = 1"),
        ),
        {'comment': '支付记录表'}
    )
