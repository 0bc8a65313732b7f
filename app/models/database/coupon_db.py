"""
优惠券数据库模型
"""

from sqlalchemy import Column, String, Integer, Numeric, Boolean, DateTime
from datetime import datetime
from app.core.database import Base


class CouponDB(Base):
    """优惠券数据库表"""

    __tablename__ = "coupons"

    # 主键和基本信息
    coupon_id = Column(String(50), primary_key=True, comment="优惠券ID")
    code = Column(String(50), nullable=False, unique=True, index=True, comment="优惠券代码")
    coupon_type = Column(String(20), nullable=False, comment="优惠券类型")

    # 折扣信息
    value = Column(Numeric(12, 2), nullable=False, comment="折扣值")
    min_purchase = Column(Numeric(12, 2), comment="最低消费金额")
    max_discount = Column(Numeric(12, 2), comment="最大折扣金额")

    # 使用限制
    usage_limit = Column(Integer, comment="总使用次数限制")
    usage_count = Column(Integer, nullable=False, default=0, comment="已使用次数")
    expires_at = Column(DateTime, index=True, comment="过期时间")
    is_active = Column(Boolean, nullable=False, default=True, comment="是否启用")

    # 适用范围
    applicable_to = Column(String(20), nullable=False, default="ALL", comment="适用类型")
    scope_id = Column(String(50), comment="适用对象ID")

    # 时间戳
    created_at = Column(DateTime, default=datetime.now, comment="创建时间")
    updated_at = Column(DateTime, default=datetime.now, comment="更新时间")

    __table_args__ = (
        {'comment': '优惠券信息表'}
    )


class CouponRedemptionDB(Base):
    """优惠券核销记录表"""

    __tablename__ = "coupon_redemptions"

    redemption_id = Column(String(50), primary_key=True, comment="核销记录ID")
    coupon_id = Column(String(50), nullable=False, index=True, comment="优惠券ID")
    code = Column(String(50), nullable=False, comment="优惠券代码")
    user_id = Column(String(50), nullable=False, index=True, comment="使用用户ID")
    payment_id = Column(String(50), nullable=False, unique=True, comment="关联支付ID")
    discount_amount = Column(Numeric(12, 2), nullable=False, comment="折扣金额")
    redeemed_at = Column(DateTime, default=datetime.now, comment="核销时间")

    __table_args__ = (
        {'comment': '优惠券核销记录表'}
    )
