"""
优惠券相关数据模型
"""

from decimal import Decimal
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, validator
from enum import Enum


class CouponType(str, Enum):
    """优惠券类型枚举"""
    PERCENTAGE = "PERCENTAGE"  # 百分比折扣, value取0~100
    FIXED = "FIXED"  # 固定金额折扣


class CouponScope(str, Enum):
    """优惠券适用范围"""
    ALL = "ALL"
    COURSE = "COURSE"
    BUNDLE = "BUNDLE"
    SUBSCRIPTION = "SUBSCRIPTION"


class Coupon(BaseModel):
    """优惠券基础模型"""

    coupon_id: str = Field(..., description="优惠券ID")
    code: str = Field(..., min_length=1, max_length=50, description="优惠券代码")
    coupon_type: CouponType = Field(..., description="优惠券类型")
    value: Decimal = Field(..., ge=0, description="折扣值")
    min_purchase: Optional[Decimal] = Field(None, ge=0, description="最低消费金额")
    max_discount: Optional[Decimal] = Field(None, ge=0, description="最大折扣金额")
    usage_limit: Optional[int] = Field(None, ge=1, description="总使用次数限制")
    usage_count: int = Field(default=0, ge=0, description="已使用次数")
    expires_at: Optional[datetime] = Field(None, description="过期时间")
    is_active: bool = Field(default=True, description="是否启用")
    applicable_to: CouponScope = Field(default=CouponScope.ALL, description="适用类型")
    scope_id: Optional[str] = Field(None, description="适用对象ID")
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """检查是否过期"""
        if self.expires_at is None:
            return False
        return self.expires_at < (now or datetime.now())

    def is_used_up(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit

    def covers(self, applicable_to: CouponScope, scope_id: Optional[str] = None) -> bool:
        """检查是否适用于指定的购买目标"""
        if self.applicable_to == CouponScope.ALL:
            return True
        if self.applicable_to != applicable_to:
            return False
        # 指定了适用对象时必须匹配
        return self.scope_id is None or self.scope_id == scope_id


class CouponCreate(BaseModel):
    """创建优惠券模型"""

    code: str = Field(..., min_length=1, max_length=50)
    coupon_type: CouponType = Field(...)
    value: Decimal = Field(...)
    min_purchase: Optional[Decimal] = Field(None, ge=0)
    max_discount: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    expires_at: Optional[datetime] = None
    is_active: bool = True
    applicable_to: CouponScope = CouponScope.ALL
    scope_id: Optional[str] = Field(None, max_length=50)

    @validator("code")
    def normalize_code(cls, v):
        return v.strip().upper()


class CouponApplication(BaseModel):
    """优惠券试算请求"""

    code: str = Field(..., min_length=1, max_length=50)
    amount: Decimal = Field(..., description="原始金额")
    applicable_to: CouponScope = Field(default=CouponScope.ALL)
    scope_id: Optional[str] = None


class CouponPricing(BaseModel):
    """优惠券计价结果, 无效时error给出原因"""

    valid: bool = Field(..., description="是否有效")
    discount: Decimal = Field(default=Decimal("0.00"), description="折扣金额")
    final_amount: Decimal = Field(..., description="折后金额")
    error: Optional[str] = Field(None, description="无效原因")
    coupon_code: Optional[str] = Field(None, description="优惠券代码")


class CouponRedemption(BaseModel):
    """优惠券核销记录"""

    redemption_id: str
    coupon_id: str
    code: str
    user_id: str
    payment_id: str
    discount_amount: Decimal
    redeemed_at: datetime = Field(default_factory=datetime.now)
