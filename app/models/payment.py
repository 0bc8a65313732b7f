"""
支付相关数据模型
"""

from decimal import Decimal
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, validator
from enum import Enum


class PaymentTargetType(str, Enum):
    """支付目标类型枚举"""
    MODULE = "MODULE"
    PROGRAM = "PROGRAM"
    LESSON = "LESSON"
    BOOKING = "BOOKING"
    BUNDLE = "BUNDLE"
    SUBSCRIPTION = "SUBSCRIPTION"


class PaymentStatus(str, Enum):
    """支付状态枚举, 只能从PENDING单向流转"""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Payment(BaseModel):
    """支付基础模型"""

    payment_id: str = Field(..., description="支付ID")
    payer_id: str = Field(..., description="付款用户ID")
    target_type: PaymentTargetType = Field(..., description="目标类型")
    target_id: str = Field(..., description="目标ID")
    original_amount: Decimal = Field(..., ge=0, description="原始金额")
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0, description="优惠金额")
    amount: Decimal = Field(..., ge=0, description="实付金额")
    currency: str = Field(default="USD", description="币种")
    coupon_code: Optional[str] = Field(None, description="优惠券代码")
    status: PaymentStatus = Field(default=PaymentStatus.PENDING, description="支付状态")
    provider: str = Field(..., description="支付渠道")
    external_transaction_id: Optional[str] = Field(None, description="渠道交易号")
    due_at: Optional[datetime] = Field(None, description="支付截止时间")
    paid_at: Optional[datetime] = Field(None, description="支付完成时间")
    cancelled_at: Optional[datetime] = Field(None, description="取消时间")
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def is_completed(self) -> bool:
        return self.status == PaymentStatus.COMPLETED


class PaymentRequest(BaseModel):
    """创建支付请求体, 付款人和目标由路由确定"""

    amount: Decimal = Field(..., description="支付金额")
    currency: str = Field(default="USD", min_length=3, max_length=3)
    provider: str = Field(..., min_length=1, max_length=50, description="支付渠道")
    coupon_code: Optional[str] = Field(None, max_length=50)
    external_transaction_id: Optional[str] = Field(None, max_length=100)

    @validator("currency")
    def normalize_currency(cls, v):
        return v.upper()


class PaymentCheckout(PaymentRequest):
    """通用下单请求体"""

    target_type: PaymentTargetType = Field(...)
    target_id: str = Field(..., min_length=1, max_length=50)


class PaymentCreate(PaymentCheckout):
    """创建支付模型"""

    payer_id: str = Field(..., min_length=1)


class PaymentConfirm(BaseModel):
    """确认支付请求"""

    external_transaction_id: Optional[str] = Field(None, max_length=100)


class PaymentStatusView(BaseModel):
    """某用户对某内容的支付状态"""

    required: bool = Field(..., description="是否需要付费")
    paid: bool = Field(..., description="是否已支付")
    has_access: bool = Field(..., description="当前是否可访问")
    payment: Optional[Payment] = Field(None, description="最近一笔支付")
    deadline: Optional[datetime] = Field(None, description="支付截止时间")
    is_overdue: bool = Field(default=False, description="是否已超过截止时间")
