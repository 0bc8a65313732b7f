"""
内容变现策略与访问权限数据模型
"""

from decimal import Decimal
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from enum import Enum


class ContentType(str, Enum):
    """可设置变现策略的内容类型"""
    MODULE = "MODULE"
    PROGRAM = "PROGRAM"


class MonetizationType(str, Enum):
    """变现方式枚举"""
    FREE = "FREE"
    SUBSCRIPTION = "SUBSCRIPTION"
    PREMIUM = "PREMIUM"


class ContentMonetizationPolicy(BaseModel):
    """内容定价策略"""

    content_type: ContentType = Field(..., description="内容类型")
    content_id: str = Field(..., description="内容ID")
    teacher_id: Optional[str] = Field(None, description="所属老师ID")
    course_id: Optional[str] = Field(None, description="所属课程ID")
    monetization_type: MonetizationType = Field(default=MonetizationType.FREE)
    price: Optional[Decimal] = Field(None, ge=0, description="价格")
    currency: str = Field(default="USD")
    subscription_tier: Optional[str] = Field(None, description="所需订阅等级")
    updated_at: datetime = Field(default_factory=datetime.now)


class PolicyUpdate(BaseModel):
    """设置变现策略请求"""

    monetization_type: MonetizationType = Field(...)
    price: Optional[Decimal] = Field(None, ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    subscription_tier: Optional[str] = Field(None, max_length=50)
    teacher_id: Optional[str] = Field(None, max_length=50)
    course_id: Optional[str] = Field(None, max_length=50)


class AccessRequirements(BaseModel):
    """内容访问要求, 只读投影"""

    content_type: ContentType
    content_id: str
    monetization_type: MonetizationType
    price: Optional[Decimal] = None
    student_price: Optional[Decimal] = Field(None, description="含平台加价的学员价格")
    currency: str = "USD"
    subscription_tier: Optional[str] = None
    requires_subscription: bool = False
    requires_purchase: bool = False


class AccessDecision(BaseModel):
    """访问判定结果"""

    user_id: str
    content_type: ContentType
    content_id: str
    has_access: bool
    requirements: AccessRequirements
