"""
老师收益相关数据模型
"""

from decimal import Decimal
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, validator
from enum import Enum

from app.core.config import ActivityPayoutTier, settings


class ActivityPolicy(BaseModel):
    """活跃计费策略: 单个学员费率与分档表"""

    per_student_rate: Decimal = Field(..., ge=0)
    tiers: List[ActivityPayoutTier] = Field(default_factory=list)

    @classmethod
    def from_settings(cls) -> "ActivityPolicy":
        return cls(
            per_student_rate=settings.per_student_rate,
            tiers=list(settings.activity_payout_tiers)
        )

    def fraction_for(self, active_days: int) -> Decimal:
        """取满足条件的最高档位, 都不满足时为0"""
        matched = [tier for tier in self.tiers if active_days >= tier.min_days]
        if not matched:
            return Decimal("0")
        return max(matched, key=lambda tier: tier.min_days).fraction


class MonthlyEarningsRecord(BaseModel):
    """老师单门课程单月收益"""

    record_id: str
    teacher_id: str
    course_id: str
    year: int
    month: int = Field(..., ge=1, le=12)
    active_student_count: int = 0
    activity_gross: Decimal = Decimal("0.00")
    sales_gross: Decimal = Decimal("0.00")
    subscription_gross: Decimal = Decimal("0.00")
    gross_amount: Decimal = Decimal("0.00")
    teacher_share: Decimal = Decimal("0.00")
    currency: str = "USD"
    computed_at: datetime = Field(default_factory=datetime.now)


class EarningsCalculationRequest(BaseModel):
    """触发收益计算请求, 不传course_id时计算老师名下全部课程"""

    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(...)
    course_id: Optional[str] = None
    policy: Optional[ActivityPolicy] = None


class AllCoursesEarnings(BaseModel):
    """老师全部课程的月度汇总"""

    teacher_id: str
    year: int
    month: int
    course_count: int = 0
    total_gross: Decimal = Decimal("0.00")
    total_teacher_share: Decimal = Decimal("0.00")
    records: List[MonthlyEarningsRecord] = Field(default_factory=list)


class EarningsSummary(BaseModel):
    """老师收益摘要: paid_out + pending + available == lifetime"""

    teacher_id: str
    lifetime: Decimal
    paid_out: Decimal
    pending: Decimal
    available: Decimal
    currency: str = "USD"

    @validator("available")
    def check_balance(cls, v, values):
        if {"lifetime", "paid_out", "pending"} <= set(values):
            expected = values["lifetime"] - values["paid_out"] - values["pending"]
            if v != expected:
                raise ValueError("可提现金额与累计收益不一致")
        return v


class EarningsBySource(BaseModel):
    """按来源汇总的老师收益, 不传年月时为全部月份"""

    teacher_id: str
    year: Optional[int] = None
    month: Optional[int] = None
    activity: Decimal = Decimal("0.00")
    sales: Decimal = Decimal("0.00")
    subscription: Decimal = Decimal("0.00")
    total_gross: Decimal = Decimal("0.00")
    teacher_share: Decimal = Decimal("0.00")
    currency: str = "USD"


class PoolStatus(str, Enum):
    """订阅收入池状态"""
    CALCULATING = "CALCULATING"
    DISTRIBUTED = "DISTRIBUTED"


class SubscriptionRevenuePool(BaseModel):
    """单月订阅收入池"""

    pool_id: str
    year: int
    month: int = Field(..., ge=1, le=12)
    total_revenue: Decimal = Decimal("0.00")
    platform_fee: Decimal = Decimal("0.00")
    teacher_pool: Decimal = Decimal("0.00")
    total_engagement: int = 0
    status: PoolStatus = PoolStatus.CALCULATING
    teacher_count: int = 0
    distributed_amount: Decimal = Decimal("0.00")
    computed_at: datetime = Field(default_factory=datetime.now)
    distributed_at: Optional[datetime] = None


class SubscriptionShare(BaseModel):
    """单门课程分到的订阅收入"""

    teacher_id: str
    course_id: str
    engagement: int
    amount: Decimal


class SubscriptionDistribution(BaseModel):
    pool: SubscriptionRevenuePool
    shares: List[SubscriptionShare] = Field(default_factory=list)


class SubscriptionDistributionRequest(BaseModel):
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(...)
