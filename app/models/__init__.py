"""
数据模型包初始化文件
"""

from .payment import (
    Payment,
    PaymentCheckout,
    PaymentCreate,
    PaymentRequest,
    PaymentConfirm,
    PaymentStatus,
    PaymentStatusView,
    PaymentTargetType
)
from .booking import Booking, BookingDetails, BookingStatus, LessonSlot, SlotCreate
from .coupon import (
    Coupon,
    CouponApplication,
    CouponCreate,
    CouponPricing,
    CouponRedemption,
    CouponScope,
    CouponType
)
from .entitlement import (
    AccessDecision,
    AccessRequirements,
    ContentMonetizationPolicy,
    ContentType,
    MonetizationType,
    PolicyUpdate
)
from .earnings import (
    ActivityPolicy,
    AllCoursesEarnings,
    EarningsBySource,
    EarningsCalculationRequest,
    EarningsSummary,
    MonthlyEarningsRecord,
    PoolStatus,
    SubscriptionDistribution,
    SubscriptionDistributionRequest,
    SubscriptionRevenuePool,
    SubscriptionShare
)
from .payout import PayoutApprove, PayoutCreate, PayoutHistory, PayoutReject, PayoutRequest, PayoutStatus

__all__ = [
    "Payment",
    "PaymentCheckout",
    "PaymentCreate",
    "PaymentRequest",
    "PaymentConfirm",
    "PaymentStatus",
    "PaymentStatusView",
    "PaymentTargetType",
    "Booking",
    "BookingDetails",
    "BookingStatus",
    "LessonSlot",
    "SlotCreate",
    "Coupon",
    "CouponApplication",
    "CouponCreate",
    "CouponPricing",
    "CouponRedemption",
    "CouponScope",
    "CouponType",
    "AccessDecision",
    "AccessRequirements",
    "ContentMonetizationPolicy",
    "ContentType",
    "MonetizationType",
    "PolicyUpdate",
    "ActivityPolicy",
    "AllCoursesEarnings",
    "EarningsBySource",
    "EarningsCalculationRequest",
    "EarningsSummary",
    "MonthlyEarningsRecord",
    "PoolStatus",
    "SubscriptionDistribution",
    "SubscriptionDistributionRequest",
    "SubscriptionRevenuePool",
    "SubscriptionShare",
    "PayoutApprove",
    "PayoutCreate",
    "PayoutHistory",
    "PayoutReject",
    "PayoutRequest",
    "PayoutStatus",
]
