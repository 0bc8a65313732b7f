"""
仓库包初始化文件 - 数据库访问层
"""

from .payment_repository import PaymentRepository
from .booking_repository import BookingRepository
from .coupon_repository import CouponRepository
from .monetization_repository import MonetizationRepository
from .earnings_repository import EarningsRepository
from .payout_repository import PayoutRepository
from .course_repository import CourseRepository, SubscriptionRepository

__all__ = [
    "PaymentRepository",
    "BookingRepository",
    "CouponRepository",
    "MonetizationRepository",
    "EarningsRepository",
    "PayoutRepository",
    "CourseRepository",
    "SubscriptionRepository",
]
