"""
服务包初始化文件
"""

from .booking_service import BookingService
from .coupon_service import CouponService
from .earnings_service import EarningsService
from .entitlement_service import EntitlementService
from .payment_service import PaymentService
from .payout_service import PayoutService
from .container import ServiceContainer

__all__ = [
    "BookingService",
    "CouponService",
    "EarningsService",
    "EntitlementService",
    "PaymentService",
    "PayoutService",
    "ServiceContainer",
]
