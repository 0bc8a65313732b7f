"""
数据库模型包初始化文件
导入全部表定义, 保证 Base.metadata 完整
"""

from .payment_db import PaymentDB
from .booking_db import LessonSlotDB, BookingDB
from .coupon_db import CouponDB, CouponRedemptionDB
from .monetization_db import ContentMonetizationPolicyDB
from .earnings_db import MonthlyEarningsDB, PaymentEarningDB, SubscriptionRevenuePoolDB, TeacherAccountDB
from .payout_db import PayoutRequestDB
from .course_db import CourseDB, EnrollmentDB, CourseActivityDB
from .subscription_db import SubscriptionDB

__all__ = [
    "PaymentDB",
    "LessonSlotDB",
    "BookingDB",
    "CouponDB",
    "CouponRedemptionDB",
    "ContentMonetizationPolicyDB",
    "MonthlyEarningsDB",
    "PaymentEarningDB",
    "SubscriptionRevenuePoolDB",
    "TeacherAccountDB",
    "PayoutRequestDB",
    "CourseDB",
    "EnrollmentDB",
    "CourseActivityDB",
    "SubscriptionDB",
]
