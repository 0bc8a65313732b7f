"""
按数据库会话组装服务
每个请求一个会话, 仓库和服务都绑定在这个会话上, 不持有全局状态
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories import (
    BookingRepository,
    CouponRepository,
    CourseRepository,
    EarningsRepository,
    MonetizationRepository,
    PaymentRepository,
    PayoutRepository,
    SubscriptionRepository
)
from app.services.booking_service import BookingService
from app.services.collaborators import (
    ActivitySource,
    CourseCatalog,
    DatabaseCourseDirectory,
    DatabaseSubscriptionProvider,
    EngagementSource,
    EnrollmentDirectory,
    LoggingNotifier,
    Notifier,
    SubscriptionStatusProvider
)
from app.services.common_cache import SimpleCache
from app.services.coupon_service import CouponService
from app.services.earnings_service import EarningsService
from app.services.entitlement_service import EntitlementService
from app.services.payment_service import PaymentService
from app.services.payout_service import PayoutService
from app.services.subscription_revenue_service import SubscriptionRevenueService


class ServiceContainer:
    """服务容器, 协作方未传入时使用数据库和日志的默认实现"""

    def __init__(
        self,
        db: AsyncSession,
        notifier: Optional[Notifier] = None,
        subscription_provider: Optional[SubscriptionStatusProvider] = None,
        activity_source: Optional[ActivitySource] = None,
        enrollment_directory: Optional[EnrollmentDirectory] = None,
        course_catalog: Optional[CourseCatalog] = None,
        engagement_source: Optional[EngagementSource] = None,
        policy_cache: Optional[SimpleCache] = None
    ):
        self.db = db
        self.payment_repo = PaymentRepository(db)
        self.booking_repo = BookingRepository(db)
        self.coupon_repo = CouponRepository(db)
        self.policy_repo = MonetizationRepository(db)
        self.earnings_repo = EarningsRepository(db)
        self.payout_repo = PayoutRepository(db)

        course_directory = DatabaseCourseDirectory(CourseRepository(db))
        self.notifier = notifier or LoggingNotifier()
        self.subscription_provider = subscription_provider or DatabaseSubscriptionProvider(SubscriptionRepository(db))

        self.coupons = CouponService(self.coupon_repo)
        self.bookings = BookingService(self.booking_repo, self.payment_repo)
        self.entitlements = EntitlementService(
            self.policy_repo,
            self.payment_repo,
            self.subscription_provider,
            policy_cache or SimpleCache(key_prefix="policy:")
        )
        self.earnings = EarningsService(
            self.earnings_repo,
            self.payout_repo,
            self.policy_repo,
            self.booking_repo,
            activity_source or course_directory,
            enrollment_directory or course_directory,
            course_catalog or course_directory
        )
        self.payments = PaymentService(
            self.payment_repo,
            self.booking_repo,
            self.coupons,
            self.entitlements,
            self.earnings,
            self.notifier
        )
        self.payouts = PayoutService(self.payout_repo, self.earnings_repo, self.earnings, self.notifier)
        self.subscription_revenue = SubscriptionRevenueService(
            self.earnings_repo,
            self.payment_repo,
            engagement_source or course_directory,
            self.earnings
        )
