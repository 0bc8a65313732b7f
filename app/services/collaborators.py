"""
外部协作方接口及默认实现

订阅状态、选课关系、学习活跃度、课程目录由其他系统维护, 这里只约定读取接口;
通知发送不影响业务结果, 默认实现只写日志
"""

from typing import Dict, List, Optional, Protocol, Tuple
from datetime import date
import logging

from app.models.payment import Payment
from app.models.payout import PayoutRequest
from app.repositories.course_repository import CourseRepository, SubscriptionRepository

logger = logging.getLogger(__name__)


class SubscriptionStatusProvider(Protocol):
    async def is_active(self, user_id: str, tier: Optional[str] = None) -> bool:
        ...


class EnrollmentDirectory(Protocol):
    async def exists(self, student_id: str, course_id: str) -> bool:
        ...


class ActivitySource(Protocol):
    async def active_days(self, course_id: str, start: date, end: date) -> Dict[str, int]:
        ...


class EngagementSource(Protocol):
    async def course_engagement(self, start: date, end: date) -> Dict[Tuple[str, str], int]:
        ...


class CourseCatalog(Protocol):
    async def teacher_courses(self, teacher_id: str) -> List[str]:
        ...


class Notifier(Protocol):
    async def payment_confirmed(self, payment: Payment) -> None:
        ...

    async def payout_decided(self, payout: PayoutRequest) -> None:
        ...


class DatabaseSubscriptionProvider:
    """基于订阅同步表的订阅状态查询"""

    def __init__(self, subscription_repo: SubscriptionRepository):
        self.subscription_repo = subscription_repo

    async def is_active(self, user_id: str, tier: Optional[str] = None) -> bool:
        return await self.subscription_repo.has_active_subscription(user_id, tier)


class DatabaseCourseDirectory:
    """基于课程表的选课查询、活跃度统计和课程目录"""

    def __init__(self, course_repo: CourseRepository):
        self.course_repo = course_repo

    async def exists(self, student_id: str, course_id: str) -> bool:
        return await self.course_repo.enrollment_exists(student_id, course_id)

    async def active_days(self, course_id: str, start: date, end: date) -> Dict[str, int]:
        return await self.course_repo.get_active_days(course_id, start, end)

    async def course_engagement(self, start: date, end: date) -> Dict[Tuple[str, str], int]:
        return await self.course_repo.get_course_engagement(start, end)

    async def teacher_courses(self, teacher_id: str) -> List[str]:
        return await self.course_repo.get_teacher_course_ids(teacher_id)


class LoggingNotifier:
    """只记录日志的通知实现"""

    async def payment_confirmed(self, payment: Payment) -> None:
        logger.info(f"通知: 支付已完成 {payment.payment_id}, payer={payment.payer_id}, amount={payment.amount}")

    async def payout_decided(self, payout: PayoutRequest) -> None:
        logger.info(f"通知: 提现申请 {payout.payout_id} 审核结果 {payout.status.value}, teacher={payout.teacher_id}")
