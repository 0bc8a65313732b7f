"""
订阅收入分配服务

当月已完成的订阅支付汇总成收入池, 扣除平台费后按各课程的学员活跃天数分给授课老师。
分配结果写入月度收益记录的订阅部分, 同一个月重复分配覆盖上一次的结果
"""

from datetime import datetime
from decimal import ROUND_DOWN, Decimal
from typing import Dict, List, Tuple
import logging

from app.core.config import settings
from app.core.money import CENT, ZERO, to_money
from app.models.earnings import PoolStatus, SubscriptionDistribution, SubscriptionRevenuePool, SubscriptionShare
from app.models.payment import PaymentTargetType
from app.models.database.earnings_db import SubscriptionRevenuePoolDB
from app.repositories.earnings_repository import EarningsRepository
from app.repositories.payment_repository import PaymentRepository
from app.services.collaborators import EngagementSource
from app.services.earnings_service import EarningsService, month_window

logger = logging.getLogger(__name__)


def split_pool(teacher_pool: Decimal, engagement: Dict[Tuple[str, str], int]) -> List[SubscriptionShare]:
    """按活跃天数占比切分, 每份向下取整到分, 合计不超过分配池"""
    total = sum(engagement.values())
    if total <= 0 or teacher_pool <= 0:
        return []

    shares = []
    for (teacher_id, course_id), days in sorted(engagement.items()):
        amount = (teacher_pool * days / total).quantize(CENT, rounding=ROUND_DOWN)
        if amount > 0:
            shares.append(SubscriptionShare(
                teacher_id=teacher_id,
                course_id=course_id,
                engagement=days,
                amount=amount
            ))
    return shares


class SubscriptionRevenueService:
    """订阅收入池计算与分配"""

    def __init__(
        self,
        earnings_repo: EarningsRepository,
        payment_repo: PaymentRepository,
        engagement_source: EngagementSource,
        earnings_service: EarningsService
    ):
        self.earnings_repo = earnings_repo
        self.payment_repo = payment_repo
        self.engagement_source = engagement_source
        self.earnings_service = earnings_service
        self.fee_ratio = settings.subscription_platform_fee_ratio

    async def calculate_monthly_pool(self, year: int, month: int) -> SubscriptionRevenuePool:
        db_pool, _ = await self._calculate(year, month)
        return self.earnings_repo.to_pool_model(db_pool)

    async def _calculate(self, year: int, month: int) -> Tuple[SubscriptionRevenuePoolDB, Dict[Tuple[str, str], int]]:
        start, end = month_window(year, month)
        db_pool = await self.earnings_repo.acquire_pool(year, month)

        total_revenue = await self.payment_repo.sum_completed(
            PaymentTargetType.SUBSCRIPTION.value,
            datetime(start.year, start.month, start.day),
            datetime(end.year, end.month, end.day)
        )
        platform_fee = to_money(total_revenue * self.fee_ratio)
        engagement = await self.engagement_source.course_engagement(start, end)

        db_pool = await self.earnings_repo.update_pool(db_pool.pool_id, {
            "total_revenue": total_revenue,
            "platform_fee": platform_fee,
            "teacher_pool": total_revenue - platform_fee,
            "total_engagement": sum(engagement.values()),
            "computed_at": datetime.now()
        })
        return db_pool, engagement

    async def distribute_revenue(self, year: int, month: int) -> SubscriptionDistribution:
        """计算收入池并写入各课程当月收益"""
        db_pool, engagement = await self._calculate(year, month)
        shares = split_pool(to_money(db_pool.teacher_pool), engagement)

        # 上次分到而这次没有活跃的课程清零
        allocated = {(share.teacher_id, share.course_id) for share in shares}
        for db_record in await self.earnings_repo.get_subscription_records(year, month):
            if (db_record.teacher_id, db_record.course_id) not in allocated:
                await self.earnings_service.apply_subscription_share(
                    db_record.teacher_id, db_record.course_id, year, month, ZERO
                )

        for share in shares:
            await self.earnings_service.apply_subscription_share(
                share.teacher_id, share.course_id, year, month, share.amount
            )

        distributed = to_money(sum((share.amount for share in shares), ZERO))
        db_pool = await self.earnings_repo.update_pool(db_pool.pool_id, {
            "status": PoolStatus.DISTRIBUTED.value,
            "teacher_count": len({share.teacher_id for share in shares}),
            "distributed_amount": distributed,
            "distributed_at": datetime.now()
        })

        logger.info(
            f"订阅收入已分配: {year}-{month:02d}, 收入={db_pool.total_revenue}, "
            f"分配池={db_pool.teacher_pool}, 已分配={distributed}, 课程数={len(shares)}"
        )
        return SubscriptionDistribution(pool=self.earnings_repo.to_pool_model(db_pool), shares=shares)
