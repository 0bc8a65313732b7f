"""
SubscriptionRevenueService 集成测试
"""

import asyncio
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from app.core.config import ActivityPayoutTier
from app.core.exceptions import ValidationError
from app.models.earnings import ActivityPolicy, PoolStatus
from app.services.container import ServiceContainer
from app.services.subscription_revenue_service import split_pool


# 活跃天数不够任何档位, 月度重算时活跃计费为0
NO_ACTIVITY_POLICY = ActivityPolicy(
    per_student_rate=Decimal("10"),
    tiers=[ActivityPayoutTier(min_days=15, fraction=Decimal("1"))]
)


async def seed_may_subscriptions(seed):
    """5月订阅收入100, course_001活跃3天, course_002活跃1天"""
    await seed.course("course_001", teacher_id="teacher_001")
    await seed.course("course_002", teacher_id="teacher_002")
    await seed.activity("s1", "course_001", date(2024, 5, 1), 3)
    await seed.activity("s2", "course_002", date(2024, 5, 20), 1)
    await seed.payment("SUB_1", target_type="SUBSCRIPTION", target_id="pro",
                       amount=Decimal("60.00"), paid_at=datetime(2024, 5, 2, 9, 0))
    await seed.payment("SUB_2", target_type="SUBSCRIPTION", target_id="pro", payer_id="student_002",
                       amount=Decimal("40.00"), paid_at=datetime(2024, 5, 31, 23, 0))
    # 6月的订阅和未完成的订阅都不计入
    await seed.payment("SUB_3", target_type="SUBSCRIPTION", target_id="pro",
                       amount=Decimal("25.00"), paid_at=datetime(2024, 6, 1, 0, 0))
    await seed.payment("SUB_4", target_type="SUBSCRIPTION", target_id="pro", amount=Decimal("80.00"))


@pytest.mark.asyncio
class TestSubscriptionRevenueService:
    """订阅收入分配测试类"""

    async def test_split_by_engagement(self):
        shares = split_pool(Decimal("70.00"), {("teacher_002", "course_002"): 1, ("teacher_001", "course_001"): 3})

        assert [(s.course_id, s.amount) for s in shares] == [
            ("course_001", Decimal("52.50")),
            ("course_002", Decimal("17.50")),
        ]

    async def test_split_rounds_down(self):
        shares = split_pool(Decimal("10.00"), {("t1", "c1"): 1, ("t2", "c2"): 1, ("t3", "c3"): 1})

        assert [s.amount for s in shares] == [Decimal("3.33")] * 3
        assert split_pool(Decimal("10.00"), {}) == []

    async def test_calculate_pool(self, services, seed):
        await seed_may_subscriptions(seed)

        pool = await services.subscription_revenue.calculate_monthly_pool(2024, 5)

        assert pool.total_revenue == Decimal("100.00")
        assert pool.platform_fee == Decimal("30.00")
        assert pool.teacher_pool == Decimal("70.00")
        assert pool.total_engagement == 4
        assert pool.status == PoolStatus.CALCULATING

    async def test_distribute(self, services, seed):
        await seed_may_subscriptions(seed)

        result = await services.subscription_revenue.distribute_revenue(2024, 5)

        assert result.pool.status == PoolStatus.DISTRIBUTED
        assert result.pool.teacher_count == 2
        assert result.pool.distributed_amount == Decimal("70.00")
        assert result.pool.distributed_at is not None

        first = await services.earnings_repo.get_record("teacher_001", "course_001", 2024, 5, refresh=True)
        second = await services.earnings_repo.get_record("teacher_002", "course_002", 2024, 5, refresh=True)
        assert first.subscription_gross == Decimal("52.50")
        assert first.teacher_share == Decimal("42.00")
        assert second.subscription_gross == Decimal("17.50")
        assert second.teacher_share == Decimal("14.00")

    async def test_redistribute_overwrites(self, services, seed):
        await seed_may_subscriptions(seed)

        first = await services.subscription_revenue.distribute_revenue(2024, 5)
        second = await services.subscription_revenue.distribute_revenue(2024, 5)

        assert first.pool.pool_id == second.pool.pool_id
        assert [s.amount for s in first.shares] == [s.amount for s in second.shares]
        record = await services.earnings_repo.get_record("teacher_001", "course_001", 2024, 5, refresh=True)
        assert record.subscription_gross == Decimal("52.50")
        assert await services.earnings_repo.count_records("teacher_001", "course_001", 2024, 5) == 1
        assert await services.earnings_repo.count_pools(2024, 5) == 1

    async def test_course_without_engagement_zeroed(self, db_session, seed, notifier):
        await seed.payment("SUB_1", target_type="SUBSCRIPTION", target_id="pro",
                           amount=Decimal("100.00"), paid_at=datetime(2024, 5, 2))
        engagement = AsyncMock()
        engagement.course_engagement = AsyncMock(side_effect=[
            {("teacher_001", "course_001"): 1, ("teacher_002", "course_002"): 1},
            {("teacher_001", "course_001"): 1},
        ])
        container = ServiceContainer(db_session, notifier=notifier, engagement_source=engagement)

        await container.subscription_revenue.distribute_revenue(2024, 5)
        result = await container.subscription_revenue.distribute_revenue(2024, 5)

        assert result.pool.teacher_count == 1
        kept = await container.earnings_repo.get_record("teacher_001", "course_001", 2024, 5, refresh=True)
        dropped = await container.earnings_repo.get_record("teacher_002", "course_002", 2024, 5, refresh=True)
        assert kept.subscription_gross == Decimal("70.00")
        assert dropped.subscription_gross == Decimal("0.00")
        assert dropped.teacher_share == Decimal("0.00")

    async def test_monthly_recalculation_keeps_subscription_share(self, services, seed):
        await seed_may_subscriptions(seed)
        await services.subscription_revenue.distribute_revenue(2024, 5)

        record = await services.earnings.calculate_monthly_earnings(
            "teacher_001", "course_001", 2024, 5, NO_ACTIVITY_POLICY
        )

        assert record.activity_gross == Decimal("0.00")
        assert record.subscription_gross == Decimal("52.50")
        assert record.gross_amount == Decimal("52.50")
        assert record.teacher_share == Decimal("42.00")

    async def test_no_engagement(self, services, seed):
        await seed.payment("SUB_1", target_type="SUBSCRIPTION", target_id="pro",
                           amount=Decimal("100.00"), paid_at=datetime(2024, 5, 2))

        result = await services.subscription_revenue.distribute_revenue(2024, 5)

        assert result.shares == []
        assert result.pool.status == PoolStatus.DISTRIBUTED
        assert result.pool.teacher_pool == Decimal("70.00")
        assert result.pool.distributed_amount == Decimal("0.00")

    async def test_concurrent_distribution_single_pool(self, session_maker, db_session, seed, notifier):
        await seed_may_subscriptions(seed)
        await db_session.commit()

        async def distribute():
            async with session_maker() as session:
                container = ServiceContainer(session, notifier=notifier)
                result = await container.subscription_revenue.distribute_revenue(2024, 5)
                await session.commit()
                return result

        first, second = await asyncio.gather(distribute(), distribute())

        assert first.pool.pool_id == second.pool.pool_id
        async with session_maker() as session:
            container = ServiceContainer(session, notifier=notifier)
            assert await container.earnings_repo.count_pools(2024, 5) == 1
            assert await container.earnings_repo.count_records("teacher_001", "course_001", 2024, 5) == 1
            record = await container.earnings_repo.get_record("teacher_001", "course_001", 2024, 5)
            assert record.subscription_gross == Decimal("52.50")

    async def test_earnings_by_source(self, services, seed):
        await seed_may_subscriptions(seed)
        await seed.monthly_earnings("teacher_001", Decimal("20.00"), course_id="course_009")
        await services.subscription_revenue.distribute_revenue(2024, 5)

        sources = await services.earnings.get_earnings_by_source("teacher_001", 2024, 5)

        assert sources.sales == Decimal("20.00")
        assert sources.subscription == Decimal("52.50")
        assert sources.total_gross == Decimal("72.50")
        assert sources.teacher_share == Decimal("62.00")

        other_month = await services.earnings.get_earnings_by_source("teacher_001", 2024, 6)
        assert other_month.total_gross == Decimal("0.00")

    async def test_invalid_month(self, services):
        with pytest.raises(ValidationError):
            await services.subscription_revenue.distribute_revenue(2024, 13)
        with pytest.raises(ValidationError):
            await services.earnings.get_earnings_by_source("teacher_001", 2024, 0)
