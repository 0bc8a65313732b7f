"""
优惠券Repository数据库操作测试
"""

import pytest
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from app.models.database.coupon_db import CouponRedemptionDB
from app.repositories.coupon_repository import CouponRepository


def redemption(coupon_id: str, payment_id: str, redemption_id: str) -> CouponRedemptionDB:
    return CouponRedemptionDB(
        redemption_id=redemption_id,
        coupon_id=coupon_id,
        code="SAVE20",
        user_id="student_001",
        payment_id=payment_id,
        discount_amount=Decimal("20.00"),
        redeemed_at=datetime.now()
    )


@pytest.mark.asyncio
class TestCouponRepository:
    """优惠券Repository测试类"""

    async def test_get_by_code_case_insensitive(self, db_session, seed):
        db_coupon = await seed.coupon("SAVE20")
        repo = CouponRepository(db_session)

        assert (await repo.get_by_code("save20")).coupon_id == db_coupon.coupon_id
        assert (await repo.get_by_code(" Save20 ")).coupon_id == db_coupon.coupon_id
        assert await repo.get_by_code("SAVE21") is None

    async def test_increment_usage_respects_limit(self, db_session, seed):
        db_coupon = await seed.coupon("TWICE", usage_limit=2)
        repo = CouponRepository(db_session)

        results = [await repo.increment_usage(db_coupon.coupon_id, datetime.now()) for _ in range(3)]

        assert results == [True, True, False]
        refreshed = await repo.get_by_code("TWICE", refresh=True)
        assert refreshed.usage_count == 2

    async def test_increment_usage_unlimited(self, db_session, seed):
        db_coupon = await seed.coupon("FOREVER")
        repo = CouponRepository(db_session)

        for _ in range(5):
            assert await repo.increment_usage(db_coupon.coupon_id, datetime.now())

    async def test_one_redemption_per_payment(self, db_session, seed):
        db_coupon = await seed.coupon("SAVE20")
        repo = CouponRepository(db_session)

        await repo.add_redemption(redemption(db_coupon.coupon_id, "PAY_1", "RDM_1"))
        with pytest.raises(IntegrityError):
            await repo.add_redemption(redemption(db_coupon.coupon_id, "PAY_1", "RDM_2"))

        # savepoint回滚后会话仍可用
        existing = await repo.get_redemption_by_payment("PAY_1")
        assert existing.redemption_id == "RDM_1"

    async def test_list_coupons(self, db_session, seed):
        await seed.coupon("ACTIVE")
        await seed.coupon("DISABLED", is_active=False)
        repo = CouponRepository(db_session)

        active_codes = [c.code for c in await repo.list_coupons()]
        all_codes = [c.code for c in await repo.list_coupons(include_inactive=True)]

        assert active_codes == ["ACTIVE"]
        assert sorted(all_codes) == ["ACTIVE", "DISABLED"]
