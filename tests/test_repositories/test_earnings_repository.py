"""
收益Repository测试
"""

import pytest
from datetime import datetime
from decimal import Decimal

from app.models.database.earnings_db import PaymentEarningDB
from app.repositories.earnings_repository import EarningsRepository


def earning_row(payment_id: str, amount: str, course_id: str = "course_001", month: int = 5) -> PaymentEarningDB:
    return PaymentEarningDB(
        payment_id=payment_id,
        teacher_id="teacher_001",
        course_id=course_id,
        year=2024,
        month=month,
        source_type="MODULE",
        amount=Decimal(amount),
        recorded_at=datetime.now()
    )


@pytest.mark.asyncio
class TestEarningsRepository:
    """收益Repository测试类"""

    async def test_acquire_record_creates_once(self, db_session):
        repo = EarningsRepository(db_session)

        first = await repo.acquire_record("teacher_001", "course_001", 2024, 5)
        second = await repo.acquire_record("teacher_001", "course_001", 2024, 5)

        assert first.record_id == second.record_id
        assert first.teacher_share == Decimal("0")
        assert await repo.count_records("teacher_001", "course_001", 2024, 5) == 1

    async def test_update_record_overwrites(self, db_session):
        repo = EarningsRepository(db_session)
        db_record = await repo.acquire_record("teacher_001", "course_001", 2024, 5)

        await repo.update_record(db_record.record_id, {"gross_amount": Decimal("10"), "teacher_share": Decimal("8")})
        updated = await repo.update_record(db_record.record_id, {"gross_amount": Decimal("5"), "teacher_share": Decimal("4")})

        assert repo.to_model(updated).teacher_share == Decimal("4.00")
        assert await repo.sum_teacher_share("teacher_001") == Decimal("4.00")

    async def test_payment_earning_recorded_once(self, db_session):
        repo = EarningsRepository(db_session)

        assert await repo.add_payment_earning(earning_row("PAY_1", "30.00")) is True
        assert await repo.add_payment_earning(earning_row("PAY_1", "30.00")) is False
        assert await repo.sum_sales("teacher_001", "course_001", 2024, 5) == Decimal("30.00")

    async def test_sales_grouped_by_course_and_month(self, db_session):
        repo = EarningsRepository(db_session)
        await repo.add_payment_earning(earning_row("PAY_1", "30.00"))
        await repo.add_payment_earning(earning_row("PAY_2", "20.50"))
        await repo.add_payment_earning(earning_row("PAY_3", "99.00", course_id="course_002"))
        await repo.add_payment_earning(earning_row("PAY_4", "11.00", month=6))

        assert await repo.sum_sales("teacher_001", "course_001", 2024, 5) == Decimal("50.50")
        assert await repo.sum_sales("teacher_001", "course_003", 2024, 5) == Decimal("0.00")
        assert sorted(await repo.get_sales_course_ids("teacher_001", 2024, 5)) == ["course_001", "course_002"]

    async def test_lock_account_bumps_version(self, db_session):
        repo = EarningsRepository(db_session)

        await repo.lock_account("teacher_001")
        await repo.lock_account("teacher_001")

        account = await repo.get_account("teacher_001")
        assert account.version == 2

    async def test_account_snapshot(self, db_session):
        repo = EarningsRepository(db_session)
        await repo.lock_account("teacher_001")

        await repo.save_account_snapshot(
            "teacher_001",
            lifetime=Decimal("100"),
            paid_out=Decimal("30"),
            pending=Decimal("20"),
            available=Decimal("50")
        )

        account = await repo.get_account("teacher_001")
        assert account.available == Decimal("50")
        assert account.last_calculated is not None

    async def test_acquire_pool_creates_once(self, db_session):
        repo = EarningsRepository(db_session)

        first = await repo.acquire_pool(2024, 5)
        await repo.update_pool(first.pool_id, {"status": "DISTRIBUTED", "teacher_pool": Decimal("70")})
        second = await repo.acquire_pool(2024, 5)

        assert first.pool_id == second.pool_id
        # 重新计算时回到计算中状态
        assert second.status == "CALCULATING"
        assert repo.to_pool_model(second).teacher_pool == Decimal("70.00")
        assert await repo.count_pools(2024, 5) == 1
        assert await repo.get_pool(2024, 6) is None

    async def test_sum_by_source(self, db_session):
        repo = EarningsRepository(db_session)
        may = await repo.acquire_record("teacher_001", "course_001", 2024, 5)
        june = await repo.acquire_record("teacher_001", "course_001", 2024, 6)
        await repo.update_record(may.record_id, {
            "activity_gross": Decimal("10"),
            "sales_gross": Decimal("20"),
            "subscription_gross": Decimal("30"),
            "gross_amount": Decimal("60"),
            "teacher_share": Decimal("48")
        })
        await repo.update_record(june.record_id, {"sales_gross": Decimal("5"), "gross_amount": Decimal("5"),
                                                  "teacher_share": Decimal("4")})

        may_totals = await repo.sum_by_source("teacher_001", 2024, 5)
        all_totals = await repo.sum_by_source("teacher_001")

        assert may_totals == {
            "activity": Decimal("10.00"),
            "sales": Decimal("20.00"),
            "subscription": Decimal("30.00"),
            "total_gross": Decimal("60.00"),
            "teacher_share": Decimal("48.00"),
        }
        assert all_totals["sales"] == Decimal("25.00")
        assert all_totals["teacher_share"] == Decimal("52.00")
        assert (await repo.sum_by_source("teacher_002"))["total_gross"] == Decimal("0.00")
