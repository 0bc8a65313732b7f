"""
支付Repository测试
"""

import pytest
from sqlalchemy.exc import IntegrityError
from datetime import datetime, timedelta
from decimal import Decimal

from app.models.database.payment_db import PaymentDB
from app.repositories.payment_repository import PaymentRepository


def payment_row(payment_id: str, target_id: str = "module_001", target_type: str = "MODULE",
                created_at: datetime = None, is_exclusive: bool = False) -> PaymentDB:
    now = created_at or datetime.now()
    return PaymentDB(
        payment_id=payment_id,
        payer_id="student_001",
        target_type=target_type,
        target_id=target_id,
        original_amount=Decimal("100.00"),
        discount_amount=Decimal("0"),
        amount=Decimal("100.00"),
        currency="USD",
        coupon_code=None,
        is_exclusive=is_exclusive,
        status="PENDING",
        provider="stripe",
        external_transaction_id=None,
        due_at=None,
        paid_at=None,
        cancelled_at=None,
        created_at=now,
        updated_at=now
    )


@pytest.mark.asyncio
class TestPaymentRepository:
    """支付Repository测试类"""

    async def test_mark_completed_once(self, db_session):
        repo = PaymentRepository(db_session)
        await repo.create(payment_row("PAY_1"))

        assert await repo.mark_completed("PAY_1", datetime.now(), "txn_1") is True
        assert await repo.mark_completed("PAY_1", datetime.now(), "txn_2") is False

        payment = await repo.get_by_payment_id("PAY_1", refresh=True)
        assert payment.status == "COMPLETED"
        assert payment.external_transaction_id == "txn_1"

    async def test_cancel_does_not_touch_completed(self, db_session):
        repo = PaymentRepository(db_session)
        await repo.create(payment_row("PAY_1"))
        await repo.mark_completed("PAY_1", datetime.now())

        assert await repo.mark_cancelled("PAY_1", datetime.now()) is False
        payment = await repo.get_by_payment_id("PAY_1", refresh=True)
        assert payment.status == "COMPLETED"
        assert payment.cancelled_at is None

    async def test_find_completed_filters_type_and_status(self, db_session):
        repo = PaymentRepository(db_session)
        await repo.create(payment_row("PAY_PENDING"))
        await repo.create(payment_row("PAY_PROGRAM", target_type="PROGRAM"))
        await repo.mark_completed("PAY_PROGRAM", datetime.now())

        assert await repo.find_completed("student_001", "module_001", ["MODULE"]) is None
        found = await repo.find_completed("student_001", "module_001", ["PROGRAM"])
        assert found.payment_id == "PAY_PROGRAM"
        assert (await repo.find_completed("student_001", "module_001")).payment_id == "PAY_PROGRAM"

    async def test_latest_for_target(self, db_session):
        repo = PaymentRepository(db_session)
        await repo.create(payment_row("PAY_OLD", created_at=datetime.now() - timedelta(hours=1)))
        await repo.create(payment_row("PAY_NEW"))

        latest = await repo.get_latest_for_target("student_001", "MODULE", "module_001")

        assert latest.payment_id == "PAY_NEW"

    async def test_payer_payments_paging(self, db_session):
        repo = PaymentRepository(db_session)
        base = datetime.now()
        for i in range(5):
            await repo.create(payment_row(f"PAY_{i}", target_id=f"module_{i}", created_at=base + timedelta(minutes=i)))

        first_page = await repo.get_payer_payments("student_001", limit=2)
        second_page = await repo.get_payer_payments("student_001", limit=2, offset=2)

        assert [p.payment_id for p in first_page] == ["PAY_4", "PAY_3"]
        assert [p.payment_id for p in second_page] == ["PAY_2", "PAY_1"]

    async def test_exclusive_purchase_completes_once(self, db_session):
        """付费内容同一付款人只能有一笔已完成支付"""
        repo = PaymentRepository(db_session)
        await repo.create(payment_row("PAY_A", is_exclusive=True))
        await repo.create(payment_row("PAY_B", is_exclusive=True))

        assert await repo.mark_completed("PAY_A", datetime.now()) is True
        with pytest.raises(IntegrityError):
            await repo.mark_completed("PAY_B", datetime.now())

        # 冲突只回滚这一步, 会话仍可使用
        payment = await repo.get_by_payment_id("PAY_B", refresh=True)
        assert payment.status == "PENDING"

    async def test_non_exclusive_purchase_completes_repeatedly(self, db_session):
        repo = PaymentRepository(db_session)
        await repo.create(payment_row("PAY_A"))
        await repo.create(payment_row("PAY_B"))

        assert await repo.mark_completed("PAY_A", datetime.now()) is True
        assert await repo.mark_completed("PAY_B", datetime.now()) is True

    async def test_cancel_pending_for_target(self, db_session):
        repo = PaymentRepository(db_session)
        await repo.create(payment_row("PAY_DONE", target_type="BOOKING", target_id="BK_1"))
        await repo.create(payment_row("PAY_OPEN", target_type="BOOKING", target_id="BK_1"))
        await repo.create(payment_row("PAY_OTHER", target_type="BOOKING", target_id="BK_2"))
        await repo.mark_completed("PAY_DONE", datetime.now())

        assert await repo.cancel_pending_for_target("BOOKING", "BK_1", datetime.now()) == 1

        statuses = {
            payment_id: (await repo.get_by_payment_id(payment_id, refresh=True)).status
            for payment_id in ("PAY_DONE", "PAY_OPEN", "PAY_OTHER")
        }
        assert statuses == {"PAY_DONE": "COMPLETED", "PAY_OPEN": "CANCELLED", "PAY_OTHER": "PENDING"}

    async def test_sum_completed_in_window(self, db_session):
        repo = PaymentRepository(db_session)
        await repo.create(payment_row("SUB_MAY", target_type="SUBSCRIPTION", target_id="pro"))
        await repo.create(payment_row("SUB_JUNE", target_type="SUBSCRIPTION", target_id="pro"))
        await repo.create(payment_row("SUB_OPEN", target_type="SUBSCRIPTION", target_id="pro"))
        await repo.mark_completed("SUB_MAY", datetime(2024, 5, 31, 23, 59))
        await repo.mark_completed("SUB_JUNE", datetime(2024, 6, 1, 0, 0))

        total = await repo.sum_completed("SUBSCRIPTION", datetime(2024, 5, 1), datetime(2024, 6, 1))

        assert total == Decimal("100.00")
