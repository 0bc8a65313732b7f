"""
PayoutService 集成测试
"""

from decimal import Decimal

import pytest

from app.core.exceptions import ConflictError, InsufficientFundsError, NotFoundError, ValidationError
from app.models.payout import PayoutStatus
from app.services.payout_service import MAX_PAGE_SIZE


@pytest.mark.asyncio
class TestPayoutService:
    """提现服务测试类"""

    async def test_request_within_available(self, services, seed):
        """可用500: 提1000失败, 提500成功, 再提1失败"""
        await seed.monthly_earnings("teacher_001", Decimal("500.00"))

        with pytest.raises(InsufficientFundsError):
            await services.payouts.request_payout("teacher_001", Decimal("1000"))

        payout = await services.payouts.request_payout("teacher_001", Decimal("500"))
        assert payout.status == PayoutStatus.PENDING
        assert payout.amount == Decimal("500.00")
        assert payout.payout_id.startswith("PO_")

        summary = await services.earnings.get_teacher_earnings_summary("teacher_001")
        assert summary.available == Decimal("0.00")
        assert summary.pending == Decimal("500.00")

        with pytest.raises(InsufficientFundsError):
            await services.payouts.request_payout("teacher_001", Decimal("1"))

    async def test_request_full_balance_by_default(self, services, seed):
        await seed.monthly_earnings("teacher_001", Decimal("123.45"))

        payout = await services.payouts.request_payout("teacher_001", method="paypal", details={"email": "t@example.com"})

        assert payout.amount == Decimal("123.45")
        assert payout.method == "paypal"
        assert payout.details == {"email": "t@example.com"}

    async def test_request_without_balance(self, services):
        with pytest.raises(InsufficientFundsError):
            await services.payouts.request_payout("teacher_new")

    async def test_request_non_positive_amount(self, services, seed):
        await seed.monthly_earnings("teacher_001", Decimal("100.00"))

        with pytest.raises(ValidationError):
            await services.payouts.request_payout("teacher_001", Decimal("0"))
        with pytest.raises(ValidationError):
            await services.payouts.request_payout("teacher_001", Decimal("-5"))

    async def test_request_updates_account_snapshot(self, services, seed):
        await seed.monthly_earnings("teacher_001", Decimal("100.00"))

        await services.payouts.request_payout("teacher_001", Decimal("40"))

        account = await services.earnings_repo.get_account("teacher_001")
        assert account.version >= 1
        assert account.pending == Decimal("40.00")
        assert account.available == Decimal("60.00")

    async def test_approve(self, services, seed, notifier):
        await seed.monthly_earnings("teacher_001", Decimal("500.00"))
        payout = await services.payouts.request_payout("teacher_001", Decimal("300"))

        approved = await services.payouts.approve_payout(payout.payout_id, "admin_001", "bank_txn_1")

        assert approved.status == PayoutStatus.APPROVED
        assert approved.decided_by == "admin_001"
        assert approved.external_transaction_id == "bank_txn_1"
        summary = await services.earnings.get_teacher_earnings_summary("teacher_001")
        assert summary.paid_out == Decimal("300.00")
        assert summary.pending == Decimal("0.00")
        assert summary.available == Decimal("200.00")
        notifier.payout_decided.assert_called_once()

    async def test_approve_twice_is_idempotent(self, services, seed, notifier):
        await seed.monthly_earnings("teacher_001", Decimal("500.00"))
        payout = await services.payouts.request_payout("teacher_001", Decimal("300"))

        first = await services.payouts.approve_payout(payout.payout_id, "admin_001")
        second = await services.payouts.approve_payout(payout.payout_id, "admin_002")

        assert second.status == PayoutStatus.APPROVED
        assert second.decided_by == first.decided_by == "admin_001"
        summary = await services.earnings.get_teacher_earnings_summary("teacher_001")
        assert summary.paid_out == Decimal("300.00")
        notifier.payout_decided.assert_called_once()

    async def test_approve_rechecks_balance(self, services, seed):
        """审批前累计收益被下调, 审批应失败"""
        db_record = await seed.monthly_earnings("teacher_001", Decimal("500.00"))
        payout = await services.payouts.request_payout("teacher_001", Decimal("400"))

        await services.earnings_repo.update_record(db_record.record_id, {"teacher_share": Decimal("100.00")})

        with pytest.raises(InsufficientFundsError):
            await services.payouts.approve_payout(payout.payout_id, "admin_001")

        current = await services.payout_repo.get_by_payout_id(payout.payout_id, refresh=True)
        assert current.status == PayoutStatus.PENDING.value

    async def test_reject_releases_balance(self, services, seed):
        await seed.monthly_earnings("teacher_001", Decimal("500.00"))
        payout = await services.payouts.request_payout("teacher_001", Decimal("500"))

        rejected = await services.payouts.reject_payout(payout.payout_id, "admin_001", "银行信息有误")

        assert rejected.status == PayoutStatus.REJECTED
        assert rejected.reason == "银行信息有误"
        summary = await services.earnings.get_teacher_earnings_summary("teacher_001")
        assert summary.available == Decimal("500.00")

        again = await services.payouts.request_payout("teacher_001", Decimal("500"))
        assert again.status == PayoutStatus.PENDING

    async def test_reject_twice_is_idempotent(self, services, seed):
        await seed.monthly_earnings("teacher_001", Decimal("500.00"))
        payout = await services.payouts.request_payout("teacher_001", Decimal("100"))

        await services.payouts.reject_payout(payout.payout_id, "admin_001", "first")
        again = await services.payouts.reject_payout(payout.payout_id, "admin_002", "second")

        assert again.status == PayoutStatus.REJECTED
        assert again.reason == "first"

    async def test_reject_approved_payout(self, services, seed):
        await seed.monthly_earnings("teacher_001", Decimal("500.00"))
        payout = await services.payouts.request_payout("teacher_001", Decimal("100"))
        await services.payouts.approve_payout(payout.payout_id, "admin_001")

        with pytest.raises(ConflictError):
            await services.payouts.reject_payout(payout.payout_id, "admin_001")

    async def test_approve_rejected_payout_is_noop(self, services, seed):
        await seed.monthly_earnings("teacher_001", Decimal("500.00"))
        payout = await services.payouts.request_payout("teacher_001", Decimal("100"))
        await services.payouts.reject_payout(payout.payout_id, "admin_001")

        result = await services.payouts.approve_payout(payout.payout_id, "admin_001")

        assert result.status == PayoutStatus.REJECTED

    async def test_unknown_payout(self, services):
        with pytest.raises(NotFoundError):
            await services.payouts.approve_payout("PO_missing", "admin_001")
        with pytest.raises(NotFoundError):
            await services.payouts.reject_payout("PO_missing", "admin_001")

    async def test_balance_invariant_over_lifecycle(self, services, seed):
        await seed.monthly_earnings("teacher_001", Decimal("1000.00"))
        p1 = await services.payouts.request_payout("teacher_001", Decimal("100"))
        p2 = await services.payouts.request_payout("teacher_001", Decimal("200"))
        await services.payouts.request_payout("teacher_001", Decimal("300"))
        await services.payouts.approve_payout(p1.payout_id, "admin_001")
        await services.payouts.reject_payout(p2.payout_id, "admin_001")

        summary = await services.earnings.get_teacher_earnings_summary("teacher_001")

        assert summary.paid_out == Decimal("100.00")
        assert summary.pending == Decimal("300.00")
        assert summary.available == Decimal("600.00")
        assert summary.paid_out + summary.pending + summary.available == summary.lifetime

    async def test_history_and_pending_list(self, services, seed):
        await seed.monthly_earnings("teacher_001", Decimal("1000.00"))
        for _ in range(3):
            await services.payouts.request_payout("teacher_001", Decimal("10"))

        page = await services.payouts.get_payout_history("teacher_001", page=1, limit=2)
        capped = await services.payouts.get_payout_history("teacher_001", limit=10_000)
        pending = await services.payouts.list_pending_payouts()

        assert page.total == 3
        assert len(page.items) == 2
        assert capped.limit == MAX_PAGE_SIZE
        assert len(pending) == 3
