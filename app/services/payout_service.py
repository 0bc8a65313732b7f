"""
提现审核服务
同一老师的余额变更通过结算账户行串行化, 审批时在同一事务里重新校验余额
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
from decimal import Decimal
import logging
import uuid

from app.core.config import settings
from app.core.exceptions import ConflictError, InsufficientFundsError, NotFoundError, ValidationError
from app.core.money import ZERO, to_money
from app.models.earnings import EarningsSummary
from app.models.payout import PayoutHistory, PayoutRequest, PayoutStatus
from app.models.database.payout_db import PayoutRequestDB
from app.repositories.earnings_repository import EarningsRepository
from app.repositories.payout_repository import PayoutRepository
from app.services.collaborators import Notifier
from app.services.earnings_service import EarningsService

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class PayoutService:
    """提现业务服务"""

    def __init__(
        self,
        payout_repo: PayoutRepository,
        earnings_repo: EarningsRepository,
        earnings_service: EarningsService,
        notifier: Notifier
    ):
        self.payout_repo = payout_repo
        self.earnings_repo = earnings_repo
        self.earnings_service = earnings_service
        self.notifier = notifier

    async def _locked_summary(self, teacher_id: str) -> EarningsSummary:
        await self.earnings_repo.lock_account(teacher_id)
        return await self.earnings_service.get_teacher_earnings_summary(teacher_id)

    async def _refresh_snapshot(self, teacher_id: str) -> EarningsSummary:
        summary = await self.earnings_service.get_teacher_earnings_summary(teacher_id)
        await self.earnings_repo.save_account_snapshot(
            teacher_id,
            lifetime=summary.lifetime,
            paid_out=summary.paid_out,
            pending=summary.pending,
            available=summary.available
        )
        return summary

    async def request_payout(
        self,
        teacher_id: str,
        amount: Optional[Decimal] = None,
        method: str = "bank_transfer",
        details: Optional[Dict[str, Any]] = None
    ) -> PayoutRequest:
        """提交提现申请, 未指定金额时提取全部可用余额"""
        if amount is not None:
            amount = to_money(amount)
            if amount <= 0:
                raise ValidationError("提现金额必须大于0", {"amount": str(amount)})

        summary = await self._locked_summary(teacher_id)
        if summary.available <= ZERO:
            logger.warning(f"提现被拒绝, 无可用余额: teacher={teacher_id}")
            raise InsufficientFundsError("没有可提现的余额", {"available": str(summary.available)})

        if amount is None:
            amount = summary.available
        elif amount > summary.available:
            logger.warning(f"提现被拒绝, 金额超过可用余额: teacher={teacher_id}, amount={amount}")
            raise InsufficientFundsError("提现金额超过可用余额", {
                "amount": str(amount),
                "available": str(summary.available)
            })

        db_payout = PayoutRequestDB(
            payout_id=f"PO_{datetime.now():%Y%m%d%H%M%S}_{uuid.uuid4().hex[:8].upper()}",
            teacher_id=teacher_id,
            amount=amount,
            currency=summary.currency or settings.default_currency,
            status=PayoutStatus.PENDING.value,
            method=method,
            details=details or {},
            decided_by=None,
            decided_at=None,
            external_transaction_id=None,
            reason=None,
            requested_at=datetime.now()
        )
        await self.payout_repo.create(db_payout)
        await self._refresh_snapshot(teacher_id)

        logger.info(f"提现申请已提交: {db_payout.payout_id}, teacher={teacher_id}, amount={amount}")
        return self.payout_repo.to_model(db_payout)

    async def _get_db_payout(self, payout_id: str, refresh: bool = False) -> PayoutRequestDB:
        db_payout = await self.payout_repo.get_by_payout_id(payout_id, refresh=refresh)
        if not db_payout:
            raise NotFoundError("提现申请不存在", {"payout_id": payout_id})
        return db_payout

    async def approve_payout(
        self,
        payout_id: str,
        admin_id: str,
        external_transaction_id: Optional[str] = None
    ) -> PayoutRequest:
        """审批通过, 已审核过的申请直接返回原结果"""
        db_payout = await self._get_db_payout(payout_id)
        if db_payout.status != PayoutStatus.PENDING.value:
            return self.payout_repo.to_model(db_payout)

        summary = await self._locked_summary(db_payout.teacher_id)
        db_payout = await self._get_db_payout(payout_id, refresh=True)
        if db_payout.status != PayoutStatus.PENDING.value:
            return self.payout_repo.to_model(db_payout)

        amount = to_money(db_payout.amount)
        # 当前申请本身已计入pending, 校验时先扣除
        allowed = summary.available + amount
        if amount > allowed:
            logger.warning(f"审批被拒绝, 余额不足: payout={payout_id}, available={summary.available}")
            raise InsufficientFundsError("可用余额不足, 无法审批该提现", {
                "amount": str(amount),
                "available": str(allowed)
            })

        changed = await self.payout_repo.mark_decided(
            payout_id,
            PayoutStatus.APPROVED,
            decided_by=admin_id,
            decided_at=datetime.now(),
            external_transaction_id=external_transaction_id
        )
        db_payout = await self._get_db_payout(payout_id, refresh=True)
        payout = self.payout_repo.to_model(db_payout)
        if not changed:
            return payout

        await self._refresh_snapshot(payout.teacher_id)
        logger.info(f"提现已审批: {payout_id}, admin={admin_id}, amount={payout.amount}")
        await self._notify(payout)
        return payout

    async def reject_payout(self, payout_id: str, admin_id: str, reason: Optional[str] = None) -> PayoutRequest:
        """驳回申请, 释放占用的余额"""
        db_payout = await self._get_db_payout(payout_id)
        self._ensure_rejectable(db_payout)
        if db_payout.status == PayoutStatus.REJECTED.value:
            return self.payout_repo.to_model(db_payout)

        await self.earnings_repo.lock_account(db_payout.teacher_id)
        changed = await self.payout_repo.mark_decided(
            payout_id,
            PayoutStatus.REJECTED,
            decided_by=admin_id,
            decided_at=datetime.now(),
            reason=reason
        )
        db_payout = await self._get_db_payout(payout_id, refresh=True)
        if not changed:
            self._ensure_rejectable(db_payout)
            return self.payout_repo.to_model(db_payout)

        payout = self.payout_repo.to_model(db_payout)
        await self._refresh_snapshot(payout.teacher_id)
        logger.info(f"提现已驳回: {payout_id}, admin={admin_id}, reason={reason}")
        await self._notify(payout)
        return payout

    @staticmethod
    def _ensure_rejectable(db_payout: PayoutRequestDB) -> None:
        if db_payout.status == PayoutStatus.APPROVED.value:
            logger.warning(f"驳回失败, 提现已审批: {db_payout.payout_id}")
            raise ConflictError("提现申请已审批, 不能驳回", {"payout_id": db_payout.payout_id})

    async def _notify(self, payout: PayoutRequest) -> None:
        try:
            await self.notifier.payout_decided(payout)
        except Exception as e:
            logger.error(f"提现审核通知发送失败 {payout.payout_id}: {e}")

    async def get_payout_history(self, teacher_id: str, page: int = 1, limit: int = 20) -> PayoutHistory:
        """分页获取老师的提现记录"""
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        db_payouts = await self.payout_repo.get_teacher_payouts(teacher_id, limit=limit, offset=(page - 1) * limit)
        total = await self.payout_repo.count_teacher_payouts(teacher_id)
        return PayoutHistory(
            teacher_id=teacher_id,
            page=page,
            limit=limit,
            total=total,
            items=[self.payout_repo.to_model(db_payout) for db_payout in db_payouts]
        )

    async def list_pending_payouts(self) -> List[PayoutRequest]:
        db_payouts = await self.payout_repo.get_pending_payouts()
        return [self.payout_repo.to_model(db_payout) for db_payout in db_payouts]
