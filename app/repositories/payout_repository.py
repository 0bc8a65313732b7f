"""
提现申请数据库操作层
"""

from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update, and_, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.money import to_money
from app.models.payout import PayoutRequest, PayoutStatus
from app.models.database.payout_db import PayoutRequestDB


class PayoutRepository:
    """提现申请数据库操作类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_payout_id(self, payout_id: str, refresh: bool = False) -> Optional[PayoutRequestDB]:
        """根据提现ID获取申请"""
        query = select(PayoutRequestDB).where(PayoutRequestDB.payout_id == payout_id)
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create(self, db_payout: PayoutRequestDB) -> PayoutRequestDB:
        self.db.add(db_payout)
        await self.db.flush()
        return db_payout

    async def sum_by_status(self, teacher_id: str, status: PayoutStatus) -> Decimal:
        """按状态汇总老师的提现金额"""
        result = await self.db.execute(
            select(func.coalesce(func.sum(PayoutRequestDB.amount), 0)).where(
                and_(
                    PayoutRequestDB.teacher_id == teacher_id,
                    PayoutRequestDB.status == status.value
                )
            )
        )
        return to_money(result.scalar())

    async def mark_decided(
        self,
        payout_id: str,
        status: PayoutStatus,
        decided_by: str,
        decided_at: datetime,
        external_transaction_id: Optional[str] = None,
        reason: Optional[str] = None
    ) -> bool:
        """PENDING -> APPROVED/REJECTED, 返回本次调用是否完成了流转"""
        values = {
            "status": status.value,
            "decided_by": decided_by,
            "decided_at": decided_at
        }
        if external_transaction_id:
            values["external_transaction_id"] = external_transaction_id
        if reason:
            values["reason"] = reason

        result = await self.db.execute(
            update(PayoutRequestDB)
            .where(
                and_(
                    PayoutRequestDB.payout_id == payout_id,
                    PayoutRequestDB.status == PayoutStatus.PENDING.value
                )
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def get_teacher_payouts(self, teacher_id: str, limit: int = 20, offset: int = 0) -> List[PayoutRequestDB]:
        """获取老师的提现记录"""
        result = await self.db.execute(
            select(PayoutRequestDB)
            .where(PayoutRequestDB.teacher_id == teacher_id)
            .order_by(desc(PayoutRequestDB.requested_at))
            .limit(limit)
            .offset(offset)
        )
        return result.scalars().all()

    async def count_teacher_payouts(self, teacher_id: str) -> int:
        result = await self.db.execute(
            select(func.count(PayoutRequestDB.payout_id)).where(PayoutRequestDB.teacher_id == teacher_id)
        )
        return result.scalar() or 0

    async def get_pending_payouts(self, limit: int = 100) -> List[PayoutRequestDB]:
        """获取待审核的提现申请, 先申请的排前面"""
        result = await self.db.execute(
            select(PayoutRequestDB)
            .where(PayoutRequestDB.status == PayoutStatus.PENDING.value)
            .order_by(PayoutRequestDB.requested_at)
            .limit(limit)
        )
        return result.scalars().all()

    def to_model(self, db_payout: PayoutRequestDB) -> PayoutRequest:
        """转换为Pydantic模型"""
        return PayoutRequest(
            payout_id=db_payout.payout_id,
            teacher_id=db_payout.teacher_id,
            amount=to_money(db_payout.amount),
            currency=db_payout.currency,
            status=db_payout.status,
            method=db_payout.method,
            details=db_payout.details or {},
            decided_by=db_payout.decided_by,
            decided_at=db_payout.decided_at,
            external_transaction_id=db_payout.external_transaction_id,
            reason=db_payout.reason,
            requested_at=db_payout.requested_at
        )
