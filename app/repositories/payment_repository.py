"""
支付数据库操作层
"""

from typing import List, Optional, Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update, and_, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.money import to_money
from app.models.payment import Payment, PaymentStatus
from app.models.database.payment_db import PaymentDB


class PaymentRepository:
    """支付数据库操作类

    状态流转全部使用 WHERE status = 'PENDING' 的条件更新, 以影响行数判断是否抢到流转
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_payment_id(self, payment_id: str, refresh: bool = False) -> Optional[PaymentDB]:
        """根据支付ID获取支付记录, refresh=True时忽略会话缓存重新读取"""
        query = select(PaymentDB).where(PaymentDB.payment_id == payment_id)
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create(self, db_payment: PaymentDB) -> PaymentDB:
        """保存新的支付记录"""
        self.db.add(db_payment)
        await self.db.flush()
        return db_payment

    async def find_completed(
        self,
        payer_id: str,
        target_id: str,
        target_types: Optional[Sequence[str]] = None
    ) -> Optional[PaymentDB]:
        """查找付款人对某目标已完成的支付"""
        conditions = [
            PaymentDB.payer_id == payer_id,
            PaymentDB.target_id == target_id,
            PaymentDB.status == PaymentStatus.COMPLETED.value
        ]
        if target_types:
            conditions.append(PaymentDB.target_type.in_(list(target_types)))

        result = await self.db.execute(
            select(PaymentDB).where(and_(*conditions)).order_by(desc(PaymentDB.paid_at)).limit(1)
        )
        return result.scalar_one_or_none()

    async def get_latest_for_target(
        self,
        payer_id: str,
        target_type: str,
        target_id: str
    ) -> Optional[PaymentDB]:
        """获取付款人对某目标最近的一笔支付(任意状态)"""
        result = await self.db.execute(
            select(PaymentDB).where(
                and_(
                    PaymentDB.payer_id == payer_id,
                    PaymentDB.target_type == target_type,
                    PaymentDB.target_id == target_id
                )
            ).order_by(desc(PaymentDB.created_at)).limit(1)
        )
        return result.scalar_one_or_none()

    async def get_payer_payments(
        self,
        payer_id: str,
        limit: int = 20,
        offset: int = 0,
        status_filter: Optional[str] = None
    ) -> List[PaymentDB]:
        """获取用户的支付列表"""
        conditions = [PaymentDB.payer_id == payer_id]
        if status_filter:
            conditions.append(PaymentDB.status == status_filter)

        result = await self.db.execute(
            select(PaymentDB)
            .where(and_(*conditions))
            .order_by(desc(PaymentDB.created_at))
            .limit(limit)
            .offset(offset)
        )
        return result.scalars().all()

    async def mark_completed(
        self,
        payment_id: str,
        paid_at: datetime,
        external_transaction_id: Optional[str] = None
    ) -> bool:
        """PENDING -> COMPLETED, 返回本次调用是否完成了流转

        独占购买已有另一笔已完成支付时, 唯一索引冲突只回滚这一步, IntegrityError交给调用方处理
        """
        values = {
            "status": PaymentStatus.COMPLETED.value,
            "paid_at": paid_at,
            "updated_at": paid_at
        }
        if external_transaction_id:
            values["external_transaction_id"] = external_transaction_id

        async with self.db.begin_nested():
            result = await self.db.execute(
                update(PaymentDB)
                .where(
                    and_(
                        PaymentDB.payment_id == payment_id,
                        PaymentDB.status == PaymentStatus.PENDING.value
                    )
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1

    async def mark_cancelled(self, payment_id: str, cancelled_at: datetime) -> bool:
        """PENDING -> CANCELLED, 返回本次调用是否完成了流转"""
        result = await self.db.execute(
            update(PaymentDB)
            .where(
                and_(
                    PaymentDB.payment_id == payment_id,
                    PaymentDB.status == PaymentStatus.PENDING.value
                )
            )
            .values(
                status=PaymentStatus.CANCELLED.value,
                cancelled_at=cancelled_at,
                updated_at=cancelled_at
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def cancel_pending_for_target(self, target_type: str, target_id: str, cancelled_at: datetime) -> int:
        """取消某目标下所有待支付记录, 返回取消的条数"""
        result = await self.db.execute(
            update(PaymentDB)
            .where(
                and_(
                    PaymentDB.target_type == target_type,
                    PaymentDB.target_id == target_id,
                    PaymentDB.status == PaymentStatus.PENDING.value
                )
            )
            .values(
                status=PaymentStatus.CANCELLED.value,
                cancelled_at=cancelled_at,
                updated_at=cancelled_at
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def sum_completed(self, target_type: str, paid_from: datetime, paid_before: datetime) -> Decimal:
        """汇总某类目标在时间窗口内已完成支付的金额"""
        result = await self.db.execute(
            select(func.coalesce(func.sum(PaymentDB.amount), 0)).where(
                and_(
                    PaymentDB.target_type == target_type,
                    PaymentDB.status == PaymentStatus.COMPLETED.value,
                    PaymentDB.paid_at >= paid_from,
                    PaymentDB.paid_at < paid_before
                )
            )
        )
        return to_money(result.scalar())

    def to_model(self, db_payment: PaymentDB) -> Payment:
        """转换为Pydantic模型"""
        return Payment(
            payment_id=db_payment.payment_id,
            payer_id=db_payment.payer_id,
            target_type=db_payment.target_type,
            target_id=db_payment.target_id,
            original_amount=db_payment.original_amount,
            discount_amount=db_payment.discount_amount or 0,
            amount=db_payment.amount,
            currency=db_payment.currency,
            coupon_code=db_payment.coupon_code,
            status=db_payment.status,
            provider=db_payment.provider,
            external_transaction_id=db_payment.external_transaction_id,
            due_at=db_payment.due_at,
            paid_at=db_payment.paid_at,
            cancelled_at=db_payment.cancelled_at,
            created_at=db_payment.created_at,
            updated_at=db_payment.updated_at
        )
