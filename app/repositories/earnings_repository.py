"""
老师收益数据库操作层
月度收益的写入顺序: 先以条件UPDATE锁定(或创建)记录, 读取最新值计算, 再写回
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
from decimal import Decimal
import uuid

from sqlalchemy import select, update, and_, func, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.money import to_money
from app.models.earnings import MonthlyEarningsRecord, PoolStatus, SubscriptionRevenuePool
from app.models.database.earnings_db import (
    MonthlyEarningsDB,
    PaymentEarningDB,
    SubscriptionRevenuePoolDB,
    TeacherAccountDB
)


class EarningsRepository:
    """收益数据库操作类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ---------- 月度收益 ----------

    def _record_key(self, teacher_id: str, course_id: str, year: int, month: int):
        return and_(
            MonthlyEarningsDB.teacher_id == teacher_id,
            MonthlyEarningsDB.course_id == course_id,
            MonthlyEarningsDB.year == year,
            MonthlyEarningsDB.month == month
        )

    async def get_record(
        self,
        teacher_id: str,
        course_id: str,
        year: int,
        month: int,
        refresh: bool = False
    ) -> Optional[MonthlyEarningsDB]:
        """获取某个键的月度收益记录"""
        query = select(MonthlyEarningsDB).where(self._record_key(teacher_id, course_id, year, month))
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _touch_record(self, teacher_id: str, course_id: str, year: int, month: int, now: datetime) -> bool:
        result = await self.db.execute(
            update(MonthlyEarningsDB)
            .where(self._record_key(teacher_id, course_id, year, month))
            .values(computed_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def acquire_record(
        self,
        teacher_id: str,
        course_id: str,
        year: int,
        month: int,
        currency: str = "USD"
    ) -> MonthlyEarningsDB:
        """锁定月度收益记录, 不存在时创建

        UPDATE命中后本事务持有该行写锁, 同一个键的重算在提交前不会交错
        """
        now = datetime.now()
        if not await self._touch_record(teacher_id, course_id, year, month, now):
            try:
                async with self.db.begin_nested():
                    self.db.add(MonthlyEarningsDB(
                        record_id=f"ME_{uuid.uuid4().hex[:16].upper()}",
                        teacher_id=teacher_id,
                        course_id=course_id,
                        year=year,
                        month=month,
                        active_student_count=0,
                        activity_gross=Decimal("0"),
                        sales_gross=Decimal("0"),
                        subscription_gross=Decimal("0"),
                        gross_amount=Decimal("0"),
                        teacher_share=Decimal("0"),
                        currency=currency,
                        computed_at=now
                    ))
            except IntegrityError:
                # 并发请求先插入了同一个键
                await self._touch_record(teacher_id, course_id, year, month, now)

        return await self.get_record(teacher_id, course_id, year, month, refresh=True)

    async def update_record(self, record_id: str, values: Dict[str, Any]) -> MonthlyEarningsDB:
        """覆盖写入月度收益字段"""
        await self.db.execute(
            update(MonthlyEarningsDB)
            .where(MonthlyEarningsDB.record_id == record_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(
            select(MonthlyEarningsDB)
            .where(MonthlyEarningsDB.record_id == record_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def count_records(self, teacher_id: str, course_id: str, year: int, month: int) -> int:
        result = await self.db.execute(
            select(func.count(MonthlyEarningsDB.record_id)).where(
                self._record_key(teacher_id, course_id, year, month)
            )
        )
        return result.scalar() or 0

    async def get_teacher_records(
        self,
        teacher_id: str,
        year: Optional[int] = None,
        month: Optional[int] = None
    ) -> List[MonthlyEarningsDB]:
        """获取老师的月度收益明细"""
        conditions = [MonthlyEarningsDB.teacher_id == teacher_id]
        if year is not None:
            conditions.append(MonthlyEarningsDB.year == year)
        if month is not None:
            conditions.append(MonthlyEarningsDB.month == month)

        result = await self.db.execute(
            select(MonthlyEarningsDB)
            .where(and_(*conditions))
            .order_by(desc(MonthlyEarningsDB.year), desc(MonthlyEarningsDB.month), MonthlyEarningsDB.course_id)
        )
        return result.scalars().all()

    async def sum_teacher_share(self, teacher_id: str) -> Decimal:
        """老师累计分成"""
        result = await self.db.execute(
            select(func.coalesce(func.sum(MonthlyEarningsDB.teacher_share), 0)).where(
                MonthlyEarningsDB.teacher_id == teacher_id
            )
        )
        return to_money(result.scalar())

    async def get_subscription_records(self, year: int, month: int) -> List[MonthlyEarningsDB]:
        """某月已分到订阅收入的记录"""
        result = await self.db.execute(
            select(MonthlyEarningsDB).where(
                and_(
                    MonthlyEarningsDB.year == year,
                    MonthlyEarningsDB.month == month,
                    MonthlyEarningsDB.subscription_gross > 0
                )
            )
        )
        return result.scalars().all()

    async def sum_by_source(
        self,
        teacher_id: str,
        year: Optional[int] = None,
        month: Optional[int] = None
    ) -> Dict[str, Decimal]:
        """按来源汇总老师的月度收益"""
        conditions = [MonthlyEarningsDB.teacher_id == teacher_id]
        if year is not None:
            conditions.append(MonthlyEarningsDB.year == year)
        if month is not None:
            conditions.append(MonthlyEarningsDB.month == month)

        result = await self.db.execute(
            select(
                func.coalesce(func.sum(MonthlyEarningsDB.activity_gross), 0).label("activity"),
                func.coalesce(func.sum(MonthlyEarningsDB.sales_gross), 0).label("sales"),
                func.coalesce(func.sum(MonthlyEarningsDB.subscription_gross), 0).label("subscription"),
                func.coalesce(func.sum(MonthlyEarningsDB.gross_amount), 0).label("total_gross"),
                func.coalesce(func.sum(MonthlyEarningsDB.teacher_share), 0).label("teacher_share")
            ).where(and_(*conditions))
        )
        row = result.one()
        return {key: to_money(value) for key, value in row._mapping.items()}

    # ---------- 订阅收入池 ----------

    async def _touch_pool(self, year: int, month: int, now: datetime) -> bool:
        result = await self.db.execute(
            update(SubscriptionRevenuePoolDB)
            .where(and_(SubscriptionRevenuePoolDB.year == year, SubscriptionRevenuePoolDB.month == month))
            .values(status=PoolStatus.CALCULATING.value, computed_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def acquire_pool(self, year: int, month: int) -> SubscriptionRevenuePoolDB:
        """锁定某月的订阅收入池, 不存在时创建, 同一个月的分配在提交前不会交错"""
        now = datetime.now()
        if not await self._touch_pool(year, month, now):
            try:
                async with self.db.begin_nested():
                    self.db.add(SubscriptionRevenuePoolDB(
                        pool_id=f"POOL_{year}{month:02d}_{uuid.uuid4().hex[:8].upper()}",
                        year=year,
                        month=month,
                        total_revenue=Decimal("0"),
                        platform_fee=Decimal("0"),
                        teacher_pool=Decimal("0"),
                        total_engagement=0,
                        status=PoolStatus.CALCULATING.value,
                        teacher_count=0,
                        distributed_amount=Decimal("0"),
                        computed_at=now
                    ))
            except IntegrityError:
                await self._touch_pool(year, month, now)

        return await self.get_pool(year, month)

    async def get_pool(self, year: int, month: int) -> Optional[SubscriptionRevenuePoolDB]:
        result = await self.db.execute(
            select(SubscriptionRevenuePoolDB)
            .where(and_(SubscriptionRevenuePoolDB.year == year, SubscriptionRevenuePoolDB.month == month))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def update_pool(self, pool_id: str, values: Dict[str, Any]) -> SubscriptionRevenuePoolDB:
        await self.db.execute(
            update(SubscriptionRevenuePoolDB)
            .where(SubscriptionRevenuePoolDB.pool_id == pool_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(
            select(SubscriptionRevenuePoolDB)
            .where(SubscriptionRevenuePoolDB.pool_id == pool_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def count_pools(self, year: int, month: int) -> int:
        result = await self.db.execute(
            select(func.count(SubscriptionRevenuePoolDB.pool_id)).where(
                and_(SubscriptionRevenuePoolDB.year == year, SubscriptionRevenuePoolDB.month == month)
            )
        )
        return result.scalar() or 0

    # ---------- 销售明细 ----------

    async def add_payment_earning(self, db_entry: PaymentEarningDB) -> bool:
        """记录一笔支付的销售收益, 同一支付已记录过时返回False"""
        try:
            async with self.db.begin_nested():
                self.db.add(db_entry)
        except IntegrityError:
            return False
        return True

    async def get_payment_earning(self, payment_id: str) -> Optional[PaymentEarningDB]:
        result = await self.db.execute(
            select(PaymentEarningDB).where(PaymentEarningDB.payment_id == payment_id)
        )
        return result.scalar_one_or_none()

    async def sum_sales(self, teacher_id: str, course_id: str, year: int, month: int) -> Decimal:
        """汇总某课程某月的销售金额"""
        result = await self.db.execute(
            select(func.coalesce(func.sum(PaymentEarningDB.amount), 0)).where(
                and_(
                    PaymentEarningDB.teacher_id == teacher_id,
                    PaymentEarningDB.course_id == course_id,
                    PaymentEarningDB.year == year,
                    PaymentEarningDB.month == month
                )
            )
        )
        return to_money(result.scalar())

    async def get_sales_course_ids(self, teacher_id: str, year: int, month: int) -> List[str]:
        """某月有销售记录的课程"""
        result = await self.db.execute(
            select(PaymentEarningDB.course_id).where(
                and_(
                    PaymentEarningDB.teacher_id == teacher_id,
                    PaymentEarningDB.year == year,
                    PaymentEarningDB.month == month
                )
            ).distinct()
        )
        return [row[0] for row in result.fetchall()]

    # ---------- 结算账户 ----------

    async def _bump_account(self, teacher_id: str) -> bool:
        result = await self.db.execute(
            update(TeacherAccountDB)
            .where(TeacherAccountDB.teacher_id == teacher_id)
            .values(version=TeacherAccountDB.version + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def lock_account(self, teacher_id: str) -> None:
        """锁定老师结算账户, 必须是余额变更事务里的第一次写入"""
        if await self._bump_account(teacher_id):
            return
        try:
            async with self.db.begin_nested():
                self.db.add(TeacherAccountDB(
                    teacher_id=teacher_id,
                    version=1,
                    lifetime_share=Decimal("0"),
                    paid_out=Decimal("0"),
                    pending=Decimal("0"),
                    available=Decimal("0")
                ))
        except IntegrityError:
            await self._bump_account(teacher_id)

    async def save_account_snapshot(
        self,
        teacher_id: str,
        lifetime: Decimal,
        paid_out: Decimal,
        pending: Decimal,
        available: Decimal
    ) -> None:
        """写入账户摘要快照"""
        await self.db.execute(
            update(TeacherAccountDB)
            .where(TeacherAccountDB.teacher_id == teacher_id)
            .values(
                lifetime_share=lifetime,
                paid_out=paid_out,
                pending=pending,
                available=available,
                last_calculated=datetime.now()
            )
            .execution_options(synchronize_session=False)
        )

    async def get_account(self, teacher_id: str) -> Optional[TeacherAccountDB]:
        result = await self.db.execute(
            select(TeacherAccountDB)
            .where(TeacherAccountDB.teacher_id == teacher_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    def to_model(self, db_record: MonthlyEarningsDB) -> MonthlyEarningsRecord:
        """转换为Pydantic模型"""
        return MonthlyEarningsRecord(
            record_id=db_record.record_id,
            teacher_id=db_record.teacher_id,
            course_id=db_record.course_id,
            year=db_record.year,
            month=db_record.month,
            active_student_count=db_record.active_student_count or 0,
            activity_gross=to_money(db_record.activity_gross),
            sales_gross=to_money(db_record.sales_gross),
            subscription_gross=to_money(db_record.subscription_gross),
            gross_amount=to_money(db_record.gross_amount),
            teacher_share=to_money(db_record.teacher_share),
            currency=db_record.currency,
            computed_at=db_record.computed_at
        )

    def to_pool_model(self, db_pool: SubscriptionRevenuePoolDB) -> SubscriptionRevenuePool:
        return SubscriptionRevenuePool(
            pool_id=db_pool.pool_id,
            year=db_pool.year,
            month=db_pool.month,
            total_revenue=to_money(db_pool.total_revenue),
            platform_fee=to_money(db_pool.platform_fee),
            teacher_pool=to_money(db_pool.teacher_pool),
            total_engagement=db_pool.total_engagement or 0,
            status=db_pool.status,
            teacher_count=db_pool.teacher_count or 0,
            distributed_amount=to_money(db_pool.distributed_amount),
            computed_at=db_pool.computed_at,
            distributed_at=db_pool.distributed_at
        )
