"""
老师收益计算服务

月度收益 = 活跃学员计费 + 当月销售额 + 订阅收入池分配, 老师分成 = 月度收益 × 分成比例
同一个 (老师, 课程, 年, 月) 只有一条记录, 重复计算覆盖而不是累加
"""

from typing import List, Optional, Tuple
from datetime import date, datetime
from decimal import Decimal
import logging

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.core.money import ZERO, to_money
from app.models.earnings import (
    ActivityPolicy,
    AllCoursesEarnings,
    EarningsBySource,
    EarningsSummary,
    MonthlyEarningsRecord
)
from app.models.entitlement import ContentType
from app.models.payment import Payment, PaymentTargetType
from app.models.payout import PayoutStatus
from app.models.database.earnings_db import MonthlyEarningsDB, PaymentEarningDB
from app.repositories.booking_repository import BookingRepository
from app.repositories.earnings_repository import EarningsRepository
from app.repositories.monetization_repository import MonetizationRepository
from app.repositories.payout_repository import PayoutRepository
from app.services.collaborators import ActivitySource, CourseCatalog, EnrollmentDirectory

logger = logging.getLogger(__name__)

# 未关联课程的一对一课时收益统一归到这个课程下
PRIVATE_LESSONS_COURSE_ID = "private-lessons"


def month_window(year: int, month: int) -> Tuple[date, date]:
    """自然月窗口 [start, end)"""
    if not 1 <= month <= 12:
        raise ValidationError("月份必须在1到12之间", {"month": month})
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


class EarningsService:
    """老师收益服务"""

    def __init__(
        self,
        earnings_repo: EarningsRepository,
        payout_repo: PayoutRepository,
        policy_repo: MonetizationRepository,
        booking_repo: BookingRepository,
        activity_source: ActivitySource,
        enrollment_directory: EnrollmentDirectory,
        course_catalog: CourseCatalog
    ):
        self.earnings_repo = earnings_repo
        self.payout_repo = payout_repo
        self.policy_repo = policy_repo
        self.booking_repo = booking_repo
        self.activity_source = activity_source
        self.enrollment_directory = enrollment_directory
        self.course_catalog = course_catalog
        self.share_ratio = settings.teacher_revenue_share_ratio

    # ---------- 月度计算 ----------

    async def calculate_monthly_earnings(
        self,
        teacher_id: str,
        course_id: str,
        year: int,
        month: int,
        policy: Optional[ActivityPolicy] = None
    ) -> MonthlyEarningsRecord:
        """计算并覆盖写入老师单门课程单月的收益"""
        start, end = month_window(year, month)
        policy = policy or ActivityPolicy.from_settings()

        active_days = await self.activity_source.active_days(course_id, start, end)

        student_count = 0
        activity_gross = Decimal("0")
        for student_id, days in sorted(active_days.items()):
            # 只统计仍在选课的学员
            if not await self.enrollment_directory.exists(student_id, course_id):
                continue
            fraction = policy.fraction_for(days)
            if fraction > 0:
                student_count += 1
                activity_gross += fraction * policy.per_student_rate

        db_record = await self.earnings_repo.acquire_record(
            teacher_id, course_id, year, month, settings.default_currency
        )
        sales_gross = await self.earnings_repo.sum_sales(teacher_id, course_id, year, month)
        db_record = await self._write_totals(
            db_record,
            active_student_count=student_count,
            activity_gross=to_money(activity_gross),
            sales_gross=sales_gross,
            subscription_gross=to_money(db_record.subscription_gross)
        )

        record = self.earnings_repo.to_model(db_record)
        logger.info(
            f"收益已重算: teacher={teacher_id}, course={course_id}, {year}-{month:02d}, "
            f"gross={record.gross_amount}, share={record.teacher_share}"
        )
        return record

    async def _write_totals(
        self,
        db_record: MonthlyEarningsDB,
        active_student_count: int,
        activity_gross: Decimal,
        sales_gross: Decimal,
        subscription_gross: Decimal
    ) -> MonthlyEarningsDB:
        gross = to_money(activity_gross + sales_gross + subscription_gross)
        return await self.earnings_repo.update_record(db_record.record_id, {
            "active_student_count": active_student_count,
            "activity_gross": activity_gross,
            "sales_gross": sales_gross,
            "subscription_gross": subscription_gross,
            "gross_amount": gross,
            "teacher_share": to_money(gross * self.share_ratio),
            "computed_at": datetime.now()
        })

    async def calculate_all_courses_earnings(
        self,
        teacher_id: str,
        year: int,
        month: int,
        policy: Optional[ActivityPolicy] = None
    ) -> AllCoursesEarnings:
        """计算老师名下全部课程的月度收益并汇总"""
        month_window(year, month)

        course_ids = list(await self.course_catalog.teacher_courses(teacher_id))
        # 有销售但不在课程目录里的(如一对一课时)也要计算
        for course_id in await self.earnings_repo.get_sales_course_ids(teacher_id, year, month):
            if course_id not in course_ids:
                course_ids.append(course_id)

        records: List[MonthlyEarningsRecord] = []
        for course_id in course_ids:
            records.append(
                await self.calculate_monthly_earnings(teacher_id, course_id, year, month, policy)
            )

        return AllCoursesEarnings(
            teacher_id=teacher_id,
            year=year,
            month=month,
            course_count=len(records),
            total_gross=to_money(sum((r.gross_amount for r in records), ZERO)),
            total_teacher_share=to_money(sum((r.teacher_share for r in records), ZERO)),
            records=records
        )

    # ---------- 支付归集 ----------

    async def record_payment_earning(self, payment: Payment) -> bool:
        """把已完成的支付归集到老师当月收益, 每笔支付最多一次

        返回False表示已经记录过或者找不到归属老师
        """
        owner = await self._resolve_owner(payment)
        if owner is None:
            logger.info(f"支付 {payment.payment_id} 没有归属老师, 跳过收益归集")
            return False

        teacher_id, course_id = owner
        paid_at = payment.paid_at or datetime.now()
        recorded = await self.earnings_repo.add_payment_earning(PaymentEarningDB(
            payment_id=payment.payment_id,
            teacher_id=teacher_id,
            course_id=course_id,
            year=paid_at.year,
            month=paid_at.month,
            source_type=payment.target_type.value,
            amount=to_money(payment.amount),
            recorded_at=datetime.now()
        ))
        if not recorded:
            logger.warning(f"支付 {payment.payment_id} 已归集过收益, 忽略")
            return False

        db_record = await self.earnings_repo.acquire_record(
            teacher_id, course_id, paid_at.year, paid_at.month, payment.currency
        )
        sales_gross = await self.earnings_repo.sum_sales(teacher_id, course_id, paid_at.year, paid_at.month)
        await self._write_totals(
            db_record,
            active_student_count=db_record.active_student_count or 0,
            activity_gross=to_money(db_record.activity_gross),
            sales_gross=sales_gross,
            subscription_gross=to_money(db_record.subscription_gross)
        )

        logger.info(f"支付 {payment.payment_id} 已计入 teacher={teacher_id}, course={course_id} 的销售收益")
        return True

    async def _resolve_owner(self, payment: Payment) -> Optional[Tuple[str, str]]:
        """找出支付对应的 (老师, 课程)"""
        if payment.target_type == PaymentTargetType.BOOKING:
            db_booking = await self.booking_repo.get_booking(payment.target_id)
            if not db_booking:
                return None
            db_slot = await self.booking_repo.get_slot(db_booking.slot_id)
            course_id = db_slot.course_id if db_slot and db_slot.course_id else PRIVATE_LESSONS_COURSE_ID
            return db_booking.teacher_id, course_id

        if payment.target_type.value in {t.value for t in ContentType}:
            db_policy = await self.policy_repo.get_policy(payment.target_type.value, payment.target_id)
            if db_policy and db_policy.teacher_id:
                return db_policy.teacher_id, db_policy.course_id or payment.target_id

        return None

    # ---------- 订阅分配 ----------

    async def apply_subscription_share(
        self,
        teacher_id: str,
        course_id: str,
        year: int,
        month: int,
        amount: Decimal
    ) -> MonthlyEarningsRecord:
        """覆盖写入课程当月分到的订阅收入, 其他部分保持不变"""
        db_record = await self.earnings_repo.acquire_record(
            teacher_id, course_id, year, month, settings.default_currency
        )
        db_record = await self._write_totals(
            db_record,
            active_student_count=db_record.active_student_count or 0,
            activity_gross=to_money(db_record.activity_gross),
            sales_gross=to_money(db_record.sales_gross),
            subscription_gross=to_money(amount)
        )
        return self.earnings_repo.to_model(db_record)

    # ---------- 摘要 ----------

    async def get_teacher_earnings_summary(self, teacher_id: str) -> EarningsSummary:
        """老师收益摘要, 实时从月度记录和提现记录汇总"""
        lifetime = await self.earnings_repo.sum_teacher_share(teacher_id)
        paid_out = await self.payout_repo.sum_by_status(teacher_id, PayoutStatus.APPROVED)
        pending = await self.payout_repo.sum_by_status(teacher_id, PayoutStatus.PENDING)

        return EarningsSummary(
            teacher_id=teacher_id,
            lifetime=lifetime,
            paid_out=paid_out,
            pending=pending,
            available=lifetime - paid_out - pending,
            currency=settings.default_currency
        )

    async def get_monthly_breakdown(
        self,
        teacher_id: str,
        year: Optional[int] = None,
        month: Optional[int] = None
    ) -> List[MonthlyEarningsRecord]:
        """老师的月度收益明细"""
        if month is not None:
            month_window(year or date.today().year, month)
        db_records = await self.earnings_repo.get_teacher_records(teacher_id, year, month)
        return [self.earnings_repo.to_model(db_record) for db_record in db_records]

    async def get_earnings_by_source(
        self,
        teacher_id: str,
        year: Optional[int] = None,
        month: Optional[int] = None
    ) -> EarningsBySource:
        """按活跃计费、销售、订阅三个来源汇总"""
        if month is not None:
            month_window(year or date.today().year, month)
        totals = await self.earnings_repo.sum_by_source(teacher_id, year, month)
        return EarningsBySource(
            teacher_id=teacher_id,
            year=year,
            month=month,
            currency=settings.default_currency,
            **totals
        )
