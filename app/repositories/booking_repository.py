"""
课时时段与预约数据库操作层
"""

from typing import List, Optional
from datetime import datetime

from sqlalchemy import select, update, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.booking import Booking, BookingStatus, LessonSlot
from app.models.database.booking_db import BookingDB, LessonSlotDB


class BookingRepository:
    """时段和预约数据库操作类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_slot(self, slot_id: str, refresh: bool = False) -> Optional[LessonSlotDB]:
        """根据时段ID获取时段"""
        query = select(LessonSlotDB).where(LessonSlotDB.slot_id == slot_id)
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create_slot(self, db_slot: LessonSlotDB) -> LessonSlotDB:
        self.db.add(db_slot)
        await self.db.flush()
        return db_slot

    async def get_available_slots(
        self,
        teacher_id: Optional[str] = None,
        start_from: Optional[datetime] = None,
        start_before: Optional[datetime] = None,
        limit: int = 100
    ) -> List[LessonSlotDB]:
        """获取可预约时段"""
        conditions = [
            LessonSlotDB.is_available.is_(True),
            LessonSlotDB.is_booked.is_(False)
        ]
        if teacher_id:
            conditions.append(LessonSlotDB.teacher_id == teacher_id)
        if start_from:
            conditions.append(LessonSlotDB.start_time >= start_from)
        if start_before:
            conditions.append(LessonSlotDB.start_time < start_before)

        result = await self.db.execute(
            select(LessonSlotDB)
            .where(and_(*conditions))
            .order_by(LessonSlotDB.start_time)
            .limit(limit)
        )
        return result.scalars().all()

    async def claim_slot(self, slot_id: str, now: datetime) -> bool:
        """条件更新占用时段, 只有开放且未被预约的时段能被占用"""
        result = await self.db.execute(
            update(LessonSlotDB)
            .where(
                and_(
                    LessonSlotDB.slot_id == slot_id,
                    LessonSlotDB.is_available.is_(True),
                    LessonSlotDB.is_booked.is_(False)
                )
            )
            .values(is_booked=True, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def release_slot(self, slot_id: str, now: datetime) -> bool:
        """释放时段, 重新开放预约"""
        result = await self.db.execute(
            update(LessonSlotDB)
            .where(
                and_(
                    LessonSlotDB.slot_id == slot_id,
                    LessonSlotDB.is_booked.is_(True)
                )
            )
            .values(is_booked=False, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def create_booking(self, db_booking: BookingDB) -> BookingDB:
        """插入预约记录

        放在savepoint里, 唯一索引冲突时只回滚这一步, IntegrityError交给调用方处理
        """
        async with self.db.begin_nested():
            self.db.add(db_booking)
        return db_booking

    async def get_booking(self, booking_id: str, refresh: bool = False) -> Optional[BookingDB]:
        """根据预约ID获取预约"""
        query = select(BookingDB).where(BookingDB.booking_id == booking_id)
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_student_bookings(
        self,
        student_id: str,
        status_filter: Optional[str] = None
    ) -> List[BookingDB]:
        """获取学员的预约列表"""
        conditions = [BookingDB.student_id == student_id]
        if status_filter:
            conditions.append(BookingDB.status == status_filter)

        result = await self.db.execute(
            select(BookingDB).where(and_(*conditions)).order_by(BookingDB.created_at.desc())
        )
        return result.scalars().all()

    async def count_active_bookings(self, slot_id: str) -> int:
        """统计时段上的有效预约数"""
        result = await self.db.execute(
            select(func.count(BookingDB.booking_id)).where(
                and_(
                    BookingDB.slot_id == slot_id,
                    BookingDB.status == BookingStatus.ACTIVE.value
                )
            )
        )
        return result.scalar() or 0

    async def mark_cancelled(self, booking_id: str, cancelled_at: datetime) -> bool:
        """active -> cancelled, 返回本次调用是否完成了流转"""
        result = await self.db.execute(
            update(BookingDB)
            .where(
                and_(
                    BookingDB.booking_id == booking_id,
                    BookingDB.status == BookingStatus.ACTIVE.value
                )
            )
            .values(status=BookingStatus.CANCELLED.value, cancelled_at=cancelled_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def attach_payment(self, booking_id: str, payment_id: str) -> bool:
        """关联预约与支付"""
        result = await self.db.execute(
            update(BookingDB)
            .where(BookingDB.booking_id == booking_id)
            .values(payment_id=payment_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def to_slot_model(self, db_slot: LessonSlotDB) -> LessonSlot:
        """转换为Pydantic模型"""
        return LessonSlot(
            slot_id=db_slot.slot_id,
            teacher_id=db_slot.teacher_id,
            course_id=db_slot.course_id,
            subject=db_slot.subject,
            start_time=db_slot.start_time,
            end_time=db_slot.end_time,
            price=db_slot.price,
            is_available=db_slot.is_available,
            is_booked=db_slot.is_booked,
            created_at=db_slot.created_at,
            updated_at=db_slot.updated_at
        )

    def to_booking_model(self, db_booking: BookingDB) -> Booking:
        """转换为Pydantic模型"""
        return Booking(
            booking_id=db_booking.booking_id,
            slot_id=db_booking.slot_id,
            student_id=db_booking.student_id,
            teacher_id=db_booking.teacher_id,
            status=db_booking.status,
            subject=db_booking.subject,
            notes=db_booking.notes,
            join_link=db_booking.join_link,
            meeting_id=db_booking.meeting_id,
            price=db_booking.price,
            payment_id=db_booking.payment_id,
            created_at=db_booking.created_at,
            cancelled_at=db_booking.cancelled_at
        )
