"""
课时预约服务
时段占用用条件更新完成, 部分唯一索引兜底保证每个时段最多一条有效预约
"""

from typing import List, Optional
from datetime import date, datetime, timedelta
import logging
import uuid

from sqlalchemy.exc import IntegrityError

from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.models.booking import Booking, BookingDetails, BookingStatus, LessonSlot, SlotCreate
from app.models.database.booking_db import BookingDB, LessonSlotDB
from app.models.payment import PaymentTargetType
from app.repositories.booking_repository import BookingRepository
from app.repositories.payment_repository import PaymentRepository

logger = logging.getLogger(__name__)

SLOT_NOT_AVAILABLE = "Slot is not available"


class BookingService:
    """预约业务服务"""

    def __init__(self, booking_repo: BookingRepository, payment_repo: PaymentRepository):
        self.booking_repo = booking_repo
        self.payment_repo = payment_repo

    async def create_slot(self, teacher_id: str, slot_data: SlotCreate) -> LessonSlot:
        """老师开放一个可预约时段"""
        if slot_data.end_time <= slot_data.start_time:
            raise ValidationError("结束时间必须晚于开始时间")

        now = datetime.now()
        db_slot = LessonSlotDB(
            slot_id=f"SLOT_{uuid.uuid4().hex[:16].upper()}",
            teacher_id=teacher_id,
            course_id=slot_data.course_id,
            subject=slot_data.subject,
            start_time=slot_data.start_time,
            end_time=slot_data.end_time,
            price=slot_data.price,
            is_available=True,
            is_booked=False,
            created_at=now,
            updated_at=now
        )
        await self.booking_repo.create_slot(db_slot)
        logger.info(f"老师 {teacher_id} 开放时段 {db_slot.slot_id}")
        return self.booking_repo.to_slot_model(db_slot)

    async def list_available_slots(
        self,
        teacher_id: Optional[str] = None,
        day: Optional[date] = None
    ) -> List[LessonSlot]:
        """查询可预约时段, 指定日期时只返回当天的"""
        start_from = start_before = None
        if day:
            start_from = datetime(day.year, day.month, day.day)
            start_before = start_from + timedelta(days=1)

        db_slots = await self.booking_repo.get_available_slots(teacher_id, start_from, start_before)
        return [self.booking_repo.to_slot_model(db_slot) for db_slot in db_slots]

    async def book_slot(
        self,
        slot_id: str,
        student_id: str,
        details: Optional[BookingDetails] = None
    ) -> Booking:
        """预约时段: 占用时段和创建预约在同一事务内完成"""
        details = details or BookingDetails()
        now = datetime.now()

        if not await self.booking_repo.claim_slot(slot_id, now):
            logger.warning(f"时段不可预约: slot={slot_id}, student={student_id}")
            raise ConflictError(SLOT_NOT_AVAILABLE, {"slot_id": slot_id})

        db_slot = await self.booking_repo.get_slot(slot_id, refresh=True)
        db_booking = BookingDB(
            booking_id=f"BK_{uuid.uuid4().hex[:16].upper()}",
            slot_id=slot_id,
            student_id=student_id,
            teacher_id=db_slot.teacher_id,
            status=BookingStatus.ACTIVE.value,
            subject=details.subject or db_slot.subject,
            notes=details.notes,
            join_link=details.join_link,
            meeting_id=details.meeting_id,
            # 时段标价优先, 未标价的时段才使用预约时填写的价格
            price=db_slot.price if db_slot.price is not None else details.price,
            payment_id=None,
            created_at=now,
            cancelled_at=None
        )
        try:
            await self.booking_repo.create_booking(db_booking)
        except IntegrityError:
            logger.warning(f"时段已有有效预约: slot={slot_id}")
            raise ConflictError(SLOT_NOT_AVAILABLE, {"slot_id": slot_id})

        logger.info(f"预约成功: booking={db_booking.booking_id}, slot={slot_id}, student={student_id}")
        return self.booking_repo.to_booking_model(db_booking)

    async def get_booking(self, booking_id: str) -> Booking:
        db_booking = await self.booking_repo.get_booking(booking_id, refresh=True)
        if not db_booking:
            raise NotFoundError("预约不存在", {"booking_id": booking_id})
        return self.booking_repo.to_booking_model(db_booking)

    async def cancel_booking(self, booking_id: str, actor_id: str) -> Booking:
        """取消预约并重新开放时段, 只有学员本人或授课老师可以取消"""
        db_booking = await self.booking_repo.get_booking(booking_id)
        if not db_booking:
            raise NotFoundError("预约不存在", {"booking_id": booking_id})

        if actor_id not in (db_booking.student_id, db_booking.teacher_id):
            logger.warning(f"无权取消预约: booking={booking_id}, actor={actor_id}")
            raise AuthorizationError("无权取消该预约")

        if db_booking.status == BookingStatus.CANCELLED.value:
            return self.booking_repo.to_booking_model(db_booking)

        now = datetime.now()
        if await self.booking_repo.mark_cancelled(booking_id, now):
            await self.booking_repo.release_slot(db_booking.slot_id, now)
            # 预约取消后待支付记录一并作废, 已完成的支付走退款流程
            cancelled_payments = await self.payment_repo.cancel_pending_for_target(
                PaymentTargetType.BOOKING.value, booking_id, now
            )
            logger.info(
                f"预约已取消: booking={booking_id}, actor={actor_id}, 时段 {db_booking.slot_id} 重新开放, "
                f"作废待支付 {cancelled_payments} 笔"
            )

        db_booking = await self.booking_repo.get_booking(booking_id, refresh=True)
        return self.booking_repo.to_booking_model(db_booking)

    async def list_student_bookings(self, student_id: str, status_filter: Optional[str] = None) -> List[Booking]:
        db_bookings = await self.booking_repo.get_student_bookings(student_id, status_filter)
        return [self.booking_repo.to_booking_model(db_booking) for db_booking in db_bookings]
