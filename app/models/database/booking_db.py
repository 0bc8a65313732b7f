"""
课时预约相关数据库模型
"""

from sqlalchemy import Column, String, Numeric, Text, Boolean, DateTime, Index, text
from datetime import datetime
from app.core.database import Base


class LessonSlotDB(Base):
    """老师开放的可预约时段"""

    __tablename__ = "lesson_slots"

    slot_id = Column(String(50), primary_key=True, comment="时段ID")
    teacher_id = Column(String(50), nullable=False, index=True, comment="老师ID")
    course_id = Column(String(50), comment="关联课程ID")
    subject = Column(String(200), comment="课程主题")

    start_time = Column(DateTime, nullable=False, index=True, comment="开始时间")
    end_time = Column(DateTime, nullable=False, comment="结束时间")
    price = Column(Numeric(12, 2), comment="课时价格")

    is_available = Column(Boolean, nullable=False, default=True, comment="是否开放")
    is_booked = Column(Boolean, nullable=False, default=False, comment="是否已被预约")

    created_at = Column(DateTime, default=datetime.now, comment="创建时间")
    updated_at = Column(DateTime, default=datetime.now, comment="更新时间")

    __table_args__ = (
        {'comment': '课时时段表'}
    )


class BookingDB(Base):
    """学员预约记录"""

    __tablename__ = "bookings"

    booking_id = Column(String(50), primary_key=True, comment="预约ID")
    slot_id = Column(String(50), nullable=False, index=True, comment="时段ID")
    student_id = Column(String(50), nullable=False, index=True, comment="学员ID")
    teacher_id = Column(String(50), nullable=False, index=True, comment="老师ID")

    status = Column(String(20), nullable=False, default="active", comment="预约状态")
    subject = Column(String(200), comment="课程主题")
    notes = Column(Text, comment="备注")
    join_link = Column(String(500), comment="上课链接")
    meeting_id = Column(String(100), comment="会议ID")
    price = Column(Numeric(12, 2), comment="预约价格")
    payment_id = Column(String(50), comment="关联支付ID")

    created_at = Column(DateTime, default=datetime.now, comment="创建时间")
    cancelled_at = Column(DateTime, comment="取消时间")

    __table_args__ = (
        # 每个时段最多一条有效预约
        Index(
            "uq_bookings_active_slot",
            "slot_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        {'comment': '预约记录表'}
    )
