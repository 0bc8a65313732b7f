"""
课时预约相关数据模型
"""

from decimal import Decimal
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from enum import Enum


class BookingStatus(str, Enum):
    """预约状态枚举"""
    ACTIVE = "active"
    CANCELLED = "cancelled"


class LessonSlot(BaseModel):
    """可预约时段"""

    slot_id: str = Field(..., description="时段ID")
    teacher_id: str = Field(..., description="老师ID")
    course_id: Optional[str] = Field(None, description="关联课程ID")
    subject: Optional[str] = Field(None, description="课程主题")
    start_time: datetime = Field(..., description="开始时间")
    end_time: datetime = Field(..., description="结束时间")
    price: Optional[Decimal] = Field(None, ge=0, description="课时价格")
    is_available: bool = Field(default=True, description="是否开放")
    is_booked: bool = Field(default=False, description="是否已被预约")
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def is_open(self) -> bool:
        return self.is_available and not self.is_booked


class SlotCreate(BaseModel):
    """老师开放时段请求"""

    start_time: datetime = Field(...)
    end_time: datetime = Field(...)
    course_id: Optional[str] = Field(None, max_length=50)
    subject: Optional[str] = Field(None, max_length=200)
    price: Optional[Decimal] = Field(None, ge=0)


class BookingDetails(BaseModel):
    """预约时附带的信息"""

    subject: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=2000)
    join_link: Optional[str] = Field(None, max_length=500)
    meeting_id: Optional[str] = Field(None, max_length=100)
    price: Optional[Decimal] = Field(None, ge=0)


class Booking(BaseModel):
    """预约记录"""

    booking_id: str = Field(..., description="预约ID")
    slot_id: str = Field(..., description="时段ID")
    student_id: str = Field(..., description="学员ID")
    teacher_id: str = Field(..., description="老师ID")
    status: BookingStatus = Field(default=BookingStatus.ACTIVE, description="预约状态")
    subject: Optional[str] = None
    notes: Optional[str] = None
    join_link: Optional[str] = None
    meeting_id: Optional[str] = None
    price: Optional[Decimal] = None
    payment_id: Optional[str] = Field(None, description="关联支付ID")
    created_at: datetime = Field(default_factory=datetime.now)
    cancelled_at: Optional[datetime] = None

    def is_active(self) -> bool:
        return self.status == BookingStatus.ACTIVE
