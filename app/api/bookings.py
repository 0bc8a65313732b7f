"""
课时时段与预约API
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.dependencies import Actor, ensure_self_or_admin, get_current_actor, get_services
from app.models.booking import BookingDetails, SlotCreate
from app.services.container import ServiceContainer

router = APIRouter(tags=["预约"])


@router.post("/teachers/{teacher_id}/lesson-slots", status_code=status.HTTP_201_CREATED)
async def create_lesson_slot(
    teacher_id: str,
    slot_data: SlotCreate,
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    """老师开放可预约时段"""
    ensure_self_or_admin(actor, teacher_id)
    slot = await services.bookings.create_slot(teacher_id, slot_data)
    return {"success": True, "data": slot}


@router.get("/lesson-slots")
async def list_lesson_slots(
    teacher_id: Optional[str] = Query(None),
    day: Optional[date] = Query(None, alias="date"),
    services: ServiceContainer = Depends(get_services)
):
    slots = await services.bookings.list_available_slots(teacher_id, day)
    return {"success": True, "data": slots}


@router.post("/lesson-slots/{slot_id}/bookings", status_code=status.HTTP_201_CREATED)
async def book_lesson_slot(
    slot_id: str,
    details: Optional[BookingDetails] = None,
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    """预约时段"""
    booking = await services.bookings.book_slot(slot_id, actor.user_id, details)
    return {"success": True, "data": booking}


@router.get("/bookings")
async def list_my_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    bookings = await services.bookings.list_student_bookings(actor.user_id, status_filter)
    return {"success": True, "data": bookings}


@router.delete("/bookings/{booking_id}")
async def cancel_booking(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    """取消预约, 学员本人或授课老师可操作"""
    booking = await services.bookings.cancel_booking(booking_id, actor.user_id)
    return {"success": True, "data": booking, "message": "预约已取消"}
