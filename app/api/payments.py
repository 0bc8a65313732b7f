"""
支付相关API
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.dependencies import Actor, ensure_self_or_admin, get_current_actor, get_services
from app.models.entitlement import ContentType
from app.models.payment import (
    PaymentCheckout,
    PaymentConfirm,
    PaymentCreate,
    PaymentRequest,
    PaymentStatus,
    PaymentTargetType
)
from app.services.container import ServiceContainer

router = APIRouter(tags=["支付"])


@router.post("/payments", status_code=status.HTTP_201_CREATED)
async def create_payment(
    checkout: PaymentCheckout,
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    """通用下单"""
    payment = await services.payments.create_payment(
        PaymentCreate(payer_id=actor.user_id, **checkout.model_dump())
    )
    return {"success": True, "data": payment}


@router.post("/modules/{module_id}/payment", status_code=status.HTTP_201_CREATED)
async def create_module_payment(
    module_id: str,
    request: PaymentRequest,
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    """购买模块"""
    payment = await services.payments.create_payment(PaymentCreate(
        payer_id=actor.user_id,
        target_type=PaymentTargetType.MODULE,
        target_id=module_id,
        **request.model_dump()
    ))
    return {
        "success": True,
        "data": payment,
        "message": "支付已创建, 请完成支付",
    }


@router.post("/bookings/{booking_id}/payment", status_code=status.HTTP_201_CREATED)
async def create_booking_payment(
    booking_id: str,
    request: PaymentRequest,
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    """为课时预约付款"""
    payment = await services.payments.create_payment(PaymentCreate(
        payer_id=actor.user_id,
        target_type=PaymentTargetType.BOOKING,
        target_id=booking_id,
        **request.model_dump()
    ))
    return {
        "success": True,
        "data": payment,
        "message": "支付已创建, 请在截止时间前完成支付",
    }


@router.get("/payments")
async def list_my_payments(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    status_filter: Optional[PaymentStatus] = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    payments = await services.payments.list_payer_payments(actor.user_id, limit, offset, status_filter)
    return {"success": True, "data": payments}


@router.get("/payments/{payment_id}")
async def get_payment(
    payment_id: str,
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    payment = await services.payments.get_payment(payment_id)
    ensure_self_or_admin(actor, payment.payer_id)
    return {"success": True, "data": payment}


@router.post("/payments/{payment_id}/confirm")
async def confirm_payment(
    payment_id: str,
    body: Optional[PaymentConfirm] = None,
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    """确认支付, 重复调用安全"""
    payment = await services.payments.get_payment(payment_id)
    ensure_self_or_admin(actor, payment.payer_id)
    payment = await services.payments.confirm_payment(
        payment_id,
        body.external_transaction_id if body else None
    )
    return {"success": True, "data": payment}


@router.post("/payments/{payment_id}/cancel")
async def cancel_payment(
    payment_id: str,
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    payment = await services.payments.get_payment(payment_id)
    ensure_self_or_admin(actor, payment.payer_id)
    payment = await services.payments.cancel_payment(payment_id)
    return {"success": True, "data": payment}


@router.get("/modules/{module_id}/payment/status")
async def get_module_payment_status(
    module_id: str,
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    """当前用户对模块的支付状态"""
    payment_status = await services.payments.get_payment_status(actor.user_id, ContentType.MODULE, module_id)
    return {"success": True, "data": payment_status}
