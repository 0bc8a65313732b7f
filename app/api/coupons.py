"""
优惠券API
"""

from fastapi import APIRouter, Depends, Query, status

from app.api.dependencies import Actor, get_current_actor, get_services, require_admin
from app.models.coupon import CouponApplication, CouponCreate
from app.services.container import ServiceContainer

router = APIRouter(prefix="/coupons", tags=["优惠券"])


@router.post("/apply")
async def apply_coupon(
    application: CouponApplication,
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    """优惠券试算, 不占用使用次数"""
    pricing = await services.coupons.price_with_coupon(
        application.code,
        application.amount,
        application.applicable_to,
        application.scope_id
    )
    return {"success": pricing.valid, "data": pricing}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_coupon(
    coupon_data: CouponCreate,
    admin: Actor = Depends(require_admin),
    services: ServiceContainer = Depends(get_services)
):
    coupon = await services.coupons.create_coupon(coupon_data)
    return {"success": True, "data": coupon}


@router.get("")
async def list_coupons(
    include_inactive: bool = Query(False),
    admin: Actor = Depends(require_admin),
    services: ServiceContainer = Depends(get_services)
):
    coupons = await services.coupons.list_coupons(include_inactive)
    return {"success": True, "data": coupons}


@router.get("/{code}")
async def get_coupon(
    code: str,
    admin: Actor = Depends(require_admin),
    services: ServiceContainer = Depends(get_services)
):
    coupon = await services.coupons.get_coupon(code)
    return {"success": True, "data": coupon}
