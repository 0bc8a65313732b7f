"""
老师收益与提现API
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.dependencies import Actor, ensure_self_or_admin, get_current_actor, get_services
from app.models.earnings import EarningsCalculationRequest
from app.models.payout import PayoutCreate
from app.services.container import ServiceContainer

router = APIRouter(prefix="/teachers/{teacher_id}/earnings", tags=["老师收益"])


@router.post("/calculate")
async def calculate_earnings(
    teacher_id: str,
    request: EarningsCalculationRequest,
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    """计算月度收益, 不指定课程时计算全部课程"""
    ensure_self_or_admin(actor, teacher_id)
    if request.course_id:
        result = await services.earnings.calculate_monthly_earnings(
            teacher_id, request.course_id, request.year, request.month, request.policy
        )
    else:
        result = await services.earnings.calculate_all_courses_earnings(
            teacher_id, request.year, request.month, request.policy
        )
    return {"success": True, "data": result}


@router.get("/summary")
async def get_earnings_summary(
    teacher_id: str,
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    ensure_self_or_admin(actor, teacher_id)
    summary = await services.earnings.get_teacher_earnings_summary(teacher_id)
    return {"success": True, "data": summary}


@router.get("/monthly")
async def get_monthly_earnings(
    teacher_id: str,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None),
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    ensure_self_or_admin(actor, teacher_id)
    records = await services.earnings.get_monthly_breakdown(teacher_id, year, month)
    return {"success": True, "data": records}


@router.get("/by-source")
async def get_earnings_by_source(
    teacher_id: str,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None),
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    """按活跃计费、销售、订阅分配三个来源汇总"""
    ensure_self_or_admin(actor, teacher_id)
    totals = await services.earnings.get_earnings_by_source(teacher_id, year, month)
    return {"success": True, "data": totals}


@router.post("/payout", status_code=status.HTTP_201_CREATED)
async def request_payout(
    teacher_id: str,
    payout_data: PayoutCreate,
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    """申请提现, 不传金额时提取全部可用余额"""
    ensure_self_or_admin(actor, teacher_id)
    payout = await services.payouts.request_payout(
        teacher_id,
        amount=payout_data.amount,
        method=payout_data.method,
        details=payout_data.details
    )
    return {"success": True, "data": payout, "message": "提现申请已提交, 等待审核"}


@router.get("/payouts")
async def get_payout_history(
    teacher_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    ensure_self_or_admin(actor, teacher_id)
    history = await services.payouts.get_payout_history(teacher_id, page, limit)
    return {"success": True, "data": history}
