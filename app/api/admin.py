"""
管理员API: 提现审核与订阅收入分配
"""

from typing import Optional

from fastapi import APIRouter, Depends

from app.api.dependencies import Actor, get_services, require_admin
from app.models.earnings import SubscriptionDistributionRequest
from app.models.payout import PayoutApprove, PayoutReject
from app.services.container import ServiceContainer

router = APIRouter(prefix="/admin", tags=["管理员"])


@router.get("/payouts/pending")
async def list_pending_payouts(
    admin: Actor = Depends(require_admin),
    services: ServiceContainer = Depends(get_services)
):
    payouts = await services.payouts.list_pending_payouts()
    return {"success": True, "data": payouts}


@router.post("/payouts/{payout_id}/approve")
async def approve_payout(
    payout_id: str,
    body: Optional[PayoutApprove] = None,
    admin: Actor = Depends(require_admin),
    services: ServiceContainer = Depends(get_services)
):
    """审批通过, 重复审批返回原结果"""
    payout = await services.payouts.approve_payout(
        payout_id,
        admin.user_id,
        body.external_transaction_id if body else None
    )
    return {"success": True, "data": payout}


@router.post("/payouts/{payout_id}/reject")
async def reject_payout(
    payout_id: str,
    body: Optional[PayoutReject] = None,
    admin: Actor = Depends(require_admin),
    services: ServiceContainer = Depends(get_services)
):
    payout = await services.payouts.reject_payout(payout_id, admin.user_id, body.reason if body else None)
    return {"success": True, "data": payout}


@router.post("/earnings/distribute-subscription")
async def distribute_subscription_revenue(
    request: SubscriptionDistributionRequest,
    admin: Actor = Depends(require_admin),
    services: ServiceContainer = Depends(get_services)
):
    """按学员活跃度分配当月订阅收入, 同一个月可以重复执行"""
    distribution = await services.subscription_revenue.distribute_revenue(request.year, request.month)
    return {"success": True, "data": distribution}
