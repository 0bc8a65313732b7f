"""
内容访问权限与定价策略API
"""

from fastapi import APIRouter, Depends

from app.api.dependencies import Actor, ensure_self_or_admin, get_current_actor, get_services
from app.models.entitlement import ContentType, PolicyUpdate
from app.services.container import ServiceContainer

router = APIRouter(prefix="/content", tags=["内容权限"])


@router.get("/{content_type}/{content_id}/access")
async def check_content_access(
    content_type: ContentType,
    content_id: str,
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    """当前用户能否访问内容"""
    decision = await services.entitlements.check_access(actor.user_id, content_id, content_type)
    return {"success": True, "data": decision}


@router.get("/{content_type}/{content_id}/requirements")
async def get_content_requirements(
    content_type: ContentType,
    content_id: str,
    services: ServiceContainer = Depends(get_services)
):
    requirements = await services.entitlements.get_access_requirements(content_id, content_type)
    return {"success": True, "data": requirements}


@router.put("/{content_type}/{content_id}/monetization")
async def set_content_monetization(
    content_type: ContentType,
    content_id: str,
    policy_data: PolicyUpdate,
    actor: Actor = Depends(get_current_actor),
    services: ServiceContainer = Depends(get_services)
):
    """设置定价策略, 老师只能设置自己的内容"""
    existing = await services.entitlements.find_policy(content_type, content_id)
    owner_id = (existing.teacher_id if existing else None) or policy_data.teacher_id or actor.user_id
    ensure_self_or_admin(actor, owner_id)
    if policy_data.teacher_id is None and not actor.is_admin:
        policy_data.teacher_id = actor.user_id

    policy = await services.entitlements.set_policy(content_type, content_id, policy_data)
    # 提交后再删一次, 防止提交前的读取把旧策略写回缓存
    await services.db.commit()
    await services.entitlements.invalidate_requirements(content_type, content_id)
    return {"success": True, "data": policy}
