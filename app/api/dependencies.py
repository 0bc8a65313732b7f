"""
API依赖注入
用户身份由网关写入 X-User-Id / X-User-Role 请求头, 认证本身不在本服务内
"""

from typing import Optional

from fastapi import Depends, Header
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.exceptions import AuthorizationError
from app.services.container import ServiceContainer

ADMIN_ROLE = "admin"


class Actor(BaseModel):
    """当前操作者"""

    user_id: str
    role: str = "student"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


async def get_services(db: AsyncSession = Depends(get_db_session)) -> ServiceContainer:
    """每个请求一组服务, 与请求的数据库会话绑定"""
    return ServiceContainer(db)


async def get_current_actor(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None)
) -> Actor:
    if not x_user_id:
        raise AuthorizationError("缺少用户身份")
    return Actor(user_id=x_user_id, role=(x_user_role or "student").lower())


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise AuthorizationError("需要管理员权限")
    return actor


def ensure_self_or_admin(actor: Actor, user_id: str) -> None:
    """只能操作自己的数据, 管理员除外"""
    if actor.user_id != user_id and not actor.is_admin:
        raise AuthorizationError("无权操作其他用户的数据")
