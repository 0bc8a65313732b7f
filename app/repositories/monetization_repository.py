"""
内容定价策略数据库操作层
"""

from typing import Optional
from datetime import datetime

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.entitlement import ContentMonetizationPolicy, PolicyUpdate
from app.models.database.monetization_db import ContentMonetizationPolicyDB


class MonetizationRepository:
    """定价策略数据库操作类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_policy(self, content_type: str, content_id: str) -> Optional[ContentMonetizationPolicyDB]:
        """获取内容的定价策略"""
        result = await self.db.execute(
            select(ContentMonetizationPolicyDB).where(
                and_(
                    ContentMonetizationPolicyDB.content_type == content_type,
                    ContentMonetizationPolicyDB.content_id == content_id
                )
            )
        )
        return result.scalar_one_or_none()

    async def save_policy(
        self,
        content_type: str,
        content_id: str,
        policy_data: PolicyUpdate
    ) -> ContentMonetizationPolicyDB:
        """新建或覆盖定价策略"""
        db_policy = await self.get_policy(content_type, content_id)
        if db_policy is None:
            db_policy = ContentMonetizationPolicyDB(
                content_type=content_type,
                content_id=content_id,
                teacher_id=None,
                course_id=None
            )
            self.db.add(db_policy)

        db_policy.monetization_type = policy_data.monetization_type.value
        db_policy.price = policy_data.price
        db_policy.currency = policy_data.currency.upper()
        db_policy.subscription_tier = policy_data.subscription_tier
        # 归属信息只在传入时覆盖
        if policy_data.teacher_id is not None:
            db_policy.teacher_id = policy_data.teacher_id
        if policy_data.course_id is not None:
            db_policy.course_id = policy_data.course_id
        db_policy.updated_at = datetime.now()

        await self.db.flush()
        return db_policy

    def to_model(self, db_policy: ContentMonetizationPolicyDB) -> ContentMonetizationPolicy:
        """转换为Pydantic模型"""
        return ContentMonetizationPolicy(
            content_type=db_policy.content_type,
            content_id=db_policy.content_id,
            teacher_id=db_policy.teacher_id,
            course_id=db_policy.course_id,
            monetization_type=db_policy.monetization_type,
            price=db_policy.price,
            currency=db_policy.currency,
            subscription_tier=db_policy.subscription_tier,
            updated_at=db_policy.updated_at
        )
