"""
内容访问权限服务
只读判定: 组合定价策略、订阅状态和支付记录
"""

from typing import Optional
from decimal import Decimal
import logging

from app.core.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.core.money import to_money
from app.models.entitlement import (
    AccessDecision,
    AccessRequirements,
    ContentMonetizationPolicy,
    ContentType,
    MonetizationType,
    PolicyUpdate
)
from app.repositories.monetization_repository import MonetizationRepository
from app.repositories.payment_repository import PaymentRepository
from app.services.collaborators import SubscriptionStatusProvider
from app.services.common_cache import SimpleCache

logger = logging.getLogger(__name__)


class EntitlementService:
    """内容访问权限服务"""

    def __init__(
        self,
        policy_repo: MonetizationRepository,
        payment_repo: PaymentRepository,
        subscription_provider: SubscriptionStatusProvider,
        cache: SimpleCache
    ):
        self.policy_repo = policy_repo
        self.payment_repo = payment_repo
        self.subscription_provider = subscription_provider
        self.cache = cache
        self.cache_ttl = settings.policy_cache_ttl

    def _cache_key(self, content_type: ContentType, content_id: str) -> str:
        return f"requirements:{content_type.value}:{content_id}"

    async def get_policy(self, content_type: ContentType, content_id: str) -> ContentMonetizationPolicy:
        """获取内容定价策略, 不存在时抛出NotFoundError"""
        db_policy = await self.policy_repo.get_policy(content_type.value, content_id)
        if not db_policy:
            raise NotFoundError("内容不存在或未设置定价策略", {
                "content_type": content_type.value,
                "content_id": content_id
            })
        return self.policy_repo.to_model(db_policy)

    async def find_policy(self, content_type: ContentType, content_id: str) -> Optional[ContentMonetizationPolicy]:
        db_policy = await self.policy_repo.get_policy(content_type.value, content_id)
        return self.policy_repo.to_model(db_policy) if db_policy else None

    async def can_access(self, user_id: str, content_id: str, content_type: ContentType) -> bool:
        """用户当前能否访问内容"""
        policy = await self.get_policy(content_type, content_id)
        return await self._decide(user_id, policy)

    async def _decide(self, user_id: str, policy: ContentMonetizationPolicy) -> bool:
        if policy.monetization_type == MonetizationType.FREE:
            return True

        if policy.monetization_type == MonetizationType.SUBSCRIPTION:
            return await self.subscription_provider.is_active(user_id, policy.subscription_tier)

        # PREMIUM: 需要该内容的已完成支付
        payment = await self.payment_repo.find_completed(
            user_id, policy.content_id, [policy.content_type.value]
        )
        return payment is not None

    async def get_access_requirements(self, content_id: str, content_type: ContentType) -> AccessRequirements:
        """内容访问要求, 结果缓存"""
        cache_key = self._cache_key(content_type, content_id)
        cached = await self.cache.get(cache_key)
        if cached:
            return AccessRequirements(**cached)

        policy = await self.get_policy(content_type, content_id)
        requirements = self._build_requirements(policy)

        await self.cache.set(cache_key, requirements.model_dump(mode="json"), ttl=self.cache_ttl)
        return requirements

    def _build_requirements(self, policy: ContentMonetizationPolicy) -> AccessRequirements:
        is_premium = policy.monetization_type == MonetizationType.PREMIUM
        student_price = None
        if is_premium and policy.price is not None:
            student_price = to_money(policy.price * (Decimal("1") + settings.platform_price_markup))

        return AccessRequirements(
            content_type=policy.content_type,
            content_id=policy.content_id,
            monetization_type=policy.monetization_type,
            price=to_money(policy.price) if policy.price is not None else None,
            student_price=student_price,
            currency=policy.currency,
            subscription_tier=policy.subscription_tier,
            requires_subscription=policy.monetization_type == MonetizationType.SUBSCRIPTION,
            requires_purchase=is_premium
        )

    async def check_access(self, user_id: str, content_id: str, content_type: ContentType) -> AccessDecision:
        """访问判定并附带访问要求"""
        policy = await self.get_policy(content_type, content_id)
        has_access = await self._decide(user_id, policy)
        return AccessDecision(
            user_id=user_id,
            content_type=content_type,
            content_id=content_id,
            has_access=has_access,
            requirements=self._build_requirements(policy)
        )

    async def set_policy(
        self,
        content_type: ContentType,
        content_id: str,
        policy_data: PolicyUpdate
    ) -> ContentMonetizationPolicy:
        """设置内容定价策略

        这里删除的缓存在事务提交前仍可能被并发读取写回旧值, 调用方提交后需要再调用 invalidate_requirements
        """
        if policy_data.monetization_type == MonetizationType.PREMIUM:
            if policy_data.price is None or policy_data.price <= 0:
                raise ValidationError("付费内容必须设置大于0的价格")

        db_policy = await self.policy_repo.save_policy(content_type.value, content_id, policy_data)
        await self.invalidate_requirements(content_type, content_id)

        logger.info(f"更新定价策略: {content_type.value}/{content_id} -> {policy_data.monetization_type.value}")
        return self.policy_repo.to_model(db_policy)

    async def invalidate_requirements(self, content_type: ContentType, content_id: str) -> None:
        await self.cache.delete(self._cache_key(content_type, content_id))
