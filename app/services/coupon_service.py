"""
优惠券业务服务层
计价是无副作用的查询, 使用次数只在支付完成时核销
"""

from typing import List, Optional
from decimal import Decimal
from datetime import datetime
import logging
import uuid

from sqlalchemy.exc import IntegrityError

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.money import ZERO, to_money
from app.models.coupon import (
    Coupon,
    CouponCreate,
    CouponPricing,
    CouponRedemption,
    CouponScope,
    CouponType
)
from app.models.database.coupon_db import CouponDB, CouponRedemptionDB
from app.repositories.coupon_repository import CouponRepository

logger = logging.getLogger(__name__)

# 计价失败原因
COUPON_NOT_FOUND = "Coupon not found"
COUPON_INACTIVE = "Coupon is not active"
COUPON_EXPIRED = "Coupon expired"
USAGE_LIMIT_REACHED = "Usage limit reached"
MIN_PURCHASE_NOT_MET = "Minimum purchase not met"
COUPON_NOT_APPLICABLE = "Coupon not applicable"


class CouponService:
    """优惠券业务服务"""

    def __init__(self, coupon_repo: CouponRepository):
        self.coupon_repo = coupon_repo

    async def price_with_coupon(
        self,
        code: str,
        amount: Decimal,
        applicable_to: CouponScope = CouponScope.ALL,
        scope_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> CouponPricing:
        """按优惠券计算折扣"""
        amount = to_money(amount)
        if amount < 0:
            raise ValidationError("金额不能为负数", {"amount": str(amount)})

        db_coupon = await self.coupon_repo.get_by_code(code)
        if not db_coupon:
            return self._invalid(amount, COUPON_NOT_FOUND, code)

        coupon = self.coupon_repo.to_model(db_coupon)
        error = self._check(coupon, amount, applicable_to, scope_id, now or datetime.now())
        if error:
            return self._invalid(amount, error, coupon.code)

        discount = self.calculate_discount(coupon, amount)
        return CouponPricing(
            valid=True,
            discount=discount,
            final_amount=max(amount - discount, ZERO),
            coupon_code=coupon.code
        )

    def _check(
        self,
        coupon: Coupon,
        amount: Decimal,
        applicable_to: CouponScope,
        scope_id: Optional[str],
        now: datetime
    ) -> Optional[str]:
        if not coupon.is_active:
            return COUPON_INACTIVE
        if coupon.is_expired(now):
            return COUPON_EXPIRED
        if coupon.is_used_up():
            return USAGE_LIMIT_REACHED
        if coupon.min_purchase is not None and amount < coupon.min_purchase:
            return MIN_PURCHASE_NOT_MET
        if not coupon.covers(applicable_to, scope_id):
            return COUPON_NOT_APPLICABLE
        return None

    @staticmethod
    def calculate_discount(coupon: Coupon, amount: Decimal) -> Decimal:
        """折扣金额, 不超过订单金额和最大折扣"""
        if coupon.coupon_type == CouponType.PERCENTAGE:
            discount = amount * coupon.value / Decimal("100")
            cap = coupon.max_discount if coupon.max_discount is not None else amount
            discount = min(discount, cap)
        else:
            discount = coupon.value

        return to_money(max(min(discount, amount), ZERO))

    @staticmethod
    def _invalid(amount: Decimal, error: str, code: Optional[str]) -> CouponPricing:
        return CouponPricing(
            valid=False,
            discount=ZERO,
            final_amount=amount,
            error=error,
            coupon_code=code.strip().upper() if code else None
        )

    async def redeem(
        self,
        code: str,
        user_id: str,
        payment_id: str,
        discount: Decimal
    ) -> CouponRedemption:
        """核销优惠券: 条件更新使用次数并写入核销记录, 同一支付重复调用返回已有记录"""
        existing = await self.coupon_repo.get_redemption_by_payment(payment_id)
        if existing:
            return self.coupon_repo.to_redemption_model(existing)

        db_coupon = await self.coupon_repo.get_by_code(code)
        if not db_coupon:
            raise NotFoundError(COUPON_NOT_FOUND, {"code": code})

        now = datetime.now()
        if not await self.coupon_repo.increment_usage(db_coupon.coupon_id, now):
            logger.warning(f"优惠券核销失败, 使用次数已达上限: {db_coupon.code}, payment={payment_id}")
            raise ConflictError(USAGE_LIMIT_REACHED, {"code": db_coupon.code})

        db_redemption = CouponRedemptionDB(
            redemption_id=f"RDM_{uuid.uuid4().hex[:16].upper()}",
            coupon_id=db_coupon.coupon_id,
            code=db_coupon.code,
            user_id=user_id,
            payment_id=payment_id,
            discount_amount=to_money(discount),
            redeemed_at=now
        )
        try:
            await self.coupon_repo.add_redemption(db_redemption)
        except IntegrityError:
            raise ConflictError("该支付已核销过优惠券", {"payment_id": payment_id})

        logger.info(f"优惠券核销成功: {db_coupon.code}, user={user_id}, payment={payment_id}")
        return self.coupon_repo.to_redemption_model(db_redemption)

    async def create_coupon(self, coupon_data: CouponCreate) -> Coupon:
        """创建优惠券"""
        if coupon_data.coupon_type == CouponType.PERCENTAGE:
            if not (Decimal("0") <= coupon_data.value <= Decimal("100")):
                raise ValidationError("百分比折扣值必须在0到100之间")
        elif coupon_data.value < 0:
            raise ValidationError("固定折扣金额不能为负数")

        if coupon_data.applicable_to in (CouponScope.COURSE, CouponScope.BUNDLE) and not coupon_data.scope_id:
            raise ValidationError("课程券和套餐券必须指定适用对象")

        now = datetime.now()
        db_coupon = CouponDB(
            coupon_id=f"CPN_{uuid.uuid4().hex[:16].upper()}",
            code=coupon_data.code,
            coupon_type=coupon_data.coupon_type.value,
            value=coupon_data.value,
            min_purchase=coupon_data.min_purchase,
            max_discount=coupon_data.max_discount,
            usage_limit=coupon_data.usage_limit,
            usage_count=0,
            expires_at=coupon_data.expires_at,
            is_active=coupon_data.is_active,
            applicable_to=coupon_data.applicable_to.value,
            scope_id=coupon_data.scope_id,
            created_at=now,
            updated_at=now
        )
        try:
            await self.coupon_repo.create(db_coupon)
        except IntegrityError:
            raise ConflictError("优惠券代码已存在", {"code": coupon_data.code})

        logger.info(f"创建优惠券: {db_coupon.code}")
        return self.coupon_repo.to_model(db_coupon)

    async def get_coupon(self, code: str) -> Coupon:
        db_coupon = await self.coupon_repo.get_by_code(code)
        if not db_coupon:
            raise NotFoundError(COUPON_NOT_FOUND, {"code": code})
        return self.coupon_repo.to_model(db_coupon)

    async def list_coupons(self, include_inactive: bool = False) -> List[Coupon]:
        db_coupons = await self.coupon_repo.list_coupons(include_inactive=include_inactive)
        return [self.coupon_repo.to_model(db_coupon) for db_coupon in db_coupons]
