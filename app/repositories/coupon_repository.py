"""
优惠券数据库操作层
"""

from typing import List, Optional
from datetime import datetime

from sqlalchemy import select, update, and_, or_, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.coupon import Coupon, CouponRedemption
from app.models.database.coupon_db import CouponDB, CouponRedemptionDB


class CouponRepository:
    """优惠券数据库操作类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_code(self, code: str, refresh: bool = False) -> Optional[CouponDB]:
        """根据优惠券代码获取优惠券, 代码不区分大小写"""
        query = select(CouponDB).where(CouponDB.code == code.strip().upper())
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create(self, db_coupon: CouponDB) -> CouponDB:
        """保存新优惠券, 代码重复时抛出IntegrityError"""
        async with self.db.begin_nested():
            self.db.add(db_coupon)
        return db_coupon

    async def list_coupons(self, include_inactive: bool = False, limit: int = 100) -> List[CouponDB]:
        """获取优惠券列表"""
        query = select(CouponDB)
        if not include_inactive:
            query = query.where(CouponDB.is_active.is_(True))
        result = await self.db.execute(query.order_by(desc(CouponDB.created_at)).limit(limit))
        return result.scalars().all()

    async def increment_usage(self, coupon_id: str, now: datetime) -> bool:
        """使用次数+1, 已达上限时不更新"""
        result = await self.db.execute(
            update(CouponDB)
            .where(
                and_(
                    CouponDB.coupon_id == coupon_id,
                    or_(
                        CouponDB.usage_limit.is_(None),
                        CouponDB.usage_count < CouponDB.usage_limit
                    )
                )
            )
            .values(usage_count=CouponDB.usage_count + 1, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def get_redemption_by_payment(self, payment_id: str) -> Optional[CouponRedemptionDB]:
        """获取某笔支付的核销记录"""
        result = await self.db.execute(
            select(CouponRedemptionDB).where(CouponRedemptionDB.payment_id == payment_id)
        )
        return result.scalar_one_or_none()

    async def add_redemption(self, db_redemption: CouponRedemptionDB) -> CouponRedemptionDB:
        """保存核销记录, 同一支付重复核销时抛出IntegrityError"""
        async with self.db.begin_nested():
            self.db.add(db_redemption)
        return db_redemption

    def to_model(self, db_coupon: CouponDB) -> Coupon:
        """转换为Pydantic模型"""
        return Coupon(
            coupon_id=db_coupon.coupon_id,
            code=db_coupon.code,
            coupon_type=db_coupon.coupon_type,
            value=db_coupon.value,
            min_purchase=db_coupon.min_purchase,
            max_discount=db_coupon.max_discount,
            usage_limit=db_coupon.usage_limit,
            usage_count=db_coupon.usage_count or 0,
            expires_at=db_coupon.expires_at,
            is_active=db_coupon.is_active,
            applicable_to=db_coupon.applicable_to,
            scope_id=db_coupon.scope_id,
            created_at=db_coupon.created_at,
            updated_at=db_coupon.updated_at
        )

    def to_redemption_model(self, db_redemption: CouponRedemptionDB) -> CouponRedemption:
        return CouponRedemption(
            redemption_id=db_redemption.redemption_id,
            coupon_id=db_redemption.coupon_id,
            code=db_redemption.code,
            user_id=db_redemption.user_id,
            payment_id=db_redemption.payment_id,
            discount_amount=db_redemption.discount_amount,
            redeemed_at=db_redemption.redeemed_at
        )
