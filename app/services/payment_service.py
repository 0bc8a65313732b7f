"""
支付业务服务层

支付状态只能从PENDING单向流转一次; 确认支付时, 只有真正完成流转的那次调用
才会核销优惠券、关联预约并归集老师收益
"""

from typing import List, Optional, Tuple
from datetime import datetime, timedelta
from decimal import Decimal
import logging
import uuid

from sqlalchemy.exc import IntegrityError

from app.core.config import settings
from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.core.money import ZERO, to_money
from app.models.booking import BookingStatus
from app.models.coupon import CouponScope
from app.models.entitlement import ContentType, MonetizationType
from app.models.payment import (
    Payment,
    PaymentCreate,
    PaymentStatus,
    PaymentStatusView,
    PaymentTargetType
)
from app.models.database.payment_db import PaymentDB
from app.repositories.booking_repository import BookingRepository
from app.repositories.payment_repository import PaymentRepository
from app.services.collaborators import Notifier
from app.services.coupon_service import COUPON_EXPIRED, USAGE_LIMIT_REACHED, CouponService
from app.services.earnings_service import EarningsService
from app.services.entitlement_service import EntitlementService

logger = logging.getLogger(__name__)

ALREADY_PURCHASED = "already purchased"

# 支付金额与标价允许的误差
PRICE_TOLERANCE = Decimal("0.01")


class PaymentService:
    """支付业务服务"""

    def __init__(
        self,
        payment_repo: PaymentRepository,
        booking_repo: BookingRepository,
        coupon_service: CouponService,
        entitlement_service: EntitlementService,
        earnings_service: EarningsService,
        notifier: Notifier
    ):
        self.payment_repo = payment_repo
        self.booking_repo = booking_repo
        self.coupon_service = coupon_service
        self.entitlement_service = entitlement_service
        self.earnings_service = earnings_service
        self.notifier = notifier
        self.deadline = timedelta(hours=settings.payment_deadline_hours)

    async def get_payment(self, payment_id: str) -> Payment:
        db_payment = await self.payment_repo.get_by_payment_id(payment_id, refresh=True)
        if not db_payment:
            raise NotFoundError("支付记录不存在", {"payment_id": payment_id})
        return self.payment_repo.to_model(db_payment)

    async def list_payer_payments(
        self,
        payer_id: str,
        limit: int = 20,
        offset: int = 0,
        status_filter: Optional[PaymentStatus] = None
    ) -> List[Payment]:
        db_payments = await self.payment_repo.get_payer_payments(
            payer_id,
            limit=min(max(limit, 1), 100),
            offset=max(offset, 0),
            status_filter=status_filter.value if status_filter else None
        )
        return [self.payment_repo.to_model(db_payment) for db_payment in db_payments]

    async def create_payment(self, payment_data: PaymentCreate) -> Payment:
        """创建待支付记录"""
        amount = to_money(payment_data.amount)
        if amount <= 0:
            raise ValidationError("支付金额必须大于0", {"amount": str(amount)})

        now = datetime.now()
        target_type = payment_data.target_type
        due_at = None
        check_duplicate = False
        expected_price = None
        scope, scope_id = CouponScope.ALL, None

        if target_type == PaymentTargetType.BOOKING:
            due_at, scope_id, expected_price = await self._check_booking_target(payment_data, now)
            scope, check_duplicate = CouponScope.COURSE, True
        elif target_type.value in {t.value for t in ContentType}:
            policy = await self.entitlement_service.find_policy(ContentType(target_type.value), payment_data.target_id)
            if policy:
                check_duplicate = policy.monetization_type == MonetizationType.PREMIUM
                scope, scope_id = CouponScope.COURSE, policy.course_id
                if check_duplicate:
                    expected_price = to_money(policy.price or 0)
                    if expected_price <= 0:
                        raise ValidationError("内容未设置价格", {"content_id": payment_data.target_id})
        elif target_type == PaymentTargetType.BUNDLE:
            scope, scope_id = CouponScope.BUNDLE, payment_data.target_id
        elif target_type == PaymentTargetType.SUBSCRIPTION:
            scope, scope_id = CouponScope.SUBSCRIPTION, payment_data.target_id

        if expected_price is not None and abs(amount - expected_price) > PRICE_TOLERANCE:
            logger.warning(f"支付金额与价格不符: target={payment_data.target_id}, amount={amount}, price={expected_price}")
            raise ValidationError("支付金额与价格不一致", {
                "amount": str(amount),
                "price": str(expected_price)
            })

        if check_duplicate:
            existing = await self.payment_repo.find_completed(
                payment_data.payer_id, payment_data.target_id, [target_type.value]
            )
            if existing:
                logger.warning(f"重复购买: payer={payment_data.payer_id}, target={payment_data.target_id}")
                raise ConflictError(ALREADY_PURCHASED, {"payment_id": existing.payment_id})

        discount, final_amount, coupon_code = ZERO, amount, None
        if payment_data.coupon_code:
            pricing = await self.coupon_service.price_with_coupon(
                payment_data.coupon_code, amount, scope, scope_id, now
            )
            if not pricing.valid:
                error_cls = ConflictError if pricing.error in (COUPON_EXPIRED, USAGE_LIMIT_REACHED) else ValidationError
                raise error_cls(pricing.error, {"coupon_code": pricing.coupon_code})
            discount, final_amount, coupon_code = pricing.discount, pricing.final_amount, pricing.coupon_code

        db_payment = PaymentDB(
            payment_id=f"PAY_{now:%Y%m%d%H%M%S}_{uuid.uuid4().hex[:8].upper()}",
            payer_id=payment_data.payer_id,
            target_type=target_type.value,
            target_id=payment_data.target_id,
            original_amount=amount,
            discount_amount=discount,
            amount=final_amount,
            currency=payment_data.currency,
            coupon_code=coupon_code,
            is_exclusive=check_duplicate,
            status=PaymentStatus.PENDING.value,
            provider=payment_data.provider,
            external_transaction_id=payment_data.external_transaction_id,
            due_at=due_at,
            paid_at=None,
            cancelled_at=None,
            created_at=now,
            updated_at=now
        )
        await self.payment_repo.create(db_payment)

        logger.info(f"创建支付: {db_payment.payment_id}, payer={db_payment.payer_id}, amount={final_amount}")
        return self.payment_repo.to_model(db_payment)

    async def _check_booking_target(
        self,
        payment_data: PaymentCreate,
        now: datetime
    ) -> Tuple[datetime, Optional[str], Decimal]:
        """校验预约支付, 返回 (支付截止时间, 课程ID, 预约价格)"""
        db_booking = await self.booking_repo.get_booking(payment_data.target_id)
        if not db_booking:
            raise NotFoundError("预约不存在", {"booking_id": payment_data.target_id})
        if db_booking.student_id != payment_data.payer_id:
            raise AuthorizationError("只能为自己的预约付款")
        if db_booking.status != BookingStatus.ACTIVE.value:
            raise ConflictError("预约已取消", {"booking_id": db_booking.booking_id})

        db_slot = await self.booking_repo.get_slot(db_booking.slot_id)
        if not db_slot:
            raise NotFoundError("预约对应的时段不存在", {"slot_id": db_booking.slot_id})

        due_at = db_slot.start_time - self.deadline
        if now > due_at:
            raise ValidationError("已超过支付截止时间", {"due_at": due_at.isoformat()})

        price = db_booking.price if db_booking.price is not None else db_slot.price
        price = to_money(price or 0)
        if price <= 0:
            raise ValidationError("预约未设置价格", {"booking_id": db_booking.booking_id})
        return due_at, db_slot.course_id, price

    async def confirm_payment(self, payment_id: str, external_transaction_id: Optional[str] = None) -> Payment:
        """确认支付, 重复确认直接返回已完成的记录"""
        db_payment = await self.payment_repo.get_by_payment_id(payment_id)
        if not db_payment:
            raise NotFoundError("支付记录不存在", {"payment_id": payment_id})
        if db_payment.status == PaymentStatus.COMPLETED.value:
            return self.payment_repo.to_model(db_payment)
        if db_payment.status == PaymentStatus.CANCELLED.value:
            raise ConflictError("支付已取消, 不能确认", {"payment_id": payment_id})

        try:
            changed = await self.payment_repo.mark_completed(payment_id, datetime.now(), external_transaction_id)
        except IntegrityError:
            # 同一付款人对同一目标已有另一笔完成的支付
            logger.warning(f"重复购买, 拒绝确认: {payment_id}, payer={db_payment.payer_id}, target={db_payment.target_id}")
            raise ConflictError(ALREADY_PURCHASED, {"payment_id": payment_id})
        db_payment = await self.payment_repo.get_by_payment_id(payment_id, refresh=True)
        payment = self.payment_repo.to_model(db_payment)

        if not changed:
            # 并发请求抢先完成了流转
            if payment.status == PaymentStatus.COMPLETED:
                return payment
            raise ConflictError("支付已取消, 不能确认", {"payment_id": payment_id})

        if payment.coupon_code:
            await self.coupon_service.redeem(
                payment.coupon_code, payment.payer_id, payment.payment_id, payment.discount_amount
            )
        if payment.target_type == PaymentTargetType.BOOKING:
            await self.booking_repo.attach_payment(payment.target_id, payment.payment_id)

        await self.earnings_service.record_payment_earning(payment)

        logger.info(f"支付已确认: {payment_id}, payer={payment.payer_id}, amount={payment.amount}")
        await self._notify(payment)
        return payment

    async def _notify(self, payment: Payment) -> None:
        try:
            await self.notifier.payment_confirmed(payment)
        except Exception as e:
            logger.error(f"支付完成通知发送失败 {payment.payment_id}: {e}")

    async def cancel_payment(self, payment_id: str) -> Payment:
        """取消待支付记录, 已完成的支付需要走退款流程"""
        db_payment = await self.payment_repo.get_by_payment_id(payment_id)
        if not db_payment:
            raise NotFoundError("支付记录不存在", {"payment_id": payment_id})
        if db_payment.status == PaymentStatus.CANCELLED.value:
            return self.payment_repo.to_model(db_payment)
        if db_payment.status == PaymentStatus.COMPLETED.value:
            logger.warning(f"取消失败, 支付已完成: {payment_id}")
            raise ConflictError("支付已完成, 不能取消", {"payment_id": payment_id})

        changed = await self.payment_repo.mark_cancelled(payment_id, datetime.now())
        db_payment = await self.payment_repo.get_by_payment_id(payment_id, refresh=True)
        if not changed and db_payment.status == PaymentStatus.COMPLETED.value:
            raise ConflictError("支付已完成, 不能取消", {"payment_id": payment_id})

        if changed:
            logger.info(f"支付已取消: {payment_id}")
        return self.payment_repo.to_model(db_payment)

    async def get_payment_status(
        self,
        payer_id: str,
        content_type: ContentType,
        content_id: str
    ) -> PaymentStatusView:
        """用户对某内容的支付状态"""
        requirements = await self.entitlement_service.get_access_requirements(content_id, content_type)
        has_access = await self.entitlement_service.can_access(payer_id, content_id, content_type)

        db_payment = await self.payment_repo.find_completed(payer_id, content_id, [content_type.value])
        if db_payment is None:
            db_payment = await self.payment_repo.get_latest_for_target(payer_id, content_type.value, content_id)
        payment = self.payment_repo.to_model(db_payment) if db_payment else None

        paid = payment is not None and payment.is_completed()
        deadline = payment.due_at if payment else None
        return PaymentStatusView(
            required=requirements.requires_purchase,
            paid=paid,
            has_access=has_access,
            payment=payment,
            deadline=deadline,
            is_overdue=bool(deadline and not paid and datetime.now() > deadline)
        )
