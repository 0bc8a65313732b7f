"""
数据模型测试
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from pydantic import ValidationError

from app.core.config import ActivityPayoutTier
from app.core.money import to_money
from app.models.coupon import Coupon, CouponCreate, CouponScope, CouponType
from app.models.earnings import ActivityPolicy, EarningsSummary
from app.models.payment import PaymentRequest


def make_coupon(**kwargs) -> Coupon:
    fields = {"coupon_id": "CPN_1", "code": "SAVE20", "coupon_type": CouponType.PERCENTAGE, "value": Decimal("20")}
    fields.update(kwargs)
    return Coupon(**fields)


class TestActivityPolicy:
    """活跃计费分档"""

    def test_highest_satisfied_tier(self):
        policy = ActivityPolicy(
            per_student_rate=Decimal("0.02"),
            tiers=[
                ActivityPayoutTier(min_days=8, fraction=Decimal("0.5")),
                ActivityPayoutTier(min_days=15, fraction=Decimal("1")),
            ]
        )

        assert policy.fraction_for(0) == Decimal("0")
        assert policy.fraction_for(7) == Decimal("0")
        assert policy.fraction_for(8) == Decimal("0.5")
        assert policy.fraction_for(14) == Decimal("0.5")
        assert policy.fraction_for(30) == Decimal("1")

    def test_from_settings(self):
        policy = ActivityPolicy.from_settings()

        assert policy.per_student_rate == Decimal("0.02")
        assert policy.fraction_for(15) == Decimal("1")
        assert policy.fraction_for(14) == Decimal("0")

    def test_fraction_bounds(self):
        with pytest.raises(ValidationError):
            ActivityPayoutTier(min_days=10, fraction=Decimal("1.5"))


class TestCoupon:
    """优惠券模型"""

    def test_is_expired(self):
        now = datetime(2024, 5, 1, 12, 0)

        assert not make_coupon().is_expired(now)
        assert make_coupon(expires_at=now - timedelta(seconds=1)).is_expired(now)
        assert not make_coupon(expires_at=now + timedelta(days=1)).is_expired(now)

    def test_is_used_up(self):
        assert not make_coupon(usage_limit=None, usage_count=100).is_used_up()
        assert make_coupon(usage_limit=2, usage_count=2).is_used_up()
        assert not make_coupon(usage_limit=2, usage_count=1).is_used_up()

    def test_covers(self):
        everywhere = make_coupon()
        course_only = make_coupon(applicable_to=CouponScope.COURSE, scope_id="course_001")
        any_bundle = make_coupon(applicable_to=CouponScope.BUNDLE)

        assert everywhere.covers(CouponScope.SUBSCRIPTION, "pro")
        assert course_only.covers(CouponScope.COURSE, "course_001")
        assert not course_only.covers(CouponScope.COURSE, "course_002")
        assert not course_only.covers(CouponScope.ALL)
        assert any_bundle.covers(CouponScope.BUNDLE, "bundle_009")

    def test_create_normalizes_code(self):
        data = CouponCreate(code="  spring24 ", coupon_type=CouponType.FIXED, value=Decimal("5"))

        assert data.code == "SPRING24"


class TestEarningsSummary:
    """收益摘要一致性校验"""

    def test_consistent(self):
        summary = EarningsSummary(
            teacher_id="teacher_001",
            lifetime=Decimal("500"),
            paid_out=Decimal("100"),
            pending=Decimal("150"),
            available=Decimal("250")
        )

        assert summary.available == Decimal("250")

    def test_inconsistent(self):
        with pytest.raises(ValidationError):
            EarningsSummary(
                teacher_id="teacher_001",
                lifetime=Decimal("500"),
                paid_out=Decimal("100"),
                pending=Decimal("150"),
                available=Decimal("300")
            )


class TestMoney:

    def test_rounding(self):
        assert to_money(Decimal("0.016")) == Decimal("0.02")
        assert to_money(Decimal("0.015")) == Decimal("0.02")
        assert to_money(0.1 + 0.2) == Decimal("0.30")
        assert to_money(None) == Decimal("0.00")

    def test_currency_upper(self):
        request = PaymentRequest(amount=Decimal("10"), currency="eur", provider="stripe")

        assert request.currency == "EUR"
