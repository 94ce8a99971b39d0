from datetime import timedelta
from decimal import Decimal

import pytest
from coupons.lookup import (
    CouponRule,
    DatabaseCouponLookup,
    StaticCouponLookup,
    get_coupon_lookup,
    normalize_code,
    validate_coupon,
)
from coupons.models import Coupon
from django.utils import timezone


class _FixedLookup:
    def __init__(self, rule):
        self.rule = rule
        self.calls = []

    def lookup(self, code):
        self.calls.append(code)
        return self.rule if code == self.rule.code else None


def test_normalize_code_trims_and_uppercases():
    assert normalize_code("  welcome10 ") == "WELCOME10"
    assert normalize_code(None) == ""


def test_static_lookup_known_codes():
    lookup = StaticCouponLookup()
    assert lookup.lookup("welcome10").discount_value == Decimal("10")
    assert lookup.lookup("WELCOME10").discount_type == "percentage"
    assert lookup.lookup("SAVE20").discount_type == "fixed"
    assert lookup.lookup("FREESHIP").discount_value == Decimal("0.00")
    assert lookup.lookup("NOPE") is None


def test_validate_coupon_rejects_blank_without_lookup():
    lookup = _FixedLookup(CouponRule("X", Decimal("1"), "fixed"))
    assert validate_coupon("   ", lookup=lookup) is None
    assert lookup.calls == []


def test_validate_coupon_honours_expiry():
    now = timezone.now()
    rule = CouponRule("LATE", Decimal("5.00"), "fixed", expires_at=now)
    lookup = _FixedLookup(rule)

    assert validate_coupon("late", lookup=lookup, now=now - timedelta(seconds=1)) == rule
    assert validate_coupon("late", lookup=lookup, now=now) is None


def test_default_lookup_follows_setting(settings):
    settings.COUPON_LOOKUP = "coupons.lookup.DatabaseCouponLookup"
    assert isinstance(get_coupon_lookup(), DatabaseCouponLookup)
    settings.COUPON_LOOKUP = "coupons.lookup.StaticCouponLookup"
    assert isinstance(get_coupon_lookup(), StaticCouponLookup)


@pytest.mark.django_db
def test_database_lookup_filters_inactive_and_future():
    now = timezone.now()
    Coupon.objects.create(code=" spring ", discount_type=Coupon.TYPE_PERCENTAGE, value=Decimal("15.00"))
    Coupon.objects.create(code="OFF", value=Decimal("5.00"), is_active=False)
    Coupon.objects.create(code="SOON", value=Decimal("5.00"), starts_at=now + timedelta(days=1))
    Coupon.objects.create(code="OLD", value=Decimal("5.00"), ends_at=now - timedelta(minutes=1))

    lookup = DatabaseCouponLookup()
    rule = lookup.lookup("Spring")
    assert rule.code == "SPRING"
    assert rule.discount_value == Decimal("15.00")
    assert lookup.lookup("OFF") is None
    assert lookup.lookup("SOON") is None
    # Found, but validation rejects it as expired
    assert lookup.lookup("OLD") is not None
    assert validate_coupon("OLD", lookup=lookup) is None
