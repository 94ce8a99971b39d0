"""Coupon lookup: resolve a code to the discount rule it grants.

The active implementation is chosen by the ``COUPON_LOOKUP`` setting (dotted
path to a class with a ``lookup(code)`` method); services also accept an
explicit ``lookup`` for tests and one-off callers.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from common.choices import DiscountType
from django.conf import settings
from django.db.models import Q
from django.utils import timezone
from django.utils.module_loading import import_string

DEFAULT_COUPON_LOOKUP = "coupons.lookup.StaticCouponLookup"


@dataclass(frozen=True)
class CouponRule:
    code: str
    discount_value: Decimal
    discount_type: str
    expires_at: datetime | None = None


class CouponLookup(Protocol):
    def lookup(self, code: str) -> CouponRule | None: ...


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


class StaticCouponLookup:
    """Fixed promotional table shipped with the storefront."""

    RULES = {
        "WELCOME10": CouponRule("WELCOME10", Decimal("10"), DiscountType.PERCENTAGE),
        "SAVE20": CouponRule("SAVE20", Decimal("20.00"), DiscountType.FIXED),
        "FREESHIP": CouponRule("FREESHIP", Decimal("0.00"), DiscountType.FIXED),
    }

    def lookup(self, code: str) -> CouponRule | None:
        return self.RULES.get(normalize_code(code))


class DatabaseCouponLookup:
    """Resolve codes against active ``coupons.Coupon`` rows that have started."""

    def lookup(self, code: str) -> CouponRule | None:
        from .models import Coupon

        now = timezone.now()
        coupon = (
            Coupon.objects.filter(code=normalize_code(code), is_active=True)
            .filter(Q(starts_at__isnull=True) | Q(starts_at__lte=now))
            .first()
        )
        if coupon is None:
            return None
        return CouponRule(
            code=coupon.code,
            discount_value=coupon.value,
            discount_type=coupon.discount_type,
            expires_at=coupon.ends_at,
        )


def get_coupon_lookup() -> CouponLookup:
    path = getattr(settings, "COUPON_LOOKUP", DEFAULT_COUPON_LOOKUP)
    return import_string(path)()


def validate_coupon(code: str | None, *, lookup: CouponLookup | None = None, now=None) -> CouponRule | None:
    """Return the rule for ``code`` when it is known and not yet expired."""

    normalized = normalize_code(code)
    if not normalized:
        return None
    rule = (lookup or get_coupon_lookup()).lookup(normalized)
    if rule is None:
        return None
    now = now or timezone.now()
    if rule.expires_at is not None and now >= rule.expires_at:
        return None
    return rule
