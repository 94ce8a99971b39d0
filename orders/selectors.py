"""Selectors for read-only order queries and reporting."""

from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Count, Sum

from .models import Order


def orders_for_user(*, user):
    return Order.objects.filter(user_id=user.id).prefetch_related("items").order_by("-id")


def order_detail_queryset():
    return Order.objects.select_related("user").prefetch_related("items", "timeline")


def order_stats(*, start=None, end=None) -> dict:
    """Aggregate order counts and revenue, overall and per status.

    ``start``/``end`` bound ``created_at`` inclusively when given.
    """

    qs = Order.objects.all()
    if start is not None:
        qs = qs.filter(created_at__gte=start)
    if end is not None:
        qs = qs.filter(created_at__lte=end)

    overall = qs.aggregate(count=Count("id"), revenue=Sum("total"))
    total_orders = overall["count"] or 0
    total_revenue = overall["revenue"] or Decimal("0.00")
    average = Decimal("0.00")
    if total_orders:
        average = (total_revenue / total_orders).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    by_status = {}
    for row in qs.order_by().values("status").annotate(count=Count("id"), revenue=Sum("total")):
        by_status[row["status"]] = {"count": row["count"], "revenue": row["revenue"] or Decimal("0.00")}

    return {
        "total_orders": total_orders,
        "total_revenue": total_revenue,
        "average_order_value": average,
        "by_status": by_status,
    }
