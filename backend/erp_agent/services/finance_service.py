"""
Order statistics for the sales query, order analysis and finance analysis.

All figures are computed from Order rows in Python; amounts are floats in
yuan. Margin is (sales - purchases) / sales * 100 and is None when there are
no sales.
"""
import logging
import re
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from erp_agent.models.order import Order
from erp_agent.services import order_service

logger = logging.getLogger(__name__)

TOP_CUSTOMERS = 5
RECENT_ORDERS = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def time_window(time_range: str, now: Optional[datetime] = None) -> Optional[Tuple[datetime, datetime]]:
    """[start, end) for a Chinese time phrase, None for "all time" or unknown phrases."""
    now = now or _utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    text = (time_range or "").strip()

    if text in ("今天", "今日"):
        return today, today + timedelta(days=1)
    if text == "昨天":
        return today - timedelta(days=1), today
    if text in ("本周", "这周"):
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=7)
    if text == "上周":
        start = today - timedelta(days=today.weekday() + 7)
        return start, start + timedelta(days=7)
    if text in ("本月", "这个月"):
        start = today.replace(day=1)
        return start, now + timedelta(seconds=1)
    if text in ("上月", "上个月"):
        end = today.replace(day=1)
        return (end - timedelta(days=1)).replace(day=1), end
    if text in ("今年", "本年"):
        return today.replace(month=1, day=1), now + timedelta(seconds=1)
    if text == "去年":
        end = today.replace(month=1, day=1)
        return end.replace(year=end.year - 1), end

    m = re.match(r"(?:最近|近)(\d+)(天|周|个月)", text)
    if m:
        n = int(m.group(1))
        days = {"天": 1, "周": 7, "个月": 30}[m.group(2)] * n
        return now - timedelta(days=days), now + timedelta(seconds=1)
    return None


def filter_orders(
    orders: Iterable[Order],
    time_range: str = "",
    customer: str = "",
    now: Optional[datetime] = None,
) -> List[Order]:
    window = time_window(time_range, now)
    result = []
    for order in orders:
        if customer and customer not in (order.customer or ""):
            continue
        if window:
            created = _naive_utc(order.created_at)
            if created is None or not (window[0] <= created < window[1]):
                continue
        result.append(order)
    return result


def summarize_orders(orders: Iterable[Order]) -> Dict:
    orders = list(orders)
    sales = [o for o in orders if o.order_type == order_service.SALE]
    purchases = [o for o in orders if o.order_type == order_service.PURCHASE]
    sale_total = sum(float(o.amount or 0) for o in sales)
    purchase_total = sum(float(o.amount or 0) for o in purchases)

    per_customer: Dict[str, float] = defaultdict(float)
    order_counts: Counter = Counter()
    for o in orders:
        per_customer[o.customer] += float(o.amount or 0)
        order_counts[o.customer] += 1
    top_customers = sorted(
        per_customer.items(), key=lambda kv: (order_counts[kv[0]], kv[1]), reverse=True
    )[:TOP_CUSTOMERS]

    status_counts = Counter(o.status or order_service.STATUS_PENDING for o in orders)
    total_amount = sale_total + purchase_total

    return {
        "total_count": len(orders),
        "sale_count": len(sales),
        "purchase_count": len(purchases),
        "status_counts": dict(status_counts),
        "pending_count": status_counts.get(order_service.STATUS_PENDING, 0),
        "sale_total": sale_total,
        "purchase_total": purchase_total,
        "gross_profit": sale_total - purchase_total,
        "margin": (sale_total - purchase_total) / sale_total * 100 if sale_total > 0 else None,
        "top_customers": [
            {"customer": name, "amount": amount, "orders": order_counts[name]}
            for name, amount in top_customers
        ],
        "customer_count": len(per_customer),
        "average_order_value": total_amount / len(orders) if orders else 0.0,
        "recent_orders": sorted(orders, key=lambda o: o.id, reverse=True)[:RECENT_ORDERS],
    }


def sales_summary(db: Session, time_range: str = "", customer: str = "", now: Optional[datetime] = None) -> Dict:
    """Sales figures over every sale order inside the time window."""
    sales = db.query(Order).filter(Order.order_type == order_service.SALE).all()
    orders = filter_orders(sales, time_range=time_range, customer=customer, now=now)
    total = sum(float(o.amount or 0) for o in orders)
    customers = sorted({o.customer for o in orders})
    return {
        "time_range": time_range or "全部",
        "order_count": len(orders),
        "total": total,
        "average": total / len(orders) if orders else 0.0,
        "customers": customers,
    }


def finance_summary(db: Session, time_range: str = "") -> Dict:
    """Income/expense view: confirmed vs pending money on both sides."""
    orders = filter_orders(order_service.list_orders(db), time_range=time_range)
    summary = summarize_orders(orders)

    def total(order_type: str, status: Optional[str] = None) -> float:
        return sum(
            float(o.amount or 0) for o in orders
            if o.order_type == order_type and (status is None or o.status == status)
        )

    summary.update({
        "time_range": time_range or "全部",
        "confirmed_income": total(order_service.SALE, order_service.STATUS_CONFIRMED),
        "pending_income": total(order_service.SALE, order_service.STATUS_PENDING),
        "confirmed_expense": total(order_service.PURCHASE, order_service.STATUS_CONFIRMED),
        "pending_expense": total(order_service.PURCHASE, order_service.STATUS_PENDING),
        "freight_total": sum(float(o.freight or 0) for o in orders),
    })
    summary["net_cash"] = summary["confirmed_income"] - summary["confirmed_expense"] - summary["freight_total"]
    return summary
