"""Order create/query/delete/confirm. Stock moves only when an order is confirmed."""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from erp_agent.core.exceptions import OrderAlreadyConfirmedError, OrderNotFoundError
from erp_agent.models.order import Order, OrderGoods
from erp_agent.services import inventory_service

logger = logging.getLogger(__name__)

SALE = "SALE"
PURCHASE = "PURCHASE"

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"


@dataclass
class Page:
    items: List[Order] = field(default_factory=list)
    total: int = 0
    page: int = 0
    size: int = 10


def normalize_order_type(order_type: Optional[str]) -> str:
    """customer/SALE -> SALE, purchase/PURCHASE -> PURCHASE, anything else -> SALE."""
    value = (getattr(order_type, "value", order_type) or "").strip().upper()
    if value == PURCHASE:
        return PURCHASE
    return SALE


def _order_no(order: Order) -> str:
    prefix = "PO" if order.order_type == PURCHASE else "SO"
    return f"{prefix}{datetime.now():%Y%m%d}{order.id:05d}"


def create_order(db: Session, order_type: str, customer: str, lines: Iterable) -> Order:
    """Persist a pending order. ``lines`` are ProductLine-like (name, quantity, unit_price)."""
    order = Order(
        order_type=normalize_order_type(order_type),
        customer=customer.strip(),
        status=STATUS_PENDING,
    )
    total = Decimal("0")
    for line in lines:
        price = Decimal(str(max(float(line.unit_price), 0.0)))
        order.goods.append(OrderGoods(
            goods_name=line.name,
            quantity=int(line.quantity),
            unit_price=price,
        ))
        total += price * int(line.quantity)
    order.amount = total

    db.add(order)
    db.flush()  # need id for the order number
    order.order_no = _order_no(order)
    db.commit()
    db.refresh(order)
    logger.info(f"✅ Order created: {order.order_no} ({order.order_type}, ¥{float(order.amount):.2f})")
    return order


def get_order(db: Session, order_id: int) -> Optional[Order]:
    return db.query(Order).filter(Order.id == order_id).first()


def get_orders_by_type(db: Session, order_type: str, page: int = 0, size: int = 10) -> Page:
    """Newest first. Unknown types give an empty page."""
    value = (getattr(order_type, "value", order_type) or "").strip().upper()
    if value == "CUSTOMER":
        value = SALE
    if value not in (SALE, PURCHASE):
        logger.warning(f"Unknown order type: {order_type}")
        return Page(page=page, size=size)

    query = db.query(Order).filter(Order.order_type == value)
    total = query.count()
    items = query.order_by(Order.id.desc()).offset(page * size).limit(size).all()
    return Page(items=items, total=total, page=page, size=size)


def list_orders(db: Session) -> List[Order]:
    return db.query(Order).order_by(Order.id.desc()).all()


def delete_order(db: Session, order_id: int) -> None:
    order = get_order(db, order_id)
    if order is None:
        raise OrderNotFoundError(order_id)
    db.delete(order)
    db.commit()
    logger.info(f"🗑️ Order deleted: id={order_id}")


def confirm_order(db: Session, order_id: int, freight: float = 0.0) -> Order:
    """pending -> confirmed. Purchases add stock, sales remove it."""
    order = get_order(db, order_id)
    if order is None:
        raise OrderNotFoundError(order_id)
    if order.status == STATUS_CONFIRMED:
        label = "采购订单" if order.order_type == PURCHASE else "销售订单"
        raise OrderAlreadyConfirmedError(order_id, f"{label} {order.order_no} 已确认，请勿重复确认")

    try:
        for line in order.goods:
            if order.order_type == PURCHASE:
                inventory_service.stock_in(db, line.goods_name, line.quantity, commit=False)
            else:
                inventory_service.stock_out(db, line.goods_name, line.quantity, commit=False)
        order.status = STATUS_CONFIRMED
        order.freight = Decimal(str(freight or 0))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info(f"✅ Order confirmed: {order.order_no} freight=¥{float(order.freight):.2f}")
    return order
