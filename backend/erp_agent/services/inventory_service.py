"""Goods and stock levels. Used by order confirmation and the inventory query."""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from erp_agent.core.exceptions import InsufficientStockError
from erp_agent.models.goods import Goods

logger = logging.getLogger(__name__)


def find_goods(db: Session, name: str) -> Optional[Goods]:
    """Exact name, then case-insensitive. Never a substring: selling "水" must not draw on "洗发水".

    Substring search is list_inventory's job.
    """
    name = (name or "").strip()
    if not name:
        return None
    goods = db.query(Goods).filter(Goods.name == name).first()
    if goods:
        return goods
    return db.query(Goods).filter(Goods.name.ilike(name)).first()


def list_inventory(db: Session, keyword: str = "") -> List[Goods]:
    query = db.query(Goods)
    if keyword:
        query = query.filter(Goods.name.ilike(f"%{keyword.strip()}%"))
    return query.order_by(Goods.name).all()


def get_or_create_goods(db: Session, name: str) -> Goods:
    goods = find_goods(db, name)
    if goods:
        return goods
    goods = Goods(name=name.strip(), stock=0)
    db.add(goods)
    db.flush()
    return goods


def stock_in(db: Session, name: str, quantity: int, commit: bool = True) -> Goods:
    goods = get_or_create_goods(db, name)
    goods.stock = (goods.stock or 0) + int(quantity)
    if commit:
        db.commit()
        db.refresh(goods)
    logger.debug(f"📦 Stock in: {name} +{quantity} -> {goods.stock}")
    return goods


def stock_out(db: Session, name: str, quantity: int, commit: bool = True) -> Optional[Goods]:
    """Remove stock for tracked goods. Untracked goods are sold without a stock check."""
    goods = find_goods(db, name)
    if goods is None:
        logger.debug(f"Stock out skipped, goods not tracked: {name}")
        return None
    if (goods.stock or 0) < int(quantity):
        raise InsufficientStockError(goods.name, goods.stock or 0, int(quantity))
    goods.stock = goods.stock - int(quantity)
    if commit:
        db.commit()
        db.refresh(goods)
    logger.debug(f"📦 Stock out: {goods.name} -{quantity} -> {goods.stock}")
    return goods
