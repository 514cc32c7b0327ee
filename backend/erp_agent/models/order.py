"""
Order + OrderGoods: one header row per sale/purchase order, one line per product.
Status flow: pending -> confirmed. Stock moves only on confirmation.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from erp_agent.db.base import Base


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_no = Column(String(32), unique=True, index=True, nullable=True)  # SO/PO + date + id
    order_type = Column(String(16), nullable=False, default="SALE")  # SALE | PURCHASE
    customer = Column(String(128), nullable=False)  # customer for SALE, supplier for PURCHASE
    amount = Column(Numeric(12, 2), nullable=False, default=0)  # sum of line totals, freight excluded
    freight = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(32), nullable=False, default="pending")  # pending | confirmed | cancelled
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    goods = relationship(
        "OrderGoods",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderGoods.id",
    )


class OrderGoods(Base):
    __tablename__ = "order_goods"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    goods_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False, default=0)

    order = relationship("Order", back_populates="goods")
