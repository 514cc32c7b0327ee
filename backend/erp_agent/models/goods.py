from sqlalchemy import Column, Integer, String, Numeric
from erp_agent.db.base import Base


class Goods(Base):
    """Catalogue item with its tracked stock level."""
    __tablename__ = "goods"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    stock = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(10, 2), nullable=False, default=0)  # default sale price per unit
    unit = Column(String(16), nullable=True)  # 个, 瓶, 斤 ...
