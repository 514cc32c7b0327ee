from erp_agent.models.order import Order, OrderGoods
from erp_agent.models.goods import Goods
from erp_agent.models.pending_command import PendingCommand

__all__ = ["Order", "OrderGoods", "Goods", "PendingCommand"]
