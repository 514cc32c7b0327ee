"""
Business-domain exceptions raised by the service layer.

The dispatcher maps each subclass to a typed failure; nothing here knows about
HTTP or chat replies.
"""


class BusinessError(Exception):
    """Base class for failures reported by order/inventory/finance services."""

    kind = "unknown"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class OrderNotFoundError(BusinessError):
    kind = "not_found"

    def __init__(self, order_id: int, message: str = "订单不存在"):
        super().__init__(message)
        self.order_id = order_id


class OrderAlreadyConfirmedError(BusinessError):
    kind = "already_confirmed"

    def __init__(self, order_id: int, message: str = "订单请勿重复确认"):
        super().__init__(message)
        self.order_id = order_id


class InsufficientStockError(BusinessError):
    kind = "insufficient_stock"

    def __init__(self, goods_name: str, available: int, requested: int):
        super().__init__(f"商品'{goods_name}'库存不足（库存{available}，需要{requested}）")
        self.goods_name = goods_name
        self.available = available
        self.requested = requested
