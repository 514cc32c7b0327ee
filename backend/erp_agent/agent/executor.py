"""
Command Dispatcher: runs a validated Command against the business services.

SAFETY MODEL:
- Dangerous actions reach this module only after the confirmation gate
- Commands are re-validated here; an incomplete command never touches the DB
- Business failures come back as typed DispatchResult failures, never retried

SUPPORTED ACTIONS (table checked against ActionType at import):
- create_order, delete_order, confirm_order, query_order
- query_sales, query_inventory, analyze_order, analyze_finance
- unknown -> help text listing the vocabulary
"""
import logging
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from erp_agent.agent import response_composer as composer
from erp_agent.core.exceptions import (
    BusinessError,
    InsufficientStockError,
    OrderAlreadyConfirmedError,
    OrderNotFoundError,
)
from erp_agent.models.order import Order
from erp_agent.schemas.nli import DispatchResult, FailureKind
from erp_agent.services import finance_service, inventory_service, order_service
from erp_ai.ai_service import AIService
from erp_ai.command_parser import validate_command
from erp_ai.exceptions import AIServiceError
from erp_ai.intent_schema import ActionType, Command, OrderType

logger = logging.getLogger(__name__)

MAX_LISTED_ORDERS = 5
MAX_LISTED_GOODS = 10
KEYWORD_SEARCH_WINDOW = 50
ANALYSIS_WINDOW = 100
LOW_STOCK_THRESHOLD = 10

HANDLER_NAMES: Dict[ActionType, str] = {
    ActionType.CREATE_ORDER: "_create_order",
    ActionType.DELETE_ORDER: "_delete_order",
    ActionType.CONFIRM_ORDER: "_confirm_order",
    ActionType.QUERY_ORDER: "_query_order",
    ActionType.QUERY_SALES: "_query_sales",
    ActionType.QUERY_INVENTORY: "_query_inventory",
    ActionType.ANALYZE_ORDER: "_analyze_order",
    ActionType.ANALYZE_FINANCE: "_analyze_finance",
    ActionType.UNKNOWN: "_unknown",
}

_missing = set(ActionType) - set(HANDLER_NAMES)
if _missing:
    raise RuntimeError(f"No dispatcher handler for: {sorted(a.value for a in _missing)}")


def _matches_keyword(order: Order, keyword: str) -> bool:
    needle = keyword.lower()
    if needle in (order.customer or "").lower() or needle in (order.order_no or "").lower():
        return True
    return any(needle in (line.goods_name or "").lower() for line in order.goods)


class CommandDispatcher:

    def __init__(self, db: Session, ai: Optional[AIService] = None):
        self.db = db
        self.ai = ai
        self.handlers: Dict[ActionType, Callable[[Command], str]] = {
            action: getattr(self, name) for action, name in HANDLER_NAMES.items()
        }

    def dispatch(self, command: Command) -> DispatchResult:
        problem = validate_command(command)
        if problem:
            return DispatchResult(success=False, message=problem, failure=FailureKind.VALIDATION)

        logger.info(f"🚀 Dispatching {command.action.value}")
        handler = self.handlers[command.action]
        try:
            message = handler(command)
        except OrderNotFoundError as e:
            return DispatchResult(success=False, message=self._not_found_message(command, e), failure=FailureKind.NOT_FOUND)
        except OrderAlreadyConfirmedError as e:
            return DispatchResult(
                success=False,
                message=f"❌ 确认订单失败：{e.message}\n💡 可以说'查询订单'查看订单当前状态",
                failure=FailureKind.ALREADY_CONFIRMED,
            )
        except InsufficientStockError as e:
            return DispatchResult(
                success=False,
                message=f"❌ 确认订单失败：{e.message}\n💡 请先采购补货或调整数量",
                failure=FailureKind.INSUFFICIENT_STOCK,
            )
        except BusinessError as e:
            return DispatchResult(
                success=False,
                message=f"❌ {composer.action_description(command.action)}失败：{e.message}\n💡 请检查输入后重试",
                failure=FailureKind.UNKNOWN,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Database error during {command.action.value}: {e}", exc_info=True)
            return DispatchResult(
                success=False,
                message=f"❌ {composer.action_description(command.action)}失败：数据库错误\n💡 请稍后重试",
                failure=FailureKind.UNKNOWN,
            )

        success = command.action != ActionType.UNKNOWN
        return DispatchResult(success=success, message=message, failure=None if success else FailureKind.UNKNOWN)

    @staticmethod
    def _not_found_message(command: Command, error: OrderNotFoundError) -> str:
        if command.action == ActionType.DELETE_ORDER:
            return f"❌ 找不到ID为 {error.order_id} 的订单\n💡 请检查订单ID是否正确"
        return "❌ 找不到指定的订单\n💡 请检查订单ID是否正确"

    def _orders(self, order_type: Optional[OrderType], size: int) -> List[Order]:
        types = [order_type.value] if order_type else [order_service.SALE, order_service.PURCHASE]
        orders: List[Order] = []
        for value in types:
            orders.extend(order_service.get_orders_by_type(self.db, value, 0, size).items)
        return sorted(orders, key=lambda o: o.id, reverse=True)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _create_order(self, command: Command) -> str:
        order_type = command.order_type or OrderType.SALE
        order = order_service.create_order(self.db, order_type.value, command.customer, command.products)
        purchase = order.order_type == order_service.PURCHASE
        type_icon, type_desc, partner = ("📦", "采购", "供应商") if purchase else ("💰", "销售", "客户")
        total_items = sum(line.quantity for line in command.products)

        message = f"✅ {type_icon}{type_desc}订单创建成功！\n\n"
        message += f"📋 订单号：{order.order_no} | {partner}：{order.customer} | 金额：¥{float(order.amount):.2f}\n"
        message += f"📦 商品：{len(command.products)}种/{total_items}件"
        if len(command.products) <= 2:
            message += " (" + ", ".join(f"{line.name}×{line.quantity}" for line in command.products) + ")"
        message += f"\n\n💡 可以说'查询订单{order.order_no}'查看详情"
        return message

    def _delete_order(self, command: Command) -> str:
        order_service.delete_order(self.db, command.order_id)
        return f"✅ 订单删除成功\n\n🗑️ 已删除订单ID：{command.order_id}"

    def _confirm_order(self, command: Command) -> str:
        freight = command.freight or 0.0
        order = order_service.confirm_order(self.db, command.order_id, freight)
        amount = float(order.amount)
        return (
            "✅ 订单确认成功！\n\n📋 确认详情：\n"
            f"• 订单号：{order.order_no}\n"
            f"• 客户：{order.customer}\n"
            f"• 订单金额：¥{amount:.2f}\n"
            f"• 运费：¥{freight:.2f}\n"
            f"• 总计：¥{amount + freight:.2f}"
        )

    def _query_order(self, command: Command) -> str:
        keyword = command.keyword
        limit = command.limit if command.limit > 0 else 10
        orders = self._orders(command.order_type, max(limit, KEYWORD_SEARCH_WINDOW) if keyword else limit)
        if keyword:
            orders = [o for o in orders if _matches_keyword(o, keyword)]
        orders = orders[:limit]

        if not orders:
            search_info = f"（关键词'{keyword}'）" if keyword else ""
            return (
                f"📭 没有找到相关订单{search_info}\n\n"
                "💡 试试：\n• 查询所有订单\n• 查询销售订单\n• 查询客户张三的订单"
            )

        message = f"🔍 查询到 {len(orders)} 个订单：\n\n"
        for order in orders[:MAX_LISTED_ORDERS]:
            type_icon = "💰" if order.order_type == order_service.SALE else "📦"
            message += (
                f"{type_icon} {order.order_no} | {order.customer} | "
                f"¥{float(order.amount):.2f} {composer.status_icon(order.status)}\n"
            )
        if len(orders) > MAX_LISTED_ORDERS:
            message += f"\n... 还有 {len(orders) - MAX_LISTED_ORDERS} 个订单\n"
        message += "\n💡 如需详细分析，请说：'分析这些订单'"
        return message

    def _query_sales(self, command: Command) -> str:
        summary = finance_service.sales_summary(self.db, command.time_range, command.customer)
        if summary["order_count"] == 0:
            return "📊 暂无销售数据" + (f"（客户：{command.customer}）" if command.customer else "")

        header = f"（{command.time_range}）" if command.time_range else ""
        message = f"💰 销售数据统计{header}：\n\n"
        message += f"📈 总销售额：¥{summary['total']:.2f}\n"
        message += f"📋 订单数量：{summary['order_count']}个\n"
        message += f"📊 平均订单金额：¥{summary['average']:.2f}\n"
        if command.customer:
            message += f"👤 客户：{command.customer}\n"
        return message

    def _query_inventory(self, command: Command) -> str:
        keyword = command.keyword or next((line.name for line in command.products if line.name), "")
        goods = inventory_service.list_inventory(self.db, keyword)
        if not goods:
            search_info = f"（关键词'{keyword}'）" if keyword else ""
            return (
                f"📭 没有找到库存记录{search_info}\n\n"
                "💡 试试：\n• 查询所有库存\n• 从供应商采购商品并确认订单入库"
            )

        message = f"📦 库存查询结果（共{len(goods)}种商品）：\n\n"
        for item in goods[:MAX_LISTED_GOODS]:
            warning = " ⚠️ 库存偏低" if (item.stock or 0) < LOW_STOCK_THRESHOLD else ""
            message += f"• {item.name}：{item.stock}{item.unit or '个'} | ¥{float(item.price or 0):.2f}{warning}\n"
        if len(goods) > MAX_LISTED_GOODS:
            message += f"\n... 还有 {len(goods) - MAX_LISTED_GOODS} 种商品\n"
        low = sum(1 for item in goods if (item.stock or 0) < LOW_STOCK_THRESHOLD)
        if low:
            message += f"\n💡 有 {low} 种商品库存偏低，建议及时补货"
        return message

    def _analyze_order(self, command: Command) -> str:
        orders = self._orders(command.order_type, ANALYSIS_WINDOW)
        customer = command.customer or command.keyword
        if customer:
            orders = [o for o in orders if customer in (o.customer or "")]
        if not orders:
            return "📭 没有找到订单数据进行分析\n\n💡 请先创建一些订单，或调整筛选条件"

        summary = finance_service.summarize_orders(orders)
        if self.ai is not None and self.ai.is_available():
            try:
                analysis = self.ai.analyze_order_data(composer.build_order_analysis_data(summary))
                return "🤖 AI订单分析报告\n\n" + composer.clean_markdown(analysis)
            except AIServiceError as e:
                logger.warning(f"⚠️ AI order analysis failed, using local analysis: {e.message}")
        return composer.local_order_analysis(summary)

    def _analyze_finance(self, command: Command) -> str:
        summary = finance_service.finance_summary(self.db, command.time_range)
        if summary["total_count"] == 0:
            return "📭 暂无财务数据\n\n💡 请先创建并确认一些订单"

        if self.ai is not None and self.ai.is_available():
            try:
                analysis = self.ai.analyze_data(composer.build_finance_data(summary), "FINANCE")
                return "🤖 AI财务分析报告\n\n" + composer.clean_markdown(analysis)
            except AIServiceError as e:
                logger.warning(f"⚠️ AI finance analysis failed, using local report: {e.message}")
        return composer.local_finance_report(summary)

    def _unknown(self, command: Command) -> str:
        return composer.unknown_action_reply(command.raw_action or command.action.value)
