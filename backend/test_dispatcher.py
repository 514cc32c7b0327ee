"""
Command dispatcher tests: handler table, success messages and typed failures.
"""
from erp_agent.agent.executor import HANDLER_NAMES, CommandDispatcher
from erp_agent.core.exceptions import BusinessError
from erp_agent.models import Goods
from erp_agent.schemas.nli import FailureKind
from erp_agent.services import order_service
from erp_ai.intent_schema import ActionType, Command, OrderType, ProductLine


def _create(customer="张三", order_type=OrderType.SALE, lines=None):
    return Command(
        action=ActionType.CREATE_ORDER,
        order_type=order_type,
        customer=customer,
        products=lines or [ProductLine(name="苹果", quantity=10, unit_price=5)],
    )


def test_every_action_has_a_handler(db):
    assert set(HANDLER_NAMES) == set(ActionType)
    dispatcher = CommandDispatcher(db)
    assert all(callable(dispatcher.handlers[action]) for action in ActionType)


def test_create_order_message(db):
    result = CommandDispatcher(db).dispatch(_create())
    assert result.success
    assert result.message.startswith("✅ 💰销售订单创建成功！")
    assert "客户：张三" in result.message
    assert "金额：¥50.00" in result.message
    assert "📦 商品：1种/10件 (苹果×10)" in result.message

    purchase = CommandDispatcher(db).dispatch(_create("哈振宇", OrderType.PURCHASE))
    assert "📦采购订单创建成功" in purchase.message
    assert "供应商：哈振宇" in purchase.message


def test_invalid_command_never_touches_the_database(db):
    result = CommandDispatcher(db).dispatch(_create(customer=""))
    assert not result.success
    assert result.failure == FailureKind.VALIDATION
    assert order_service.list_orders(db) == []


def test_delete_order(db):
    order = order_service.create_order(db, "SALE", "张三", [ProductLine(name="苹果", quantity=1, unit_price=1)])
    dispatcher = CommandDispatcher(db)

    result = dispatcher.dispatch(Command(action=ActionType.DELETE_ORDER, order_id=order.id))
    assert result.success
    assert f"已删除订单ID：{order.id}" in result.message

    missing = dispatcher.dispatch(Command(action=ActionType.DELETE_ORDER, order_id=order.id))
    assert missing.failure == FailureKind.NOT_FOUND
    assert f"找不到ID为 {order.id} 的订单" in missing.message


def test_confirm_order_outcomes(db):
    order = order_service.create_order(db, "SALE", "张三", [ProductLine(name="苹果", quantity=10, unit_price=5)])
    dispatcher = CommandDispatcher(db)
    confirm = Command(action=ActionType.CONFIRM_ORDER, order_id=order.id, freight=10)

    result = dispatcher.dispatch(confirm)
    assert result.success
    assert "• 运费：¥10.00" in result.message
    assert "• 总计：¥60.00" in result.message

    again = dispatcher.dispatch(confirm)
    assert again.failure == FailureKind.ALREADY_CONFIRMED
    assert again.message.startswith("❌ 确认订单失败：")
    assert f"销售订单 {order.order_no} 已确认" in again.message
    assert "💡" in again.message

    missing = dispatcher.dispatch(Command(action=ActionType.CONFIRM_ORDER, order_id=404))
    assert missing.failure == FailureKind.NOT_FOUND


def test_confirm_with_insufficient_stock(db):
    db.add(Goods(name="苹果", stock=2))
    db.commit()
    order = order_service.create_order(db, "SALE", "张三", [ProductLine(name="苹果", quantity=10, unit_price=5)])

    result = CommandDispatcher(db).dispatch(Command(action=ActionType.CONFIRM_ORDER, order_id=order.id))
    assert result.failure == FailureKind.INSUFFICIENT_STOCK
    assert "库存不足" in result.message


def test_query_order_by_keyword(db):
    dispatcher = CommandDispatcher(db)
    for customer in ("张三", "王五", "王五"):
        dispatcher.dispatch(_create(customer))

    result = dispatcher.dispatch(Command(action=ActionType.QUERY_ORDER, keyword="王五"))
    assert result.message.startswith("🔍 查询到 2 个订单")
    assert "张三" not in result.message

    empty = dispatcher.dispatch(Command(action=ActionType.QUERY_ORDER, keyword="赵六"))
    assert "没有找到相关订单（关键词'赵六'）" in empty.message


def test_query_order_lists_five(db):
    dispatcher = CommandDispatcher(db)
    for i in range(7):
        dispatcher.dispatch(_create(f"客户{chr(65 + i)}"))
    result = dispatcher.dispatch(Command(action=ActionType.QUERY_ORDER))
    assert "查询到 7 个订单" in result.message
    assert "... 还有 2 个订单" in result.message


def test_query_sales(db):
    dispatcher = CommandDispatcher(db)
    assert dispatcher.dispatch(Command(action=ActionType.QUERY_SALES)).message == "📊 暂无销售数据"

    dispatcher.dispatch(_create("张三"))
    dispatcher.dispatch(_create("李四", lines=[ProductLine(name="橙子", quantity=10, unit_price=15)]))
    result = dispatcher.dispatch(Command(action=ActionType.QUERY_SALES))
    assert "📈 总销售额：¥200.00" in result.message
    assert "📋 订单数量：2个" in result.message
    assert "📊 平均订单金额：¥100.00" in result.message

    mine = dispatcher.dispatch(Command(action=ActionType.QUERY_SALES, customer="赵六"))
    assert mine.message == "📊 暂无销售数据（客户：赵六）"


def test_query_inventory(db):
    db.add(Goods(name="苹果", stock=5, unit="个"))
    db.add(Goods(name="大米", stock=200, unit="斤"))
    db.commit()
    result = CommandDispatcher(db).dispatch(Command(action=ActionType.QUERY_INVENTORY))
    assert "共2种商品" in result.message
    assert "苹果：5个" in result.message
    assert "有 1 种商品库存偏低" in result.message

    filtered = CommandDispatcher(db).dispatch(Command(action=ActionType.QUERY_INVENTORY, keyword="大米"))
    assert "共1种商品" in filtered.message


def test_analyze_order_local_fallback(db):
    dispatcher = CommandDispatcher(db)
    empty = dispatcher.dispatch(Command(action=ActionType.ANALYZE_ORDER))
    assert empty.message.startswith("📭 没有找到订单数据进行分析")

    dispatcher.dispatch(_create("张三", lines=[ProductLine(name="苹果", quantity=100, unit_price=10)]))
    dispatcher.dispatch(_create("哈振宇", OrderType.PURCHASE, [ProductLine(name="苹果", quantity=100, unit_price=3)]))
    result = dispatcher.dispatch(Command(action=ActionType.ANALYZE_ORDER))
    assert result.message.startswith("📊 快速订单分析报告 (本地分析)")
    assert "盈利优秀，毛利率达 70.0%" in result.message


def test_analyze_order_with_ai(db, make_ai):
    report = "订单分析报告：**销售结构**健康，" + "客户分布均衡。" * 20
    ai, transport = make_ai([report])
    dispatcher = CommandDispatcher(db, ai)
    dispatcher.dispatch(_create("张三"))

    result = dispatcher.dispatch(Command(action=ActionType.ANALYZE_ORDER))
    assert result.message.startswith("🤖 AI订单分析报告")
    assert "**" not in result.message
    assert "订单数据分析请求 (共1个订单)" in transport.calls[0]["messages"][1]["content"]


def test_analyze_order_ai_failure_uses_local_report(db, make_ai):
    ai, _ = make_ai(["太短", "太短", "太短"])
    dispatcher = CommandDispatcher(db, ai)
    dispatcher.dispatch(_create("张三"))
    result = dispatcher.dispatch(Command(action=ActionType.ANALYZE_ORDER))
    assert "本地分析" in result.message


def test_analyze_finance(db):
    dispatcher = CommandDispatcher(db)
    assert dispatcher.dispatch(Command(action=ActionType.ANALYZE_FINANCE)).message.startswith("📭 暂无财务数据")

    dispatcher.dispatch(_create("张三"))
    result = dispatcher.dispatch(Command(action=ActionType.ANALYZE_FINANCE))
    assert result.message.startswith("📊 财务分析报告 (本地分析)")
    assert "待确认 ¥50.00" in result.message


def test_unknown_action_lists_vocabulary(db):
    result = CommandDispatcher(db).dispatch(Command(action=ActionType.UNKNOWN, raw_action="export_report"))
    assert not result.success
    assert result.failure == FailureKind.UNKNOWN
    assert "未知操作类型：export_report" in result.message
    assert "analyze_finance" in result.message


def test_already_confirmed_purchase_names_the_purchase(db):
    order = order_service.create_order(db, "PURCHASE", "哈振宇", [ProductLine(name="水", quantity=5, unit_price=3)])
    dispatcher = CommandDispatcher(db)
    confirm = Command(action=ActionType.CONFIRM_ORDER, order_id=order.id)
    assert dispatcher.dispatch(confirm).success

    again = dispatcher.dispatch(confirm)
    assert f"采购订单 {order.order_no} 已确认" in again.message
    assert "销售订单" not in again.message


def test_unmapped_business_error_still_suggests_a_next_step(db, monkeypatch):
    def refuse(db, order_id):
        raise BusinessError("订单已锁定")

    monkeypatch.setattr(order_service, "delete_order", refuse)
    result = CommandDispatcher(db).dispatch(Command(action=ActionType.DELETE_ORDER, order_id=3))
    assert result.failure == FailureKind.UNKNOWN
    assert "订单已锁定" in result.message
    assert "\n💡 " in result.message
