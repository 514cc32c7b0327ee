"""
Response composer tests: enhancement, failure templates, markdown cleaning,
local analysis tiers.
"""
import json

from erp_agent.agent import response_composer as composer
from erp_ai.exceptions import AITimeoutError, CommandParseError
from erp_ai.intent_schema import ActionType


def _summary(sale_total, purchase_total, sale_count=3, purchase_count=1, customers=None):
    customers = customers or [
        {"customer": "张三", "amount": sale_total / 2, "orders": 1},
        {"customer": "李四", "amount": sale_total / 4, "orders": 1},
        {"customer": "王五", "amount": sale_total / 4, "orders": 1},
    ]
    total = sale_count + purchase_count
    return {
        "total_count": total,
        "sale_count": sale_count,
        "purchase_count": purchase_count,
        "status_counts": {"pending": total},
        "pending_count": total,
        "sale_total": sale_total,
        "purchase_total": purchase_total,
        "gross_profit": sale_total - purchase_total,
        "margin": (sale_total - purchase_total) / sale_total * 100 if sale_total else None,
        "top_customers": customers,
        "customer_count": len(customers),
        "average_order_value": (sale_total + purchase_total) / total,
        "recent_orders": [],
    }


def test_enhance_short_results_only():
    short = composer.enhance_reply(ActionType.QUERY_SALES, "暂无数据")
    assert short.startswith("💰 查询销售数据完成")
    assert "💡 您还可以：" in short

    assert composer.enhance_reply(ActionType.DELETE_ORDER, "✅ 订单删除成功") == "✅ 订单删除成功"
    assert composer.enhance_reply(ActionType.QUERY_ORDER, "x" * 60) == "x" * 60
    assert composer.COMPLETED_REPLY in composer.enhance_reply(ActionType.QUERY_ORDER, "")


def test_icons_and_suggestions():
    assert composer.action_icon(ActionType.ANALYZE_ORDER) == "📈"
    assert composer.action_icon(ActionType.UNKNOWN) == "🤖"
    assert composer.status_icon(None) == "⏳"
    assert composer.status_icon("CONFIRMED") == "✅"
    assert composer.status_icon("draft") == "📝"
    for action, items in composer.ACTION_SUGGESTIONS.items():
        assert 2 <= len(items) <= 3, action


def test_failure_templates():
    json_error = CommandParseError("AI返回的JSON格式无法解析", cause=json.JSONDecodeError("x", "doc", 0))
    assert "🔧" in composer.parse_failure_reply("乱码", json_error)

    timeout = CommandParseError("无法识别要执行的操作", cause=AITimeoutError("AI请求超时 (timeout 20s)"))
    network = composer.parse_failure_reply("删除", timeout)
    assert "🌐" in network
    assert "AI请求超时" in network

    generic = composer.error_reply("你好", RuntimeError("boom"))
    assert "🛠️" in generic
    assert "🔧 技术细节：boom" in generic

    assert composer.parse_failure_reply("修改", CommandParseError("无法识别要执行的操作")) == composer.UNDERSTAND_FAILURE_REPLY


def test_clean_markdown():
    text = "**总结**：销售*稳定*增长\n```python\nprint(1)\n```\n使用`查询`命令"
    assert composer.clean_markdown(text) == "总结：销售稳定增长\n\n使用查询命令"
    assert composer.clean_markdown("") == ""
    assert composer.clean_markdown(None) == ""


def test_local_analysis_margin_tiers():
    excellent = composer.local_order_analysis(_summary(1000, 300))
    assert "盈利优秀，毛利率达 70.0%" in excellent

    good = composer.local_order_analysis(_summary(1000, 700))
    assert "盈利良好，毛利率约 30.0%" in good

    low = composer.local_order_analysis(_summary(1000, 900))
    assert "盈利偏低，毛利率仅 10.0%" in low

    loss = composer.local_order_analysis(_summary(100, 900))
    assert "成本压力" in loss


def test_local_analysis_structure_and_concentration():
    sales_led = composer.local_order_analysis(_summary(1000, 100, sale_count=9, purchase_count=1))
    assert "销售主导型业务" in sales_led

    single = composer.local_order_analysis(
        _summary(1000, 100, customers=[{"customer": "张三", "amount": 1000, "orders": 4}])
    )
    assert "单一客户依赖，主要客户：张三" in single
    assert "及时处理待确认订单" in single


def test_unknown_action_reply():
    reply = composer.unknown_action_reply("export_report")
    assert reply.startswith("❓ 未知操作类型：export_report")
    for action in ActionType:
        if action != ActionType.UNKNOWN:
            assert action.value in reply
