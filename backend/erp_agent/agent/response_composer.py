"""
Response Composer: everything the operator reads that is not a handler's own result.

- icons, descriptions and follow-up suggestions per action
- enhancement of short command results
- parse/validation/transport failure templates
- markdown stripping for AI prose
- order-analysis request text and the local (no-AI) analysis reports
"""
import re
from typing import Dict, Optional

from erp_ai.exceptions import AIServiceError, CommandParseError
from erp_ai.intent_schema import ActionType

ACTION_ICONS = {
    ActionType.CREATE_ORDER: "📝",
    ActionType.QUERY_ORDER: "🔍",
    ActionType.DELETE_ORDER: "🗑️",
    ActionType.CONFIRM_ORDER: "✅",
    ActionType.QUERY_SALES: "💰",
    ActionType.QUERY_INVENTORY: "📦",
    ActionType.ANALYZE_FINANCE: "📊",
    ActionType.ANALYZE_ORDER: "📈",
}
DEFAULT_ICON = "🤖"

ACTION_DESCRIPTIONS = {
    ActionType.CREATE_ORDER: "创建新订单",
    ActionType.DELETE_ORDER: "删除订单",
    ActionType.CONFIRM_ORDER: "确认订单",
    ActionType.QUERY_ORDER: "查询订单信息",
    ActionType.QUERY_SALES: "查询销售数据",
    ActionType.QUERY_INVENTORY: "查询库存信息",
    ActionType.ANALYZE_FINANCE: "财务数据分析",
    ActionType.ANALYZE_ORDER: "订单数据分析",
}

ACTION_SUGGESTIONS = {
    ActionType.CREATE_ORDER: ["查询刚创建的订单", "确认订单并设置运费", "查看今日订单统计"],
    ActionType.QUERY_ORDER: ["查询销售数据", "分析订单趋势", "导出订单报表"],
    ActionType.QUERY_SALES: ["查看详细订单", "分析客户数据", "生成销售报告"],
    ActionType.DELETE_ORDER: ["查询剩余订单", "查看今日订单统计"],
    ActionType.CONFIRM_ORDER: ["查询已确认订单", "查询销售数据"],
    ActionType.QUERY_INVENTORY: ["为缺货商品创建采购订单", "查询销售数据"],
    ActionType.ANALYZE_ORDER: ["查询销售数据", "分析财务状况"],
    ActionType.ANALYZE_FINANCE: ["分析这些订单", "查询本月销售额"],
}
DEFAULT_SUGGESTIONS = ["继续其他操作", "查看系统帮助"]

STATUS_ICONS = {
    "confirmed": "✅",
    "完成": "✅",
    "pending": "⏳",
    "待确认": "⏳",
    "cancelled": "❌",
    "已取消": "❌",
}

COMPLETED_REPLY = "✅ 操作已完成"

UNDERSTAND_FAILURE_REPLY = (
    "😅 抱歉，我无法理解您要执行的具体操作。\n\n"
    "💡 请尝试这样说：\n"
    "• '为张三创建订单，商品苹果10个单价5元'\n"
    "• '查询本月销售额'\n"
    "• '删除订单123'\n"
    "• '查询李四的订单'"
)

UNKNOWN_ACTION_REPLY = (
    "❓ 未知操作类型：{action}\n\n"
    "💡 支持的操作：\n"
    "• create_order (创建订单)\n"
    "• query_order (查询订单)\n"
    "• delete_order (删除订单)\n"
    "• confirm_order (确认订单)\n"
    "• query_sales (销售查询)\n"
    "• query_inventory (库存查询)\n"
    "• analyze_finance (财务分析)\n"
    "• analyze_order (订单分析)"
)

_JSON_TIPS = "🔧 **解决建议：**\n• 请尝试更简单的表达\n• 确保包含必要信息（如客户名、商品名）\n• 例如：'为张三创建订单，苹果10个，单价5元'\n"
_NETWORK_TIPS = "🌐 **网络问题：**\n• 请稍后重试\n• 检查网络连接\n"
_GENERIC_TIPS = "🛠️ **通用建议：**\n• 重新整理表达方式\n• 确保信息完整清晰\n• 可以先尝试简单操作\n"


def action_icon(action: Optional[ActionType]) -> str:
    return ACTION_ICONS.get(action, DEFAULT_ICON)


def action_description(action: Optional[ActionType]) -> str:
    return ACTION_DESCRIPTIONS.get(action, "执行操作")


def status_icon(status: Optional[str]) -> str:
    if status is None:
        return "⏳"
    return STATUS_ICONS.get(status.lower(), "📝")


def suggestions_block(action: Optional[ActionType]) -> str:
    items = ACTION_SUGGESTIONS.get(action, DEFAULT_SUGGESTIONS)
    return "\n\n💡 您还可以：\n" + "\n".join(f"• {item}" for item in items)


def enhance_reply(action: ActionType, result: str) -> str:
    """Short, unmarked results get an icon header and follow-up suggestions."""
    if not result or not result.strip():
        result = COMPLETED_REPLY
    if "✅" in result or "❌" in result or len(result) > 50:
        return result
    return f"{action_icon(action)} {action_description(action)}完成\n\n{result}{suggestions_block(action)}"


def confirmation_text(action: ActionType, order_id: Optional[int] = None) -> str:
    if action == ActionType.DELETE_ORDER:
        return f"🗑️ 确认删除订单 {order_id}？\n\n⚠️ 删除后无法恢复\n\n回复'是'确认，'否'取消"
    return f"⚠️ 确认执行：{action_description(action)}？\n\n回复'是'确认，'否'取消"


def unknown_action_reply(action_name: str) -> str:
    return UNKNOWN_ACTION_REPLY.format(action=action_name)


def _error_chain(error: BaseException):
    seen = error
    while seen is not None:
        yield seen
        seen = getattr(seen, "cause", None) or seen.__cause__


def technical_detail(error: BaseException) -> str:
    parts = []
    for err in _error_chain(error):
        text = getattr(err, "message", None) or str(err)
        if text and text not in parts:
            parts.append(text)
    return "：".join(parts) or type(error).__name__


def error_reply(user_input: str, error: BaseException) -> str:
    """Failure reply with a template picked from the error.

    JSON trouble -> phrasing tips; AI transport trouble (timeout, connection)
    -> retry tips; anything else -> generic tips.
    """
    detail = technical_detail(error)
    transport = any(isinstance(err, AIServiceError) for err in _error_chain(error))

    reply = "😅 处理过程中遇到问题：\n\n"
    if "JSON" in detail:
        reply += _JSON_TIPS
    elif transport or "timeout" in detail.lower() or "连接" in detail:
        reply += _NETWORK_TIPS
    else:
        reply += _GENERIC_TIPS
    reply += f"\n💬 您的输入：{user_input}"
    reply += f"\n🔧 技术细节：{detail}"
    return reply


def parse_failure_reply(user_input: str, error: CommandParseError) -> str:
    """No action found: phrasing examples, unless the AI itself failed."""
    if error.cause is None:
        return UNDERSTAND_FAILURE_REPLY
    return error_reply(user_input, error)


_BOLD = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC = re.compile(r"\*([^*]+)\*")
_CODE_BLOCK = re.compile(r"```[\s\S]*?```")
_INLINE_CODE = re.compile(r"`([^`]+)`")


def clean_markdown(text: Optional[str]) -> str:
    if not text or not text.strip():
        return text or ""
    cleaned = _BOLD.sub(r"\1", text)
    cleaned = _ITALIC.sub(r"\1", cleaned)
    cleaned = _CODE_BLOCK.sub("", cleaned)
    cleaned = _INLINE_CODE.sub(r"\1", cleaned)
    return cleaned.strip()


# ---------------------------------------------------------------------------
# Order analysis
# ---------------------------------------------------------------------------

def _type_icon(order_type: str) -> str:
    return "💰" if order_type == "SALE" else "📦"


def build_order_analysis_data(summary: Dict) -> str:
    """Statistics text sent to the AI for order analysis."""
    lines = [
        f"📊 订单数据分析请求 (共{summary['total_count']}个订单)",
        "",
        f"📈 销售订单: {summary['sale_count']}个",
        f"📦 采购订单: {summary['purchase_count']}个",
        "",
        "📋 订单状态分布:",
    ]
    lines += [f"  • {status}: {count}个" for status, count in summary["status_counts"].items()]
    lines += [
        "",
        "💰 金额统计:",
        f"  • 销售总额: ¥{summary['sale_total']:.2f}",
        f"  • 采购总额: ¥{summary['purchase_total']:.2f}",
        f"  • 毛利润: ¥{summary['gross_profit']:.2f}",
    ]
    if summary["top_customers"]:
        lines += ["", "👥 客户订单分布 (TOP 5):"]
        lines += [f"  • {c['customer']}: {c['orders']}个订单" for c in summary["top_customers"]]
    lines += ["", f"📊 平均订单金额: ¥{summary['average_order_value']:.2f}"]

    recent = [o for o in summary["recent_orders"] if o.created_at is not None]
    if recent:
        lines += ["", "🕒 最近订单趋势:"]
        for order in recent:
            lines.append(
                f"  {_type_icon(order.order_type)} {order.created_at:%m-%d %H:%M} | "
                f"{order.customer or '未知客户'} | ¥{float(order.amount or 0):.2f}"
            )
    return "\n".join(lines)


def local_order_analysis(summary: Dict) -> str:
    """Rule-based report used when the AI analysis is unavailable."""
    total = summary["total_count"]
    sale_count = summary["sale_count"]
    purchase_count = summary["purchase_count"]
    sale_total = summary["sale_total"]
    purchase_total = summary["purchase_total"]

    out = [
        "📊 快速订单分析报告 (本地分析)",
        "",
        "🎯 核心指标",
        f"• 订单总数：{total}个",
        f"• 销售订单：{sale_count}个 | 采购订单：{purchase_count}个",
        f"• 销售总额：¥{sale_total:.2f}",
        f"• 采购总额：¥{purchase_total:.2f}",
        f"• 毛利润：¥{summary['gross_profit']:.2f}",
        "",
        "💡 业务洞察",
    ]

    if sale_count > purchase_count * 2:
        out.append("• 🔥 销售主导型业务，销售活跃度高，建议加强库存管理")
    elif purchase_count > sale_count * 2:
        out.append("• 📦 采购密集期，可能在备货或业务扩张，关注资金流动")
    else:
        out.append("• ⚖️ 销采平衡，业务运营相对稳定")

    if sale_total > purchase_total:
        margin = summary["margin"]
        if margin > 50:
            out.append(f"• 💚 盈利优秀，毛利率达 {margin:.1f}%，业务健康")
        elif margin > 20:
            out.append(f"• 💙 盈利良好，毛利率约 {margin:.1f}%，可持续发展")
        else:
            out.append(f"• 💛 盈利偏低，毛利率仅 {margin:.1f}%，需优化成本")
    else:
        out.append("• ⚠️ 成本压力，支出超过收入，需重点关注现金流")

    top = summary["top_customers"]
    if top:
        leader = top[0]
        if summary["customer_count"] == 1:
            out.append(f"• 👤 单一客户依赖，主要客户：{leader['customer']}，建议拓展客户群")
        elif leader["orders"] > total * 0.5:
            out.append(f"• 👑 头部客户集中，{leader['customer']} 贡献超过50%订单，注意客户风险")
        else:
            out.append("• 👥 客户分布良好，前5客户较为均衡，业务风险分散")

    if total:
        avg = summary["average_order_value"]
        if avg > 1000:
            out.append(f"• 💎 高价值订单，平均金额 ¥{avg:.0f}，客户质量较高")
        elif avg > 100:
            out.append(f"• 💼 中等订单规模，平均金额 ¥{avg:.0f}，业务稳健")
        else:
            out.append(f"• 🛒 小额订单为主，平均金额 ¥{avg:.0f}，可考虑提升客单价")

    out += ["", "🚀 优化建议"]
    if sale_total > purchase_total * 3:
        out.append("• 增加采购频次，避免库存断货影响销售")
    if summary["customer_count"] <= 3 and total > 10:
        out.append("• 拓展客户群体，降低客户集中风险")
    if total and summary["pending_count"] > total * 0.3:
        out.append("• 及时处理待确认订单，提升客户满意度")
    out.append("• 定期分析订单趋势，制定数据驱动的业务策略")
    out.append("• 关注现金流，优化收付款周期")
    return "\n".join(out)


def build_finance_data(summary: Dict) -> str:
    lines = [
        f"🏦 财务数据（{summary['time_range']}）",
        f"• 销售收入：¥{summary['sale_total']:.2f}（已确认 ¥{summary['confirmed_income']:.2f}，待确认 ¥{summary['pending_income']:.2f}）",
        f"• 采购支出：¥{summary['purchase_total']:.2f}（已确认 ¥{summary['confirmed_expense']:.2f}，待确认 ¥{summary['pending_expense']:.2f}）",
        f"• 运费合计：¥{summary['freight_total']:.2f}",
        f"• 毛利润：¥{summary['gross_profit']:.2f}",
        f"• 已实现现金净额：¥{summary['net_cash']:.2f}",
        f"• 订单数：{summary['total_count']}个（销售{summary['sale_count']} / 采购{summary['purchase_count']}）",
    ]
    if summary["margin"] is not None:
        lines.append(f"• 毛利率：{summary['margin']:.1f}%")
    return "\n".join(lines)


def local_finance_report(summary: Dict) -> str:
    out = ["📊 财务分析报告 (本地分析)", "", build_finance_data(summary), "", "💡 财务洞察"]
    margin = summary["margin"]
    if margin is None:
        out.append("• ⚠️ 暂无销售收入，当前只有支出")
    elif margin > 50:
        out.append(f"• 💚 盈利优秀，毛利率达 {margin:.1f}%")
    elif margin > 20:
        out.append(f"• 💙 盈利良好，毛利率约 {margin:.1f}%")
    elif margin > 0:
        out.append(f"• 💛 盈利偏低，毛利率仅 {margin:.1f}%，需优化成本")
    else:
        out.append("• ⚠️ 成本压力，支出超过收入，需重点关注现金流")

    if summary["pending_income"] > summary["confirmed_income"]:
        out.append("• ⏳ 待确认销售额高于已确认销售额，及时确认订单以回笼资金")
    if summary["net_cash"] < 0:
        out.append("• 🔻 已实现现金净额为负，注意付款节奏")
    out.append("• 定期复盘收支结构，控制采购成本")
    return "\n".join(out)
