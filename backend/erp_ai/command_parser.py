"""
Command Parser: sentence -> validated Command.

Pipeline:
1. AI reply (command JSON) is loaded; malformed JSON gets one repair pass
2. Field aliases are normalised (customer/customer_name/client/供应商 ...)
3. The text extractor reads the original sentence and fills empty fields
4. If still no action, CommandParseError

validate_command() then checks per-action completeness and returns a
remediation message for the operator (or None when the command is runnable).
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from erp_agent.services import entity_extractor
from .ai_service import AIService
from .exceptions import AIServiceError, CommandParseError
from .intent_schema import ActionType, Command, OrderType, ProductLine

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```[a-zA-Z]*\s*")
_BARE_KEY = re.compile(r"([{,]\s*)([a-zA-Z_][a-zA-Z0-9_]*)(\s*:)")

CUSTOMER_FIELDS = ["customer", "customer_name", "customerName", "client", "supplier", "供应商", "客户"]
ORDER_TYPE_FIELDS = ["order_type", "type", "orderType"]
PRODUCT_ARRAY_FIELDS = ["products", "goods", "items", "商品", "货物"]
LINE_NAME_FIELDS = ["name", "product", "productName", "product_name", "商品名", "产品名"]
LINE_QUANTITY_FIELDS = ["quantity", "qty", "count", "数量"]
LINE_PRICE_FIELDS = ["unit_price", "price", "unitPrice", "单价", "价格"]
ORDER_ID_FIELDS = ["order_id", "id", "orderId", "订单ID"]
FREIGHT_FIELDS = ["freight", "shipping", "运费"]

MISSING_CUSTOMER_MESSAGE = (
    "❌ 缺少客户信息\n\n"
    "💡 请这样表达：\n"
    "• '为张三创建订单，苹果10个单价5元'\n"
    "• '给李四下单，橙子20个每个3元'\n"
    "• '帮王五买香蕉15个单价2元'"
)

MISSING_PRODUCTS_MESSAGE = (
    "❌ 缺少商品信息\n\n"
    "💡 请这样表达：\n"
    "• '苹果10个单价5元'\n"
    "• '橙子，数量20，单价3元'\n"
    "• '买香蕉15个每个2块钱'\n\n"
    "📝 完整示例：'为张三创建订单，苹果10个单价5元'"
)

INVALID_QUANTITY_MESSAGE = "❌ 商品'{name}'的数量无效\n💡 请提供正确的数量信息"

DELETE_MISSING_ID_MESSAGE = "❌ 请提供有效的订单ID\n💡 示例：'删除订单123' 或 '删除ID为123的订单'"

CONFIRM_MISSING_ID_MESSAGE = "❌ 请提供有效的订单ID\n💡 示例：'确认订单123，运费10元'"

NEGATIVE_FREIGHT_MESSAGE = "❌ 运费不能为负数\n💡 如无运费请设为0"


# ---------------------------------------------------------------------------
# JSON loading
# ---------------------------------------------------------------------------

def repair_json(raw: str) -> str:
    """Best-effort fix of common AI JSON mistakes.

    Strips code fences, adds missing outer braces, turns single quotes into
    double quotes and quotes bare identifier keys.
    """
    text = _FENCE.sub("", raw or "").strip()
    if not text.startswith("{"):
        text = "{" + text
    if not text.endswith("}"):
        text = text + "}"
    text = text.replace("'", '"')
    return _BARE_KEY.sub(r'\1"\2"\3', text)


def load_command_json(raw: str) -> Dict[str, Any]:
    """Parse the AI reply as a JSON object, with exactly one repair attempt."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        repaired = repair_json(raw)
        logger.debug(f"🔧 Repaired command JSON: {repaired[:120]}")
        try:
            data = json.loads(repaired)
        except json.JSONDecodeError as e:
            raise CommandParseError("AI返回的JSON格式无法解析", raw_reply=raw or "", cause=e)
    if not isinstance(data, dict):
        raise CommandParseError("AI返回的JSON不是对象", raw_reply=raw or "")
    return data


# ---------------------------------------------------------------------------
# Field normalisation
# ---------------------------------------------------------------------------

def _first(data: Dict[str, Any], fields: List[str]) -> Any:
    for field in fields:
        value = data.get(field)
        if value is not None and value != "":
            return value
    return None


def _to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(str(value).strip()))
    except ValueError:
        return None


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def _line_from_node(node: Any) -> Optional[ProductLine]:
    if not isinstance(node, dict):
        return None
    return ProductLine(
        name=_first(node, LINE_NAME_FIELDS) or "",
        quantity=_first(node, LINE_QUANTITY_FIELDS) or 0,
        unit_price=_first(node, LINE_PRICE_FIELDS) or 0,
    )


def _products_from_json(data: Dict[str, Any]) -> List[ProductLine]:
    for field in PRODUCT_ARRAY_FIELDS:
        nodes = data.get(field)
        if isinstance(nodes, list):
            return [line for line in (_line_from_node(n) for n in nodes) if line is not None]

    # Single product spelled out at top level
    name = _first(data, ["product", "product_name", "productName"])
    if name:
        return [ProductLine(
            name=name,
            quantity=_first(data, LINE_QUANTITY_FIELDS) or 0,
            unit_price=_first(data, LINE_PRICE_FIELDS) or 0,
        )]
    return []


def fields_from_json(data: Dict[str, Any]) -> Dict[str, Any]:
    """Normalise an AI command object into extractor-shaped fields."""
    customer = _first(data, CUSTOMER_FIELDS)
    return {
        "action": ActionType.from_raw(data.get("action")),
        "raw_action": str(data.get("action") or "").strip(),
        "order_type": OrderType.from_raw(_first(data, ORDER_TYPE_FIELDS)),
        "customer": str(customer).strip() if customer else "",
        "products": _products_from_json(data),
        "order_id": _to_int(_first(data, ORDER_ID_FIELDS)),
        "freight": _to_float(_first(data, FREIGHT_FIELDS)),
        "keyword": str(data.get("keyword") or "").strip(),
        "time_range": str(data.get("time_range") or data.get("timeRange") or "").strip(),
        "limit": _to_int(data.get("limit")),
    }


def _fill_line(line: ProductLine, extracted: ProductLine) -> ProductLine:
    """Complete an AI line from the extractor's line when they describe the same product."""
    if line.name and extracted.name and line.name != extracted.name:
        return line
    return ProductLine(
        name=line.name or extracted.name,
        quantity=line.quantity or extracted.quantity,
        unit_price=line.unit_price or extracted.unit_price,
    )


def merge_fields(ai_fields: Dict[str, Any], extracted: Dict[str, Any]) -> Dict[str, Any]:
    """AI values win when non-empty; extractor fills the gaps.

    Returns the merged fields plus ``gaps_filled`` (how many fields came from
    the extractor).
    """
    merged = {}
    gaps_filled = 0
    for key, extracted_value in extracted.items():
        ai_value = ai_fields.get(key)
        if key == "products":
            continue
        if ai_value not in (None, "", 0):
            merged[key] = ai_value
        else:
            merged[key] = extracted_value
            if extracted_value not in (None, "", 0) and ai_fields:
                gaps_filled += 1

    ai_lines = ai_fields.get("products") or []
    extracted_lines = extracted.get("products") or []
    if ai_lines:
        if len(ai_lines) == 1 and extracted_lines:
            filled = _fill_line(ai_lines[0], extracted_lines[0])
            if filled != ai_lines[0]:
                gaps_filled += 1
            ai_lines = [filled]
        merged["products"] = ai_lines
    else:
        merged["products"] = extracted_lines
        if extracted_lines and ai_fields:
            gaps_filled += 1

    merged["gaps_filled"] = gaps_filled
    return merged


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_command(text: str, ai: Optional[AIService], original_input: Optional[str] = None) -> Command:
    """Build a Command from ``text`` (the extracted command or the raw sentence).

    Raises:
        CommandParseError: no action could be determined. ``cause`` carries the
        AI failure, if any, so the reply can pick the right template.
    """
    original_input = original_input or text
    ai_fields: Dict[str, Any] = {}
    raw_reply = ""
    ai_error: Optional[BaseException] = None

    if ai is not None and ai.is_available():
        try:
            raw_reply = ai.parse_command(text)
            logger.debug(f"🎮 AI command JSON: {raw_reply[:200]}")
            ai_fields = fields_from_json(load_command_json(raw_reply))
        except AIServiceError as e:
            logger.warning(f"⚠️ AI command parse unavailable, using text extractor: {e.message}")
            ai_error = e
        except CommandParseError as e:
            logger.warning(f"⚠️ {e.message}, using text extractor")
            ai_error = e

    extracted = entity_extractor.extract_command_fields(original_input)
    merged = merge_fields(ai_fields, extracted)

    action = merged["action"]
    if action is None:
        raise CommandParseError("无法识别要执行的操作", raw_reply=raw_reply, cause=ai_error)

    order_type = merged["order_type"]
    if action == ActionType.CREATE_ORDER and order_type is None:
        order_type = OrderType.SALE

    keyword = merged["keyword"]
    if not keyword and action in (ActionType.QUERY_ORDER, ActionType.ANALYZE_ORDER):
        keyword = ai_fields.get("customer") or ""

    if not ai_fields:
        source = "fallback"
    elif merged["gaps_filled"]:
        source = "merged"
    else:
        source = "llm"

    command = Command(
        action=action,
        order_type=order_type,
        customer=merged["customer"] or "",
        products=merged["products"],
        order_id=merged["order_id"],
        freight=merged["freight"],
        keyword=keyword,
        time_range=merged["time_range"] or "",
        limit=merged["limit"] or 10,
        original_input=original_input,
        source=source,
        raw_action=ai_fields.get("raw_action", "") if action == ActionType.UNKNOWN else "",
    )
    logger.info(f"🎮 Command parsed: action={command.action.value} source={command.source}")
    return command


def validate_command(command: Command) -> Optional[str]:
    """Remediation message when ``command`` cannot run as-is, else None."""
    action = command.action

    if action == ActionType.CREATE_ORDER:
        if not command.customer:
            return MISSING_CUSTOMER_MESSAGE
        if not command.products or any(not line.name for line in command.products):
            return MISSING_PRODUCTS_MESSAGE
        for line in command.products:
            if line.quantity <= 0:
                return INVALID_QUANTITY_MESSAGE.format(name=line.name)

    elif action == ActionType.DELETE_ORDER:
        if not command.order_id or command.order_id <= 0:
            return DELETE_MISSING_ID_MESSAGE

    elif action == ActionType.CONFIRM_ORDER:
        if not command.order_id or command.order_id <= 0:
            return CONFIRM_MISSING_ID_MESSAGE
        if command.freight is not None and command.freight < 0:
            return NEGATIVE_FREIGHT_MESSAGE

    return None
