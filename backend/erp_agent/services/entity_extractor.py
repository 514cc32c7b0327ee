"""
TEXT EXTRACTOR

Deterministic extraction of command fields from a Chinese operator sentence,
driven by the rule tables in pattern_library.

Used two ways:
- gap filler: the AI parse wins, the extractor fills empty fields
- fallback: when the AI is unavailable the extractor alone builds the command

Extracted fields:
{
    "action": ActionType | None,
    "order_type": OrderType | None,   # None = no keyword matched
    "customer": str,                  # "" = not found
    "products": [ProductLine],        # at most one line from free text
    "order_id": int | None,
    "freight": float | None,
    "keyword": str,
    "time_range": str,
    "limit": int | None,
}
"""
import logging
from typing import Any, Dict, List, Optional

from erp_ai.intent_schema import ActionType, OrderType, ProductLine
from erp_agent.services import pattern_library as lib

logger = logging.getLogger(__name__)


def detect_order_type(text: str) -> Optional[OrderType]:
    """PURCHASE keywords are checked before SALE keywords."""
    if not text:
        return None
    hit = lib.first_match(lib.ORDER_TYPE_RULES, text)
    if not hit:
        return None
    rule, _ = hit
    return OrderType(rule.value)


def resolve_order_type(text: str, default: OrderType = OrderType.SALE) -> OrderType:
    return detect_order_type(text) or default


def extract_customer(text: str) -> str:
    if not text or not text.strip():
        return ""
    hit = lib.first_match(lib.CUSTOMER_RULES, text, accept=lib.is_valid_customer_name)
    if hit:
        logger.debug(f"[TextExtractor] customer={hit[1]} (rule {hit[0].priority})")
        return hit[1]
    return ""


def extract_product_name(text: str) -> str:
    if not text or not text.strip():
        return ""

    # Generic shapes get the stricter noise filter
    for rule in sorted(lib.PRODUCT_RULES, key=lambda r: r.priority):
        generic = rule.priority >= lib.GENERIC_PRODUCT_PRIORITY
        hit = lib.first_match(
            [rule], text, accept=lambda name, g=generic: lib.is_valid_product_name(name, generic=g)
        )
        if hit:
            return hit[1]
    return ""


def extract_quantity(text: str, product_name: str = "") -> int:
    """First positive quantity; 0 when none found."""
    if not text:
        return 0
    hit = lib.first_match(lib.quantity_rules(product_name), text, accept=lambda v: v.isdigit() and int(v) > 0)
    return int(hit[1]) if hit else 0


def extract_unit_price(text: str) -> Optional[float]:
    """First non-negative price, independent of product name and quantity."""
    if not text:
        return None

    def accept(value: str) -> bool:
        try:
            return float(value) >= 0
        except ValueError:
            return False

    hit = lib.first_match(lib.PRICE_RULES, text, accept=accept)
    return float(hit[1]) if hit else None


def extract_product_line(text: str) -> Optional[ProductLine]:
    """One order line from free text, or None when nothing line-like is present.

    A price alone ("单价5元") still yields a line: name "", quantity 0.
    """
    name = extract_product_name(text)
    quantity = extract_quantity(text, name)
    price = extract_unit_price(text)
    if not name and quantity == 0 and price is None:
        return None
    return ProductLine(name=name, quantity=quantity, unit_price=price or 0.0)


def detect_action(text: str) -> Optional[ActionType]:
    if not text:
        return None
    hit = lib.first_match(lib.ACTION_RULES, text)
    return ActionType(hit[0].value) if hit else None


def extract_order_id(text: str) -> Optional[int]:
    hit = lib.first_match(lib.ORDER_ID_RULES, text or "", accept=lambda v: v.isdigit() and int(v) > 0)
    return int(hit[1]) if hit else None


def extract_freight(text: str) -> Optional[float]:
    hit = lib.first_match(lib.FREIGHT_RULES, text or "")
    if not hit:
        return None
    rule, captured = hit
    return float(rule.value if rule.value is not None else captured)


def extract_time_range(text: str) -> str:
    hit = lib.first_match(lib.TIME_RANGE_RULES, text or "")
    return hit[1].replace(" ", "") if hit else ""


def extract_limit(text: str) -> Optional[int]:
    hit = lib.first_match(lib.LIMIT_RULES, text or "", accept=lambda v: v.isdigit() and int(v) > 0)
    return int(hit[1]) if hit else None


def extract_keyword(text: str) -> str:
    hit = lib.first_match(lib.KEYWORD_RULES, text or "", accept=lambda v: bool(v) and v not in lib.INVALID_CUSTOMER_NAMES)
    return hit[1] if hit else ""


def extract_command_fields(text: str) -> Dict[str, Any]:
    """Everything the extractor can read from ``text`` in one pass."""
    line = extract_product_line(text)
    products: List[ProductLine] = [line] if line else []
    keyword = extract_keyword(text)
    fields = {
        "action": detect_action(text),
        "order_type": detect_order_type(text),
        "customer": keyword or extract_customer(text),
        "products": products,
        "order_id": extract_order_id(text),
        "freight": extract_freight(text),
        "keyword": keyword,
        "time_range": extract_time_range(text),
        "limit": extract_limit(text),
    }
    logger.debug(f"[TextExtractor] {text[:40]!r} -> { {k: v for k, v in fields.items() if v} }")
    return fields
