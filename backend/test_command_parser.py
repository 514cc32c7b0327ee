"""
Command parser tests: JSON repair, field aliases, AI + extractor merge, validation.
"""
import pytest

from erp_ai.command_parser import (
    CONFIRM_MISSING_ID_MESSAGE,
    DELETE_MISSING_ID_MESSAGE,
    MISSING_CUSTOMER_MESSAGE,
    MISSING_PRODUCTS_MESSAGE,
    NEGATIVE_FREIGHT_MESSAGE,
    fields_from_json,
    load_command_json,
    parse_command,
    repair_json,
    validate_command,
)
from erp_ai.exceptions import AITimeoutError, CommandParseError
from erp_ai.intent_schema import ActionType, Command, OrderType, ProductLine


def test_repair_quotes_bare_keys_and_single_quotes():
    assert repair_json("{action: 'create_order'}") == '{"action": "create_order"}'
    assert load_command_json("```json\naction: 'delete_order', order_id: 5\n```") == {
        "action": "delete_order",
        "order_id": 5,
    }


def test_unrepairable_json_raises():
    with pytest.raises(CommandParseError) as exc:
        load_command_json("{'action': create_order}")
    assert "JSON" in exc.value.message
    assert exc.value.cause is not None

    with pytest.raises(CommandParseError):
        load_command_json("[1, 2]")


def test_field_aliases():
    fields = fields_from_json({
        "action": "create_order",
        "customerName": "李四",
        "type": "purchase",
        "goods": [{"productName": "橙子", "qty": "20", "price": "3"}],
        "运费": "8",
    })
    assert fields["action"] == ActionType.CREATE_ORDER
    assert fields["customer"] == "李四"
    assert fields["order_type"] == OrderType.PURCHASE
    assert fields["products"] == [ProductLine(name="橙子", quantity=20, unit_price=3.0)]
    assert fields["freight"] == 8.0

    legacy = fields_from_json({"action": "create_order", "order_type": "customer", "supplier": "厂家A"})
    assert legacy["order_type"] == OrderType.SALE
    assert legacy["customer"] == "厂家A"


def test_negative_price_is_clamped():
    assert ProductLine(name="苹果", quantity=1, unit_price=-3).unit_price == 0.0


def test_ai_command_wins_and_is_tagged_llm(make_ai):
    ai, transport = make_ai([
        "```json\n{'action': 'create_order', 'customer': '张三', "
        "'products': [{'name': '苹果', 'quantity': 10, 'unit_price': 5}]}\n```"
    ])
    cmd = parse_command("为张三创建订单，苹果10个单价5元", ai)

    assert cmd.action == ActionType.CREATE_ORDER
    assert cmd.order_type == OrderType.SALE
    assert cmd.customer == "张三"
    assert cmd.products == [ProductLine(name="苹果", quantity=10, unit_price=5.0)]
    assert cmd.source == "llm"
    assert transport.calls[0]["temperature"] == 0.1


def test_extractor_fills_ai_gaps(make_ai):
    ai, _ = make_ai(['{"action": "create_order", "products": [{"name": "苹果"}]}'])
    cmd = parse_command("为张三创建订单，苹果10个单价5元", ai)

    assert cmd.customer == "张三"
    assert cmd.products[0].quantity == 10
    assert cmd.products[0].unit_price == 5.0
    assert cmd.source == "merged"


def test_purchase_from_named_supplier_without_ai():
    cmd = parse_command("从哈振宇那里买了5瓶水，一瓶3元", None)
    assert cmd.action == ActionType.CREATE_ORDER
    assert cmd.order_type == OrderType.PURCHASE
    assert cmd.customer == "哈振宇"
    assert cmd.products == [ProductLine(name="水", quantity=5, unit_price=3.0)]
    assert cmd.source == "fallback"


def test_ai_failure_falls_back_to_extractor(make_ai, sleeps):
    ai, transport = make_ai(fail_with=AITimeoutError("AI请求超时 (timeout 20s)"))
    cmd = parse_command("删除订单12", ai)

    assert cmd.action == ActionType.DELETE_ORDER
    assert cmd.order_id == 12
    assert cmd.source == "fallback"
    assert len(transport.calls) == 3
    assert sleeps == [1.0, 2.0]


def test_extracted_command_uses_original_sentence_for_fields():
    cmd = parse_command("分析订单", None, original_input="分析这些订单")
    assert cmd.action == ActionType.ANALYZE_ORDER
    assert cmd.original_input == "分析这些订单"


def test_no_action_raises_without_cause():
    with pytest.raises(CommandParseError) as exc:
        parse_command("修改一下", None)
    assert exc.value.cause is None


def test_off_vocabulary_action_is_unknown(make_ai):
    ai, _ = make_ai(['{"action": "export_report"}'])
    cmd = parse_command("导出报表", ai)
    assert cmd.action == ActionType.UNKNOWN
    assert cmd.raw_action == "export_report"


def test_validation_messages():
    base = dict(action=ActionType.CREATE_ORDER, order_type=OrderType.SALE)

    no_customer = Command(products=[ProductLine(name="苹果", quantity=1)], **base)
    assert validate_command(no_customer) == MISSING_CUSTOMER_MESSAGE

    assert validate_command(Command(customer="张三", **base)) == MISSING_PRODUCTS_MESSAGE

    price_only = Command(customer="张三", products=[ProductLine(unit_price=5)], **base)
    assert validate_command(price_only) == MISSING_PRODUCTS_MESSAGE

    zero = Command(customer="张三", products=[ProductLine(name="苹果", quantity=0, unit_price=5)], **base)
    assert "苹果" in validate_command(zero)

    ok = Command(customer="张三", products=[ProductLine(name="苹果", quantity=10, unit_price=5)], **base)
    assert validate_command(ok) is None


def test_validation_for_order_id_actions():
    assert validate_command(Command(action=ActionType.DELETE_ORDER)) == DELETE_MISSING_ID_MESSAGE
    assert validate_command(Command(action=ActionType.CONFIRM_ORDER)) == CONFIRM_MISSING_ID_MESSAGE
    assert validate_command(Command(action=ActionType.CONFIRM_ORDER, order_id=3, freight=-1)) == NEGATIVE_FREIGHT_MESSAGE
    assert validate_command(Command(action=ActionType.CONFIRM_ORDER, order_id=3, freight=0)) is None
    assert validate_command(Command(action=ActionType.QUERY_ORDER)) is None
