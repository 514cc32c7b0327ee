import logging

from .intent_schema import IntentResult, IntentType

logger = logging.getLogger(__name__)

COMMAND_KEYWORDS = ["创建", "查询", "删除", "修改", "统计", "分析", "导出", "确认", "添加"]

CONVERSATION_KEYWORDS = ["你好", "谢谢", "再见", "怎么样", "是什么", "为什么", "天气"]

ANALYZE_ORDERS_COMMAND = "分析订单"


def classify_intent_fallback(text: str) -> IntentResult:
    """Keyword intent classification used whenever the AI path fails.

    "分析" together with "订单" or "这些" is always an order-analysis command,
    checked before the generic keyword sets.
    """
    text = (text or "").strip()
    logger.debug(f"Fallback intent: {text[:50]}...")

    if "分析" in text and ("订单" in text or "这些" in text):
        return IntentResult(type=IntentType.COMMAND, confidence=0.95, extracted_command=ANALYZE_ORDERS_COMMAND)

    has_command = any(k in text for k in COMMAND_KEYWORDS)
    has_conversation = any(k in text for k in CONVERSATION_KEYWORDS)

    if has_command and has_conversation:
        return IntentResult(type=IntentType.MIXED, confidence=0.8, extracted_command=text)
    if has_command:
        return IntentResult(type=IntentType.COMMAND, confidence=0.9, extracted_command=text)
    return IntentResult(type=IntentType.CONVERSATION, confidence=0.7, extracted_command="")
