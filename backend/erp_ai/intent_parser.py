"""
Intent Classifier: COMMAND / CONVERSATION / MIXED.

The AI reply is a small JSON object:
    {"intent_type": "COMMAND", "confidence": 0.9, "command": "...", "reasoning": "..."}

Any failure (transport, malformed JSON, unknown type) falls back to
keyword classification. classify_intent never raises.
"""

import json
import logging
from typing import Optional

from .ai_service import AIService, strip_code_fences
from .exceptions import AIServiceError
from .fallback import classify_intent_fallback
from .intent_schema import IntentResult, IntentType

logger = logging.getLogger(__name__)


def _parse_intent_json(raw: str) -> Optional[IntentResult]:
    """Load the intent JSON; None when it is missing, malformed or off-vocabulary."""
    try:
        data = json.loads(strip_code_fences(raw))
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"❌ Intent JSON parse error: {e}")
        return None
    if not isinstance(data, dict):
        return None

    raw_type = str(data.get("intent_type", "")).strip().upper()
    try:
        intent_type = IntentType(raw_type)
    except ValueError:
        logger.warning(f"⚠️ Unknown intent_type from AI: {raw_type!r}")
        return None

    try:
        confidence = float(data.get("confidence", 0.5))
    except (TypeError, ValueError):
        confidence = 0.5

    command = data.get("command") or ""
    if intent_type == IntentType.CONVERSATION:
        command = ""
    return IntentResult(type=intent_type, confidence=confidence, extracted_command=str(command).strip())


def classify_intent(text: str, ai: Optional[AIService]) -> IntentResult:
    """Classify ``text``; AI first, keyword fallback on any failure."""
    if ai is None or not ai.is_available():
        return classify_intent_fallback(text)

    try:
        raw = ai.analyze_intent(text)
    except AIServiceError as e:
        logger.warning(f"⚠️ AI intent analysis failed, using keyword fallback: {e.message}")
        return classify_intent_fallback(text)

    result = _parse_intent_json(raw)
    if result is None:
        return classify_intent_fallback(text)

    logger.info(f"🔍 Intent: {result.type.value} ({result.confidence:.2f})")
    return result
