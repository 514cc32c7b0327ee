"""
NLI pipeline entry: operator sentence in, reply out.

FLOW:
1. Confirmed call with a live token -> replay the parked command
2. Intent classification (AI, keyword fallback)
3. CONVERSATION -> free-form chat
4. COMMAND / MIXED -> parse -> validate -> confirmation gate -> dispatch
5. MIXED -> command result wrapped into a conversational reply

Nothing escapes interpret(): every failure becomes a reply. Only the
confirmation gate sets need_confirm.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from erp_agent.agent import response_composer as composer
from erp_agent.agent.confirmation_gate import ConfirmationGate
from erp_agent.agent.executor import CommandDispatcher
from erp_agent.schemas.nli import NLIResponse
from erp_ai.ai_service import AIService
from erp_ai.command_parser import parse_command, validate_command
from erp_ai.exceptions import AIServiceError, CommandParseError
from erp_ai.intent_parser import classify_intent
from erp_ai.intent_schema import Command, IntentType

logger = logging.getLogger(__name__)

CHAT_UNAVAILABLE_REPLY = (
    "😅 抱歉，我现在无法进行对话。\n\n"
    "💡 您可以直接下达业务指令，例如：\n"
    "• '为张三创建订单，苹果10个单价5元'\n"
    "• '查询所有订单'"
)


def _run_command(db: Session, ai: Optional[AIService], command: Command) -> str:
    result = CommandDispatcher(db, ai).dispatch(command)
    if not result.success:
        logger.info(f"❌ {command.action.value} failed: {result.failure.value if result.failure else '-'}")
        return result.message
    return composer.enhance_reply(command.action, result.message)


def _chat(ai: Optional[AIService], user_input: str) -> str:
    if ai is None or not ai.is_available():
        return CHAT_UNAVAILABLE_REPLY
    try:
        return ai.chat(user_input)
    except AIServiceError as e:
        logger.warning(f"⚠️ Chat failed: {e.message}")
        return composer.error_reply(user_input, e)


def _wrap(ai: Optional[AIService], user_input: str, command_reply: str) -> str:
    if ai is None or not ai.is_available():
        return command_reply
    try:
        return ai.wrap_friendly(user_input, command_reply)
    except AIServiceError as e:
        logger.warning(f"⚠️ Friendly wrap failed, returning command result: {e.message}")
        return command_reply


def interpret(
    db: Session,
    user_input: str,
    confirmed: bool = False,
    confirm_token: Optional[str] = None,
    ai: Optional[AIService] = None,
) -> NLIResponse:
    """Run one operator sentence through the pipeline."""
    logger.info(f"💬 NLI input ({len(user_input)} chars), confirmed={confirmed}")
    gate = ConfirmationGate(db)

    try:
        if confirmed and confirm_token:
            parked = gate.redeem(confirm_token)
            if parked is not None:
                logger.info(f"▶️ Replaying confirmed {parked.action.value}")
                return NLIResponse(reply=_run_command(db, ai, parked))

        intent = classify_intent(user_input, ai)
        logger.info(f"🎯 Intent {intent.type.value} ({intent.confidence:.2f})")

        if intent.type == IntentType.CONVERSATION:
            return NLIResponse(reply=_chat(ai, user_input))

        try:
            command = parse_command(intent.extracted_command or user_input, ai, original_input=user_input)
        except CommandParseError as e:
            logger.info(f"🤷 Command not understood: {e.message}")
            return NLIResponse(reply=composer.parse_failure_reply(user_input, e))

        problem = validate_command(command)
        if problem:
            return NLIResponse(reply=problem)

        if gate.requires_confirmation(command, confirmed):
            return gate.prompt(command)

        reply = _run_command(db, ai, command)
        if intent.type == IntentType.MIXED:
            reply = _wrap(ai, user_input, reply)
        return NLIResponse(reply=reply)

    except Exception as e:
        db.rollback()
        logger.error(f"❌ NLI pipeline error: {e}", exc_info=True)
        return NLIResponse(reply=composer.error_reply(user_input, e))


def business_insights(
    user_input: str,
    analysis_type: str = "GENERAL",
    data_context: str = "",
    ai: Optional[AIService] = None,
) -> NLIResponse:
    """Free-form business analysis over operator-supplied data."""
    if ai is None or not ai.is_available():
        return NLIResponse(reply="😅 业务洞察分析失败：AI服务未配置")

    payload = user_input if not data_context else f"{user_input}\n\n业务数据：\n{data_context}"
    try:
        insight = ai.analyze_data(payload, analysis_type or "GENERAL")
    except AIServiceError as e:
        logger.warning(f"⚠️ Business insight failed: {e.message}")
        return NLIResponse(reply=f"😅 业务洞察分析失败：{e.message}")
    return NLIResponse(reply="📊 " + composer.clean_markdown(insight))
