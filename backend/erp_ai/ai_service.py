"""
AIService: every outbound AI call the NLI makes, grouped by call mode.

Each mode has its own timeout (intent 15s, command 20s, chat 25s,
analysis 60s, order analysis 90s by default) and goes through the shared
RetryPolicy. Replies are stripped of code fences before they are returned.
"""

import logging
import re
import time
from typing import Dict, Optional

from erp_agent.core.config import settings
from .exceptions import AIServiceError, AIResponseError
from .groq_client import ChatTransport, get_groq_client
from .retry import RetryPolicy
from . import prompts

logger = logging.getLogger(__name__)

# ```json ... ``` (language tag optional)
_FENCE_OPEN = re.compile(r"^\s*```[a-zA-Z]*\s*\n?")
_FENCE_CLOSE = re.compile(r"\n?\s*```\s*$")

ORDER_DATA_LIMIT = 5000
ORDER_DATA_KEEP = 2000
ORDER_DATA_MARKER = "\n...(数据省略)...\n"
MIN_ORDER_ANALYSIS_LENGTH = 100

CUSTOM_PROMPT_LIMIT = 1000
CUSTOM_PROMPT_HEAD = 700
CUSTOM_PROMPT_TAIL = 200
CUSTOM_PROMPT_MARKER = "\n...(内容已优化)...\n"


def strip_code_fences(text: str) -> str:
    """Remove a leading ```lang line and a trailing ``` from an AI reply."""
    if text is None:
        return ""
    cleaned = _FENCE_OPEN.sub("", text, count=1)
    cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
    return cleaned.strip()


def trim_order_data(data: str) -> str:
    if len(data) <= ORDER_DATA_LIMIT:
        return data
    return data[:ORDER_DATA_KEEP] + ORDER_DATA_MARKER + data[-ORDER_DATA_KEEP:]


def trim_custom_prompt(prompt: str) -> str:
    if not prompt:
        return ""
    if len(prompt) <= CUSTOM_PROMPT_LIMIT:
        return prompt
    return prompt[:CUSTOM_PROMPT_HEAD] + CUSTOM_PROMPT_MARKER + prompt[-CUSTOM_PROMPT_TAIL:]


class AIService:
    """Mode-aware facade over a ChatTransport."""

    def __init__(
        self,
        transport: Optional[ChatTransport] = None,
        retry: Optional[RetryPolicy] = None,
        timeouts: Optional[Dict[str, float]] = None,
    ):
        self.transport = transport if transport is not None else get_groq_client()
        self.retry = retry or RetryPolicy(
            max_attempts=settings.AI_MAX_ATTEMPTS,
            base_delay=settings.AI_RETRY_BASE_DELAY,
        )
        self.timeouts = {
            "intent": settings.AI_INTENT_TIMEOUT,
            "command": settings.AI_COMMAND_TIMEOUT,
            "chat": settings.AI_CHAT_TIMEOUT,
            "analysis": settings.AI_ANALYSIS_TIMEOUT,
            "order_analysis": settings.AI_ORDER_ANALYSIS_TIMEOUT,
        }
        if timeouts:
            self.timeouts.update(timeouts)

    def is_available(self) -> bool:
        return self.transport.is_available()

    def _call(
        self,
        system_prompt: str,
        user_text: str,
        mode: str,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        min_length: int = 0,
    ) -> str:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_text},
        ]
        timeout = self.timeouts[mode]

        def attempt() -> str:
            reply = strip_code_fences(
                self.transport.complete(
                    messages,
                    timeout=timeout,
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
            )
            if not reply:
                raise AIResponseError("AI返回内容为空")
            if min_length and len(reply) <= min_length:
                raise AIResponseError(f"AI回复过短（{len(reply)}字符）")
            return reply

        return self.retry.call(attempt, mode=mode.upper())

    # ------------------------------------------------------------------
    # Call modes
    # ------------------------------------------------------------------

    def chat(self, text: str) -> str:
        return self._call(prompts.CHAT_PROMPT, text, "chat")

    def analyze_intent(self, text: str) -> str:
        """Raw intent JSON for ``text``."""
        return self._call(prompts.INTENT_PROMPT, text, "intent", temperature=0.1, max_tokens=300)

    def parse_command(self, text: str) -> str:
        """Raw command JSON for ``text``."""
        return self._call(prompts.COMMAND_PROMPT, text, "command", temperature=0.1)

    def analyze_data(self, data: str, analysis_type: str = "GENERAL") -> str:
        return self._call(prompts.build_analysis_prompt(analysis_type), data, "analysis")

    def analyze_order_data(self, order_data: str) -> str:
        """Insight report over an order summary.

        Oversized payloads keep only their head and tail. A reply of 100
        characters or fewer counts as a failed attempt.
        """
        trimmed = trim_order_data(order_data)
        logger.info(f"🧠 Order analysis request ({len(trimmed)} chars)")
        return self._call(
            prompts.ORDER_ANALYSIS_PROMPT,
            trimmed,
            "order_analysis",
            temperature=0.4,
            max_tokens=1200,
            min_length=MIN_ORDER_ANALYSIS_LENGTH,
        )

    def ask_with_custom_prompt(self, text: str, system_prompt: str) -> str:
        return self._call(trim_custom_prompt(system_prompt), text, "chat")

    def wrap_friendly(self, user_input: str, command_reply: str) -> str:
        """Turn a command result into a conversational reply (MIXED intent)."""
        return self.ask_with_custom_prompt(
            prompts.build_wrap_request(user_input, command_reply),
            prompts.FRIENDLY_WRAP_PROMPT,
        )

    # ------------------------------------------------------------------
    # Probes
    # ------------------------------------------------------------------

    def health_check(self) -> bool:
        """Single un-retried round trip. False on any AI failure."""
        if not self.transport.is_available():
            return False
        try:
            reply = self.transport.complete(
                [
                    {"role": "system", "content": prompts.HEALTH_CHECK_PROMPT},
                    {"role": "user", "content": "测试"},
                ],
                timeout=self.timeouts["intent"],
                max_tokens=20,
            )
        except AIServiceError as e:
            logger.warning(f"⚠️ AI health check failed: {e.message}")
            return False
        return bool(reply and reply.strip())

    def service_status(self) -> dict:
        status = dict(self.transport.describe())
        started = time.monotonic()
        healthy = self.health_check()
        elapsed_ms = int((time.monotonic() - started) * 1000)
        status.update({
            "healthy": healthy,
            "status": "ACTIVE" if healthy else "INACTIVE",
            "configured": self.transport.is_available(),
            "responseTime": f"{elapsed_ms}ms",
            "maxAttempts": self.retry.max_attempts,
            "timeouts": dict(self.timeouts),
        })
        return status


# Singleton instance
_ai_service: Optional[AIService] = None


def get_ai_service() -> AIService:
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service
