"""
Groq API Client: chat-completion transport for the ERP assistant.

================================================================================
ROLE OF THIS MODULE
================================================================================

Everything above this layer (intent classification, command parsing, chat,
order analysis) talks to a ChatTransport: "system prompt + user text in,
first choice's message content out". GroqClient is the production transport;
tests plug in a scripted fake.

THIS CLIENT DOES NOT:
- Retry (RetryPolicy owns retries; the SDK's own retries are disabled)
- Parse JSON or validate commands
- Touch the database

The API key comes from the environment (GROQ_API_KEY / AI_API_KEY) and is
never logged. Without a key every call raises AIUnavailableError and the NLI
runs on keyword fallbacks only.
================================================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from groq import Groq, APIConnectionError, APIError, APIStatusError, APITimeoutError, RateLimitError

from erp_agent.core.config import settings
from .exceptions import AIServiceError, AITimeoutError, AIResponseError, AIUnavailableError

logger = logging.getLogger(__name__)

Message = Dict[str, str]


class ChatTransport(ABC):
    """One chat-completion round trip. Implementations raise AIServiceError subclasses."""

    @abstractmethod
    def is_available(self) -> bool:
        ...

    @abstractmethod
    def complete(
        self,
        messages: List[Message],
        *,
        timeout: float,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        top_p: float = 0.9,
    ) -> str:
        ...

    def describe(self) -> Dict[str, str]:
        return {"service": type(self).__name__}


class GroqClient(ChatTransport):
    """
    Minimal wrapper for the Groq chat-completion API.

    - Model: settings.AI_MODEL (llama-3.3-70b-versatile by default)
    - base_url: settings.AI_BASE_URL (any OpenAI/Groq compatible endpoint)
    - Timeout: per call, chosen by AIService from the call mode
    - Retries: 0 here, RetryPolicy decides
    """

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, model: Optional[str] = None):
        api_key = api_key if api_key is not None else settings.GROQ_API_KEY
        self.base_url = base_url if base_url is not None else (settings.AI_BASE_URL or None)
        self.model = model or settings.AI_MODEL

        if not api_key:
            logger.warning(
                "⚠️ GROQ_API_KEY not found in environment. "
                "AI parsing will be DISABLED, keyword fallbacks only. "
                "Add your key to backend/.env file."
            )
            self.client = None
        else:
            self.client = Groq(api_key=api_key, base_url=self.base_url, max_retries=0)
            logger.info(f"✅ Groq client initialized (model={self.model})")

    def is_available(self) -> bool:
        """Check if Groq client is ready to use."""
        return self.client is not None

    def complete(
        self,
        messages: List[Message],
        *,
        timeout: float,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        top_p: float = 0.9,
    ) -> str:
        if not self.is_available():
            raise AIUnavailableError("AI服务未配置API密钥")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                top_p=top_p,
                stream=False,
                timeout=timeout,
            )
        except APITimeoutError as e:
            raise AITimeoutError(f"AI请求超时 (timeout {timeout}s)", cause=e)
        except APIConnectionError as e:
            raise AIServiceError(f"AI服务连接失败: {e}", cause=e)
        except RateLimitError as e:
            raise AIServiceError("AI服务限流 (HTTP 429)", cause=e)
        except APIStatusError as e:
            raise AIResponseError(f"AI服务HTTP错误: {e.status_code}", cause=e)
        except APIError as e:
            raise AIResponseError(f"AI服务返回错误: {e}", cause=e)

        if not response.choices:
            raise AIResponseError("AI响应中没有choices")
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise AIResponseError("AI返回内容为空")

        logger.debug(f"LLM response received: {len(content)} chars")
        return content

    def describe(self) -> Dict[str, str]:
        return {
            "service": "Groq",
            "endpoint": self.base_url or "https://api.groq.com",
            "model": self.model,
        }


# Singleton instance
_groq_client: Optional[GroqClient] = None


def get_groq_client() -> GroqClient:
    """Get or create singleton Groq client instance."""
    global _groq_client
    if _groq_client is None:
        _groq_client = GroqClient()
    return _groq_client
