"""Single retry layer for every AI call site.

Attempt k (1-based) that fails with a retryable AIServiceError waits
``base_delay * 2 ** (k - 1)`` before attempt k + 1. With the defaults that is
1s then 2s; the last failure is re-raised wrapped with the attempt count.
"""

import logging
import time
from typing import Callable, TypeVar

from .exceptions import AIServiceError, AITimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt``."""
        return self.base_delay * (2 ** (attempt - 1))

    def call(self, fn: Callable[[], T], mode: str = "AI") -> T:
        last_error: AIServiceError = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                logger.debug(f"🧠 AI call [{mode}] attempt {attempt}/{self.max_attempts}")
                return fn()
            except AIServiceError as e:
                if not e.retryable:
                    raise
                last_error = e
                if attempt < self.max_attempts:
                    wait_time = self.delay_for(attempt)
                    logger.warning(
                        f"⏱️ AI call [{mode}] failed ({e.message}), "
                        f"retry {attempt}/{self.max_attempts - 1} after {wait_time}s"
                    )
                    self.sleep(wait_time)

        logger.error(f"❌ AI call [{mode}] failed after {self.max_attempts} attempts: {last_error.message}")
        message = f"AI服务调用失败，已重试{self.max_attempts}次：{last_error.message}"
        # Keep the timeout type so callers can pick the network template
        error_cls = AITimeoutError if isinstance(last_error, AITimeoutError) else AIServiceError
        raise error_cls(message, cause=last_error)
